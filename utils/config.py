"""Configuration management utilities for the budget flow tools.

Provides reusable pieces for:
- Loading and saving configuration as JSON
- Environment-driven application settings
- Known values (jurisdiction levels, province display names)
"""

import json
import os as _os
from pathlib import Path
from typing import Any, Dict, Optional


class Config:
    """Base configuration class for organizing application settings."""

    def __init__(self):
        """Initialize configuration with default values."""
        pass

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary.

        Returns:
            Dictionary of all config attributes
        """
        return {k: v for k, v in self.__dict__.items() if not k.startswith("_")}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create config from dictionary.

        Args:
            data: Configuration dictionary

        Returns:
            Config instance with values from dictionary
        """
        config = cls()
        for key, value in data.items():
            setattr(config, key, value)
        return config

    def save_json(self, path: Path) -> None:
        """Save configuration to JSON file.

        Args:
            path: Path to save configuration file
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2, default=str)

    @classmethod
    def load_json(cls, path: Path) -> "Config":
        """Load configuration from JSON file.

        Raises:
            FileNotFoundError: If file doesn't exist
            json.JSONDecodeError: If file is not valid JSON
        """
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)


class KnownValues:
    """Container for known values used when resolving and labelling data."""

    LEVELS = ("federal", "provincial", "municipal")

    PROVINCE_NAMES = {
        "alberta": "Alberta",
        "british-columbia": "British Columbia",
        "manitoba": "Manitoba",
        "new-brunswick": "New Brunswick",
        "newfoundland-and-labrador": "Newfoundland and Labrador",
        "northwest-territories": "Northwest Territories",
        "nova-scotia": "Nova Scotia",
        "nunavut": "Nunavut",
        "ontario": "Ontario",
        "prince-edward-island": "Prince Edward Island",
        "quebec": "Quebec",
        "saskatchewan": "Saskatchewan",
        "yukon": "Yukon",
    }

    @classmethod
    def province_name(cls, slug: str) -> str:
        """Return the display name for a province slug, falling back to the slug."""
        return cls.PROVINCE_NAMES.get(slug, slug)

    @classmethod
    def is_valid_level(cls, level: Optional[str]) -> bool:
        return level in cls.LEVELS


class AppConfig(Config):
    """Application-level configuration loaded from environment variables.

    All env vars have sensible defaults so the application works out of the
    box without any configuration.

    Environment variables:
        APP_DATA_DIR: Root of the published dataset (default: data)
        APP_PORT: API server port (default: 8000)
        APP_HOST: API server bind address (default: 127.0.0.1)
        APP_LOG_FORMAT: Logging format, "text" or "json" (default: text)
        APP_CORS_ORIGINS: Comma-separated allowed origins (default: *)
        SANKEY_MAX_CHILDREN: Visible children per parent before folding (default: 8)
        SANKEY_MIN_SHARE: Share of parent below which a child folds (default: 0.01)
        LISTING_CACHE_TTL: Seconds a directory listing stays memoized (default: 300)
        CLAIMS_API_URL: Base URL of the land-claims RPC API
        CLAIMS_API_KEY: API key sent with claims lookups (default: empty)
        CLAIMS_TIMEOUT: Claims request timeout in seconds (default: 10)
    """

    def __init__(self) -> None:
        super().__init__()
        self.data_dir = Path(_os.getenv("APP_DATA_DIR", "data"))
        self.api_port = int(_os.getenv("APP_PORT", "8000"))
        self.api_host = _os.getenv("APP_HOST", "127.0.0.1")
        self.log_format = _os.getenv("APP_LOG_FORMAT", "text")
        raw_origins = _os.getenv("APP_CORS_ORIGINS", "*")
        self.cors_origins: list[str] = (
            ["*"] if raw_origins == "*"
            else [o.strip() for o in raw_origins.split(",") if o.strip()]
        )
        self.sankey_max_children = int(_os.getenv("SANKEY_MAX_CHILDREN", "8"))
        self.sankey_min_share = float(_os.getenv("SANKEY_MIN_SHARE", "0.01"))
        self.listing_cache_ttl = float(_os.getenv("LISTING_CACHE_TTL", "300"))
        self.claims_api_url = _os.getenv(
            "CLAIMS_API_URL", "https://api.buildcanada.com/rest/v1"
        ).rstrip("/")
        self.claims_api_key = _os.getenv("CLAIMS_API_KEY", "")
        self.claims_timeout = float(_os.getenv("CLAIMS_TIMEOUT", "10"))

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create an AppConfig instance populated from environment variables."""
        return cls()
