"""Shared utilities for the budget flow tools."""

# Caching
from utils.cache import TTLCache

# Configuration
from utils.config import AppConfig, Config, KnownValues

# Presentation formatting
from utils.formatting import format_amount, format_percent, scale_amount

# HTTP sessions
from utils.http import RetryStrategy, SessionManager

# String utilities
from utils.strings import (
    is_slug,
    is_year_entry,
    normalize_whitespace,
    safe_float,
    slugify,
)

# Validation utilities
from utils.validation import (
    ValidationIssue,
    ValidationRegistry,
    ValidationResult,
    is_valid_amount,
)

__all__ = [
    "TTLCache",
    "AppConfig",
    "Config",
    "KnownValues",
    "format_amount",
    "format_percent",
    "scale_amount",
    "RetryStrategy",
    "SessionManager",
    "is_slug",
    "is_year_entry",
    "normalize_whitespace",
    "safe_float",
    "slugify",
    "ValidationIssue",
    "ValidationRegistry",
    "ValidationResult",
    "is_valid_amount",
]
