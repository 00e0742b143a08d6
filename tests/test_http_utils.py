"""
Tests for HTTP utilities in utils/http.py

Tests RetryStrategy and SessionManager without requiring network calls.
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from requests.adapters import HTTPAdapter

from utils.http import RetryStrategy, SessionManager


# ── RetryStrategy tests ──────────────────────────────────────────────────────

class TestRetryStrategy:
    def test_defaults(self):
        rs = RetryStrategy()
        assert rs.max_retries == 3
        assert rs.backoff_factor == 0.5
        assert rs.status_forcelist == [429, 500, 502, 503, 504]
        assert rs.allowed_methods == ["GET", "HEAD", "POST"]

    def test_custom_params(self):
        rs = RetryStrategy(max_retries=5, backoff_factor=1.0,
                           status_forcelist=[500, 502], allowed_methods=["GET"])
        assert rs.max_retries == 5
        assert rs.status_forcelist == [500, 502]
        assert rs.allowed_methods == ["GET"]

    def test_get_retry_object(self):
        retry = RetryStrategy(max_retries=4, backoff_factor=3.0).get_retry_object()
        assert retry.total == 4
        assert retry.backoff_factor == 3.0
        assert retry.raise_on_status is False
        assert "POST" in retry.allowed_methods


# ── SessionManager tests ─────────────────────────────────────────────────────

class TestSessionManager:
    def test_session_cached(self):
        sm = SessionManager()
        assert sm.session is sm.session
        sm.close()

    def test_adapter_mounted_with_retries(self):
        sm = SessionManager(retry_strategy=RetryStrategy(max_retries=2))
        adapter = sm.session.get_adapter("https://claims.example.org/rpc")
        assert isinstance(adapter, HTTPAdapter)
        assert adapter.max_retries.total == 2
        sm.close()

    def test_close_resets_session(self):
        sm = SessionManager()
        _ = sm.session
        sm.close()
        assert sm._session is None

    def test_close_idempotent(self):
        sm = SessionManager()
        sm.close()
        sm.close()

    def test_context_manager(self):
        with SessionManager() as sm:
            assert sm.session is not None
        assert sm._session is None

    def test_custom_pool_settings(self):
        sm = SessionManager(pool_connections=5, pool_maxsize=10)
        assert sm.pool_connections == 5
        assert sm.pool_maxsize == 10
