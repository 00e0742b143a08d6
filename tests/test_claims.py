"""Tests for budget/claims.py: fail-soft land-claims lookup."""
from unittest.mock import MagicMock, patch

import pytest
import requests

from budget.claims import Claim, get_claims_by_band
from utils.config import AppConfig


ROW = {
    "id": 7,
    "claimant_bcid": "123",
    "claimant_name": "Example First Nation",
    "claim_name": "Reserve land surrender",
    "province": "ON",
    "process_stage": "Negotiation",
    "status": "Active",
    "description": "Surrender of reserve land in 1890.",
    "band_bcids": ["123", 456],
    "involved_band_names": ["Example First Nation"],
    "key_dates": {"Filed": "2001-05-01"},
    "first_key_date": "2001-05-01",
    "last_key_date": "2019-03-12",
    "settlement_amount": 1500000.0,
    "settlement_date": None,
    "tribunal_award": None,
    "tribunal_award_implementation_date": None,
    "total_payments": None,
}


@pytest.fixture()
def config(monkeypatch):
    monkeypatch.setenv("CLAIMS_API_URL", "https://claims.example.org/rest/v1/")
    monkeypatch.setenv("CLAIMS_API_KEY", "test-key")
    monkeypatch.setenv("CLAIMS_TIMEOUT", "3")
    return AppConfig.from_env()


def _session(status=200, payload=None, ok=None):
    response = MagicMock()
    response.status_code = status
    response.ok = ok if ok is not None else status < 400
    response.reason = "Error" if status >= 400 else "OK"
    response.json.return_value = payload
    session = MagicMock(spec=requests.Session)
    session.post.return_value = response
    return session


class TestGetClaimsByBand:
    def test_posts_bcid_with_api_key(self, config):
        session = _session(payload=[ROW])
        get_claims_by_band("123", session=session, config=config)
        session.post.assert_called_once_with(
            "https://claims.example.org/rest/v1/rpc/get_claims_by_band",
            json={"p_bcid": "123"},
            headers={"apikey": "test-key", "Content-Type": "application/json"},
            timeout=3.0,
        )

    def test_decodes_rows(self, config):
        claims = get_claims_by_band("123", session=_session(payload=[ROW]), config=config)
        assert len(claims) == 1
        claim = claims[0]
        assert isinstance(claim, Claim)
        assert claim.band_bcids == ("123", "456")
        assert claim.settlement_amount == 1500000.0
        assert claim.to_dict()["band_bcids"] == ["123", "456"]

    def test_sorted_oldest_first_undated_first(self, config):
        rows = [
            {**ROW, "id": 1, "first_key_date": "2010-01-01"},
            {**ROW, "id": 2, "first_key_date": None},
            {**ROW, "id": 3, "first_key_date": "1995-06-30"},
        ]
        claims = get_claims_by_band("123", session=_session(payload=rows), config=config)
        assert [c.id for c in claims] == [2, 3, 1]

    @pytest.mark.parametrize("status", [400, 404, 500, 503])
    def test_error_status_returns_empty(self, config, status, caplog):
        claims = get_claims_by_band("123", session=_session(status=status), config=config)
        assert claims == []
        assert "Claims API error" in caplog.text

    def test_transport_failure_returns_empty(self, config):
        session = MagicMock(spec=requests.Session)
        session.post.side_effect = requests.ConnectionError("unreachable")
        assert get_claims_by_band("123", session=session, config=config) == []

    def test_timeout_returns_empty(self, config):
        session = MagicMock(spec=requests.Session)
        session.post.side_effect = requests.Timeout("slow")
        assert get_claims_by_band("123", session=session, config=config) == []

    def test_invalid_json_returns_empty(self, config):
        session = _session()
        session.post.return_value.json.side_effect = ValueError("not json")
        assert get_claims_by_band("123", session=session, config=config) == []

    def test_null_body_is_empty(self, config):
        assert get_claims_by_band("123", session=_session(payload=None), config=config) == []

    def test_malformed_row_skipped(self, config):
        rows = [{"claim_name": "no id"}, ROW]
        claims = get_claims_by_band("123", session=_session(payload=rows), config=config)
        assert [c.id for c in claims] == [7]

    def test_default_session_is_closed(self, config):
        session = _session(payload=[])
        with patch("budget.claims.SessionManager") as manager_cls:
            manager_cls.return_value.session = session
            assert get_claims_by_band("123", config=config) == []
        manager_cls.return_value.close.assert_called_once()


class TestRetryPolicy:
    def test_retries_rate_limit_and_server_errors(self):
        from utils.http import RetryStrategy
        retry = RetryStrategy().get_retry_object()
        assert retry.total == 3
        assert {429, 500, 502, 503, 504} <= set(retry.status_forcelist)
        assert "POST" in retry.allowed_methods
