"""Settings: token secrets and lifetimes are required and validated at startup."""

import pytest
from pydantic import ValidationError

from app.config import Settings

VALID = {
    "access_token_secret": "a-secret",
    "refresh_token_secret": "r-secret",
    "access_token_expire_minutes": 15,
    "refresh_token_expire_days": 10,
}


def test_valid_settings():
    s = Settings(_env_file=None, **VALID)
    assert s.access_token_ttl_seconds == 15 * 60
    assert s.refresh_token_ttl_seconds == 10 * 24 * 3600


@pytest.mark.parametrize("missing", sorted(VALID))
def test_missing_required_setting_is_fatal(monkeypatch, missing):
    monkeypatch.delenv(missing.upper(), raising=False)
    values = {k: v for k, v in VALID.items() if k != missing}
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **values)


def test_secrets_must_differ():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{**VALID, "refresh_token_secret": VALID["access_token_secret"]})


def test_blank_secret_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{**VALID, "access_token_secret": "  "})


@pytest.mark.parametrize("field", ["access_token_expire_minutes", "refresh_token_expire_days"])
def test_non_positive_ttl_rejected(field):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{**VALID, field: 0})
