from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import ValidationError
from app.db.models.device_token import DeviceToken
from app.services.push_validation import normalize_environment
from app.services.token_registry import register_token, remove_token
from conftest import expo_token


def test_reregistration_keeps_single_record_and_created_at(db):
    first = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)
    second = first + timedelta(minutes=5)
    token = expo_token(1)

    register_token(db, token=token, environment="prod", store_id="store-1", platform="ios", now=first)
    register_token(
        db,
        token=token,
        environment="staging",
        store_id="store-2",
        platform="android",
        app_version="2.1.0",
        now=second,
    )

    rows = db.query(DeviceToken).all()
    assert len(rows) == 1
    row = rows[0]
    assert row.created_at.replace(tzinfo=None) == first.replace(tzinfo=None)
    assert row.updated_at.replace(tzinfo=None) == second.replace(tzinfo=None)
    assert row.updated_at > row.created_at
    assert row.environment == "staging"
    assert row.store_id == "store-2"
    assert row.platform == "android"
    assert row.app_version == "2.1.0"


def test_register_strips_surrounding_whitespace(db):
    model = register_token(db, token=f"  {expo_token(2)} ", environment="prod")
    assert model.token == expo_token(2)


@pytest.mark.parametrize(
    "token",
    ["", "not-a-token", "ExponentPushToken[]", "ExponentPushToken[abc def]", "FooPushToken[abc]"],
)
def test_register_rejects_malformed_tokens(db, token):
    with pytest.raises(ValidationError):
        register_token(db, token=token, environment="prod")
    assert db.query(DeviceToken).count() == 0


def test_register_accepts_current_expo_prefix(db):
    model = register_token(db, token="ExpoPushToken[xYz_09-+/]", environment="prod")
    assert model.token == "ExpoPushToken[xYz_09-+/]"


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, "prod"),
        ("prod", "prod"),
        ("Production", "prod"),
        ("STAGING", "staging"),
        ("stage", "staging"),
        ("dev", "dev"),
        ("qa", "dev"),
    ],
)
def test_environment_normalization(raw, expected):
    assert normalize_environment(raw) == expected


@pytest.mark.parametrize("raw", ["", "   ", "prod env", "9prod", "pr*d"])
def test_environment_rejects_unrecognized_values(raw):
    with pytest.raises(ValidationError):
        normalize_environment(raw)


def test_blank_store_id_is_stored_as_none(db):
    model = register_token(db, token=expo_token(3), environment="prod", store_id="   ")
    assert model.store_id is None


def test_remove_is_idempotent(db):
    register_token(db, token=expo_token(4), environment="prod")
    assert remove_token(db, expo_token(4)) is True
    assert remove_token(db, expo_token(4)) is False
    assert remove_token(db, expo_token(999)) is False
    assert db.get(DeviceToken, expo_token(4)) is None
