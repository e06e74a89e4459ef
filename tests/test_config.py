import pytest

from splash import config


def test_default_config_is_valid():
    config.validate_config()


def test_malformed_tier_json_is_reported(monkeypatch):
    monkeypatch.setattr(config, "SPLASH_TIERS_JSON", '[{"level": 3,')
    monkeypatch.setattr(config, "SPLASH_TIERS", config._load_json('[{"level": 3,'))
    assert config.SPLASH_TIERS is None

    with pytest.raises(ValueError, match="Configuration validation failed") as info:
        config.validate_config()
    assert "SPLASH_TIERS is not valid JSON" in str(info.value)


def test_invalid_tier_entry_is_reported(monkeypatch):
    monkeypatch.setattr(config, "SPLASH_TIERS", [{"level": 3, "window": 0}])
    with pytest.raises(ValueError, match="SPLASH_TIERS: tier #0 window must be positive"):
        config.validate_config()


def test_tier_errors_are_listed_with_other_problems(monkeypatch):
    monkeypatch.setattr(config, "SPLASH_TIERS", [{"window": 10}])
    monkeypatch.setattr(config, "POLL_INTERVAL_MS", 0)

    with pytest.raises(ValueError) as info:
        config.validate_config()

    message = str(info.value)
    assert "POLL_INTERVAL_MS must be positive" in message
    assert "SPLASH_TIERS: tier #0 is invalid" in message
