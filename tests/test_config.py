"""
Configuration loading and threshold validation tests.
"""
import pytest
from pydantic import ValidationError

from adpilot.config import JudgmentConfig, Settings, get_settings, load_judgment_config


def test_defaults_match_settings():
    config = JudgmentConfig.from_settings(get_settings())
    assert config.stop_re_consecutive_loss_days == 2
    assert config.replace_no_re_consecutive_loss_days == 3
    assert config.loss_threshold_7days == 40000
    assert config.roas_threshold_stop == 105
    assert config.roas_threshold_continue == 110


def test_stored_settings_overlay_defaults():
    stored = {
        "stopReConsecutiveLossDays": "1",
        "roasThresholdContinue": "120",
        "chatworkRoomId": "12345",
        "ruleVersion": "1.0",
    }
    config = load_judgment_config(stored)
    assert config.stop_re_consecutive_loss_days == 1
    assert config.roas_threshold_continue == 120
    assert config.replace_no_re_consecutive_loss_days == 3


@pytest.mark.parametrize("key,value", [
    ("lossThreshold7Days", -1),
    ("roasThresholdStop", None),
    ("replaceNoReConsecutiveLossDays", "three"),
    ("roasThresholdContinue", float("nan")),
])
def test_invalid_thresholds_fail_fast(key, value):
    with pytest.raises(ValidationError):
        load_judgment_config({key: value})


def test_config_is_immutable():
    config = JudgmentConfig.from_settings()
    with pytest.raises(ValidationError):
        config.roas_threshold_stop = 0


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("REFERENCE_TIMEZONE", "UTC")
    monkeypatch.setenv("ROAS_THRESHOLD_STOP", "99.5")
    settings = Settings()
    assert settings.reference_timezone == "UTC"
    assert JudgmentConfig.from_settings(settings).roas_threshold_stop == 99.5
