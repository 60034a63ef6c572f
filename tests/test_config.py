"""
Tests for configuration models and YAML loading.
"""
import pytest
from pydantic import ValidationError

from live_ingest.config_manager import (
    Config,
    CooldownConfig,
    QueueConfig,
    ReconnectConfig,
    TikTokConfig,
    YouTubeConfig,
    load_config,
    read_yaml,
    validate_config,
)


def test_defaults():
    config = Config()
    assert config.queue.max_size == 200
    assert config.queue.drain_per_tick == 20
    assert config.reconnect.base_delay == 5.0
    assert config.reconnect.cap_delay == 30.0
    assert config.reconnect.max_attempts == 50
    assert config.reconnect.connecting_timeout == 30.0
    assert config.tiktok.broker.url == "ws://127.0.0.1:21213"
    assert config.tiktok.gift_tiers == [1, 10, 99, 500, 5000, 44999]
    assert config.youtube.super_chat_tiers == [200, 500, 1000, 5000, 10000]
    assert config.youtube.cooldown.subscriber == 15.0
    assert config.youtube.oauth.redirect_uri == "http://localhost:8585/oauth/callback"


def test_tiktok_username_strips_at_sign():
    assert TikTokConfig(username=" @streamer ").username == "streamer"


def test_thresholds_must_ascend():
    with pytest.raises(ValidationError):
        TikTokConfig(gift_tiers=[1, 10, 10])
    with pytest.raises(ValidationError):
        YouTubeConfig(like_milestones=[])


def test_cooldown_ordering_is_validated():
    with pytest.raises(ValidationError):
        CooldownConfig(base=10.0, subscriber=20.0, fan_club=[15.0], fan_club_levels=[1])
    with pytest.raises(ValidationError):
        CooldownConfig(fan_club=[18.0, 25.0, 22.0, 20.0])
    with pytest.raises(ValidationError):
        CooldownConfig(fan_club=[25.0, 22.0], fan_club_levels=[1, 5, 10])


def test_queue_and_reconnect_bounds():
    with pytest.raises(ValidationError):
        QueueConfig(max_size=10, drain_per_tick=20)
    with pytest.raises(ValidationError):
        ReconnectConfig(base_delay=10.0, cap_delay=5.0)


def test_currency_codes_are_uppercased():
    config = YouTubeConfig(currency_rates={"usd": 140.0})
    assert config.currency_rates == {"USD": 140.0}


def test_validate_config_rejects_bad_types():
    with pytest.raises(ValidationError):
        validate_config({"queue": {"max_size": "lots"}})


def test_read_yaml_substitutes_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("YT_CLIENT_SECRET", "s3cret")
    path = tmp_path / "conf.yaml"
    path.write_text(
        "youtube:\n"
        "  enabled: true\n"
        "  oauth:\n"
        "    client_id: my-client\n"
        "    client_secret: ${YT_CLIENT_SECRET}\n"
        "tiktok:\n"
        "  username: ${UNSET_VARIABLE_FOR_TEST}\n",
        encoding="utf-8",
    )

    data = read_yaml(str(path))
    assert data["youtube"]["oauth"]["client_secret"] == "s3cret"
    assert data["tiktok"]["username"] == "${UNSET_VARIABLE_FOR_TEST}"


def test_load_config_round_trip(tmp_path):
    path = tmp_path / "conf.yaml"
    path.write_text(
        "tiktok:\n  enabled: true\n  username: '@streamer'\n  gift_window: 3\n"
        "queue:\n  max_size: 50\n  drain_per_tick: 5\n",
        encoding="utf-8",
    )
    config = load_config(str(path))
    assert config.tiktok.enabled
    assert config.tiktok.username == "streamer"
    assert config.tiktok.gift_window == 3.0
    assert config.queue.max_size == 50


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "conf.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(str(path)) == Config()


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        read_yaml("/nonexistent/conf.yaml")


def test_shift_jis_file_is_read(tmp_path):
    path = tmp_path / "conf.yaml"
    path.write_bytes("tiktok:\n  username: 配信者\n".encode("shift_jis"))
    assert read_yaml(str(path))["tiktok"]["username"] == "配信者"
