"""
Tests for environment configuration.
"""

from pudim.shared.config import CacheConfig, LeaderboardConfig, env_flag, env_int, feature_flags, is_edge_runtime


def test_defaults():
    cache = CacheConfig.from_env()
    assert cache.enabled is False
    assert cache.url == "redis://localhost:6379"
    assert cache.stats_prefix == "pudim:github:"
    assert cache.key_prefix == "pudim:"
    assert cache.ttl_seconds == 300
    assert cache.statistics_ttl_seconds == 3600
    assert cache.cooldown_ms == 300000
    assert cache.connect_timeout_seconds == 5.0

    leaderboard = LeaderboardConfig.from_env()
    assert leaderboard.enabled is False
    assert leaderboard.table_name == "PudimScores"
    assert leaderboard.region == "us-east-1"
    assert leaderboard.endpoint_url is None
    assert leaderboard.cooldown_ms == 300000


def test_cache_overrides(monkeypatch):
    monkeypatch.setenv("REDIS_ENABLED", "True")
    monkeypatch.setenv("REDIS_URL", "redis://cache:6380/1")
    monkeypatch.setenv("REDIS_PREFIX", "staging:")
    monkeypatch.setenv("REDIS_TTL", "60")
    monkeypatch.setenv("REDIS_CIRCUIT_BREAKER_COOLDOWN", "1000")

    cache = CacheConfig.from_env()

    assert cache.enabled is True
    assert cache.url == "redis://cache:6380/1"
    assert cache.key_prefix == "staging:"
    # Stats prefix is configured separately
    assert cache.stats_prefix == "pudim:github:"
    assert cache.ttl_seconds == 60
    assert cache.cooldown_ms == 1000


def test_leaderboard_overrides(monkeypatch):
    monkeypatch.setenv("DYNAMODB_ENABLED", "true")
    monkeypatch.setenv("DYNAMODB_ENDPOINT", "http://localhost:8000")
    monkeypatch.setenv("DYNAMODB_TABLE", "PudimScoresTest")
    monkeypatch.setenv("AWS_REGION", "sa-east-1")

    config = LeaderboardConfig.from_env()

    assert config.enabled is True
    assert config.endpoint_url == "http://localhost:8000"
    assert config.table_name == "PudimScoresTest"
    assert config.region == "sa-east-1"
    assert "testing" not in repr(config)


def test_env_flag(monkeypatch):
    monkeypatch.setenv("FLAG_A", "TRUE")
    monkeypatch.setenv("FLAG_B", "1")
    assert env_flag("FLAG_A") is True
    assert env_flag("FLAG_B") is False
    assert env_flag("FLAG_MISSING") is False


def test_env_int_falls_back_on_garbage(monkeypatch):
    monkeypatch.setenv("NUMBER", "abc")
    assert env_int("NUMBER", 7) == 7
    monkeypatch.setenv("NUMBER", "42")
    assert env_int("NUMBER", 7) == 42


def test_edge_runtime(monkeypatch):
    assert is_edge_runtime() is False
    monkeypatch.setenv("PUDIM_RUNTIME", "edge")
    assert is_edge_runtime() is True


def test_feature_flags(monkeypatch):
    monkeypatch.setenv("REDIS_ENABLED", "true")
    flags = feature_flags()
    assert flags == {
        "redis_enabled": True,
        "dynamodb_enabled": False,
        "leaderboard_enabled": False,
        "leaderboard_visible": False,
    }
