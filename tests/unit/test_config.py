"""Tests for CloudWatchConfig and from_env."""

import pytest

from cwlogs.batcher import LargeMessageBehavior
from cwlogs.config import CloudWatchConfig, from_env


@pytest.fixture
def aws_env(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKIDEXAMPLE")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "secret")
    monkeypatch.setenv("AWS_REGION", "eu-west-1")
    for name in (
        "AWS_SESSION_TOKEN",
        "CWLOGS_DELAY",
        "CWLOGS_REQUEST_TIMEOUT",
        "CWLOGS_RETRIES",
        "CWLOGS_LARGE_MESSAGES",
        "CWLOGS_ENDPOINT",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestCloudWatchConfig:
    """Tests for defaults and normalisation."""

    def test_defaults(self):
        config = CloudWatchConfig("a", "b", "us-east-1")

        assert config.delay == 0.0
        assert config.request_timeout == 10.0
        assert config.retries == 3
        assert config.large_message_behavior is LargeMessageBehavior.TRUNCATE
        assert config.endpoint is None

    def test_retries_floor_is_one(self):
        assert CloudWatchConfig("a", "b", "r", retries=-4).retries == 1

    def test_negative_delay_clamped(self):
        assert CloudWatchConfig("a", "b", "r", delay=-1).delay == 0.0

    def test_behavior_from_string(self):
        config = CloudWatchConfig("a", "b", "r", large_message_behavior="ignore")
        assert config.large_message_behavior is LargeMessageBehavior.IGNORE

    def test_unknown_behavior_rejected(self):
        with pytest.raises(ValueError):
            CloudWatchConfig("a", "b", "r", large_message_behavior="compress")

    def test_repr_hides_credentials(self):
        text = repr(CloudWatchConfig("AKIDEXAMPLE", "topsecret", "r"))
        assert "topsecret" not in text
        assert "AKIDEXAMPLE" not in text


class TestFromEnv:
    """Tests for environment-based configuration."""

    def test_reads_required_variables(self, aws_env):
        config = from_env()

        assert config.aws_access_key == "AKIDEXAMPLE"
        assert config.aws_secret_key == "secret"
        assert config.region == "eu-west-1"

    def test_default_region_fallback(self, aws_env):
        aws_env.delenv("AWS_REGION")
        aws_env.setenv("AWS_DEFAULT_REGION", "ap-south-1")

        assert from_env().region == "ap-south-1"

    def test_optional_settings(self, aws_env):
        aws_env.setenv("CWLOGS_DELAY", "0.2")
        aws_env.setenv("CWLOGS_RETRIES", "5")
        aws_env.setenv("CWLOGS_LARGE_MESSAGES", "SPLIT")
        aws_env.setenv("CWLOGS_ENDPOINT", "http://localhost:4566")

        config = from_env()

        assert config.delay == 0.2
        assert config.retries == 5
        assert config.large_message_behavior is LargeMessageBehavior.SPLIT
        assert config.endpoint == "http://localhost:4566"

    def test_overrides_win(self, aws_env):
        config = from_env(retries=7, large_message_behavior="error")

        assert config.retries == 7
        assert config.large_message_behavior is LargeMessageBehavior.ERROR

    @pytest.mark.parametrize("missing", ["AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY"])
    def test_missing_credentials(self, aws_env, missing):
        aws_env.delenv(missing)

        with pytest.raises(ValueError, match=missing):
            from_env()

    def test_missing_region(self, aws_env):
        aws_env.delenv("AWS_REGION")
        aws_env.delenv("AWS_DEFAULT_REGION", raising=False)

        with pytest.raises(ValueError, match="AWS_REGION"):
            from_env()
