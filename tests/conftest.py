"""Pytest configuration and shared fixtures for cwlogs tests."""

from __future__ import annotations

import pytest

from cwlogs import CloudWatch, CloudWatchConfig
from tests.mocks import FakeCloudWatchService, RecordingTransport


@pytest.fixture
def config() -> CloudWatchConfig:
    """Configuration with dummy credentials and no pacing delay."""
    return CloudWatchConfig(
        aws_access_key="AKIDEXAMPLE",
        aws_secret_key="wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
        region="us-east-1",
    )


@pytest.fixture
def service() -> FakeCloudWatchService:
    """An empty fake CloudWatch Logs service."""
    return FakeCloudWatchService()


@pytest.fixture
def transport(service: FakeCloudWatchService) -> RecordingTransport:
    return RecordingTransport(service)


@pytest.fixture
def engine(config: CloudWatchConfig, transport: RecordingTransport) -> CloudWatch:
    """Engine for app/web backed by the fake service."""
    return CloudWatch(config, group_name="app", stream_name="web", transport=transport)


@pytest.fixture
def sample_messages() -> list[str]:
    """A handful of realistic log lines."""
    return [
        "2024-01-15T10:30:00Z INFO Service started",
        "2024-01-15T10:30:01Z WARNING Cache miss rate 42%",
        "2024-01-15T10:30:02Z ERROR Payment failed for order 1234",
        "2024-01-15T10:30:03Z INFO 処理が完了しました ✓",
    ]
