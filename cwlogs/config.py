"""
Configuration for cwlogs clients.

Usage:
    from cwlogs.config import CloudWatchConfig, from_env

    config = CloudWatchConfig(
        aws_access_key="AKIA...",
        aws_secret_key="...",
        region="eu-west-1",
        delay=0.2,                      # Pause before each PutLogEvents call
        retries=5,
        large_message_behavior="split",
    )

    # Or from AWS_* / CWLOGS_* environment variables
    config = from_env()
"""

import os
from dataclasses import dataclass

from .batcher import LargeMessageBehavior


@dataclass
class CloudWatchConfig:
    """Credentials and delivery settings shared by every destination."""

    aws_access_key: str
    aws_secret_key: str
    region: str
    aws_session_token: str | None = None
    delay: float = 0.0  # Seconds to wait before each send, for rate limiting
    request_timeout: float = 10.0  # Seconds before a request times out
    retries: int = 3  # Attempts per API call, at least 1
    large_message_behavior: LargeMessageBehavior = LargeMessageBehavior.TRUNCATE
    endpoint: str | None = None  # Override for local stacks / VPC endpoints

    def __post_init__(self):
        self.delay = max(0.0, float(self.delay))
        self.retries = max(1, int(self.retries))
        self.large_message_behavior = LargeMessageBehavior(self.large_message_behavior)

    def __repr__(self) -> str:
        return (
            f"CloudWatchConfig(region={self.region!r}, delay={self.delay}, "
            f"request_timeout={self.request_timeout}, retries={self.retries}, "
            f"large_message_behavior={self.large_message_behavior.value!r}, endpoint={self.endpoint!r})"
        )


def from_env(**overrides) -> CloudWatchConfig:
    """
    Build a CloudWatchConfig from environment variables.

    Environment variables:
        AWS_ACCESS_KEY_ID: Access key (required)
        AWS_SECRET_ACCESS_KEY: Secret key (required)
        AWS_SESSION_TOKEN: Session token for temporary credentials (optional)
        AWS_REGION / AWS_DEFAULT_REGION: Region (required)
        CWLOGS_DELAY: Seconds between requests (optional)
        CWLOGS_REQUEST_TIMEOUT: Request timeout in seconds (optional)
        CWLOGS_RETRIES: Attempts per request (optional)
        CWLOGS_LARGE_MESSAGES: truncate, split, ignore or error (optional)
        CWLOGS_ENDPOINT: Endpoint URL override (optional)

    Args:
        **overrides: Values that take precedence over the environment

    Raises:
        ValueError: if a required variable is missing
    """
    access_key = os.environ.get("AWS_ACCESS_KEY_ID")
    secret_key = os.environ.get("AWS_SECRET_ACCESS_KEY")
    region = os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION")

    if not access_key and "aws_access_key" not in overrides:
        raise ValueError("AWS_ACCESS_KEY_ID environment variable required")
    if not secret_key and "aws_secret_key" not in overrides:
        raise ValueError("AWS_SECRET_ACCESS_KEY environment variable required")
    if not region and "region" not in overrides:
        raise ValueError("AWS_REGION or AWS_DEFAULT_REGION environment variable required")

    values = {
        "aws_access_key": access_key,
        "aws_secret_key": secret_key,
        "region": region,
        "aws_session_token": os.environ.get("AWS_SESSION_TOKEN"),
        "delay": float(os.environ.get("CWLOGS_DELAY", 0.0)),
        "request_timeout": float(os.environ.get("CWLOGS_REQUEST_TIMEOUT", 10.0)),
        "retries": int(os.environ.get("CWLOGS_RETRIES", 3)),
        "large_message_behavior": os.environ.get("CWLOGS_LARGE_MESSAGES", "truncate").lower(),
        "endpoint": os.environ.get("CWLOGS_ENDPOINT"),
    }
    values.update(overrides)
    return CloudWatchConfig(**values)
