"""
cwlogs - Reliable log shipping to AWS CloudWatch Logs.

This package provides:
- CloudWatch: Batched, ordered delivery to one log stream with automatic
  recovery from stale sequence tokens and missing streams/groups
- CloudWatchHandler: One CloudWatch instance per (group, stream)
- CloudWatchLogHandler / setup_logging: stdlib logging integration

Usage:
    from cwlogs import CloudWatchHandler, from_env

    handler = CloudWatchHandler(from_env())
    await handler.log("Service started", group_name="my-app", stream_name="web-1")
"""

from .batcher import (
    MAX_BATCH_BYTES,
    MAX_BATCH_EVENTS,
    MAX_MESSAGE_BYTES,
    LargeMessageBehavior,
    LogBatch,
    LogBatcher,
    LogEvent,
)
from .classifier import Accepted, Fatal, RepairAction, RetryAfterRepair, classify_response
from .config import CloudWatchConfig, from_env
from .engine import CloudWatch
from .errors import (
    CloudWatchError,
    InvalidDestinationError,
    OversizeMessageError,
    ServiceError,
    TransportError,
)
from .handler import CloudWatchHandler, CloudWatchLogHandler, setup_logging
from .transport import AwsTransport, CloudWatchResponse, Transport

__all__ = [
    # Delivery
    "CloudWatch",
    "CloudWatchHandler",
    "CloudWatchLogHandler",
    "setup_logging",
    "CloudWatchConfig",
    "from_env",
    # Batching
    "LargeMessageBehavior",
    "LogBatcher",
    "LogBatch",
    "LogEvent",
    "MAX_MESSAGE_BYTES",
    "MAX_BATCH_BYTES",
    "MAX_BATCH_EVENTS",
    # Responses
    "classify_response",
    "Accepted",
    "RetryAfterRepair",
    "Fatal",
    "RepairAction",
    # Transport
    "AwsTransport",
    "CloudWatchResponse",
    "Transport",
    # Errors
    "CloudWatchError",
    "InvalidDestinationError",
    "OversizeMessageError",
    "ServiceError",
    "TransportError",
]

__version__ = "1.0.0"
