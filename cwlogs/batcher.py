"""
Log batching for CloudWatch Logs.

Turns an unbounded list of log strings into batches that respect the
PutLogEvents hard limits:

    - 262,118 UTF-8 bytes per message
    - 1,048,550 UTF-8 bytes of messages per batch
    - 10,000 events per batch

Messages over the per-message limit are handled according to
LargeMessageBehavior.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from .errors import OversizeMessageError

logger = logging.getLogger(__name__)

MAX_MESSAGE_BYTES = 262_118
MAX_BATCH_BYTES = 1_048_550
MAX_BATCH_EVENTS = 10_000

TRUNCATION_MARKER = b"..."


class LargeMessageBehavior(Enum):
    """What to do with messages larger than MAX_MESSAGE_BYTES."""

    TRUNCATE = "truncate"  # Replace the middle with "..." (default)
    SPLIT = "split"  # Send as several consecutive events
    IGNORE = "ignore"  # Drop the message
    ERROR = "error"  # Raise OversizeMessageError


def now_millis() -> int:
    """Current UTC time in milliseconds since the epoch."""
    return int(datetime.now(UTC).timestamp() * 1000)


def _is_continuation(byte: int) -> bool:
    return byte & 0xC0 == 0x80


def _floor_boundary(data: bytes, index: int) -> int:
    """Move index back until it no longer splits a UTF-8 character."""
    while 0 < index < len(data) and _is_continuation(data[index]):
        index -= 1
    return index


def _ceil_boundary(data: bytes, index: int) -> int:
    """Move index forward until it no longer splits a UTF-8 character."""
    while index < len(data) and _is_continuation(data[index]):
        index += 1
    return index


def truncate_middle(data: bytes, limit: int = MAX_MESSAGE_BYTES) -> bytes:
    """
    Cut bytes out of the middle of data so that it fits in limit, marking the
    cut with "...".

    The removed span is centred on the midpoint. ASCII input always comes
    back exactly ``limit`` bytes long; multibyte input can be a few bytes
    shorter because cuts never land inside a character.
    """
    if len(data) <= limit:
        return data
    excess = len(data) - limit + len(TRUNCATION_MARKER)
    remove_before = -(-excess // 2)
    midpoint = len(data) // 2
    head_end = _floor_boundary(data, midpoint - remove_before)
    tail_start = _ceil_boundary(data, midpoint + excess - remove_before)
    return data[:head_end] + TRUNCATION_MARKER + data[tail_start:]


def split_chunks(data: bytes, limit: int = MAX_MESSAGE_BYTES) -> list[bytes]:
    """Slice data into consecutive chunks of at most limit bytes."""
    chunks = []
    while len(data) > limit:
        cut = _floor_boundary(data, limit) or limit
        chunks.append(data[:cut])
        data = data[cut:]
    if data:
        chunks.append(data)
    return chunks


@dataclass
class LogEvent:
    """A single CloudWatch log event."""

    timestamp: int
    message: str

    def to_dict(self) -> dict:
        return {"timestamp": self.timestamp, "message": self.message}


@dataclass
class LogBatch:
    """Events sent together in one PutLogEvents call."""

    events: list[LogEvent] = field(default_factory=list)
    size: int = 0  # UTF-8 bytes of all messages

    def __len__(self) -> int:
        return len(self.events)

    def fits(self, size: int) -> bool:
        """Whether an event of ``size`` bytes can still be appended."""
        return len(self.events) < MAX_BATCH_EVENTS and self.size + size <= MAX_BATCH_BYTES

    def append(self, event: LogEvent, size: int):
        self.events.append(event)
        self.size += size

    def to_dicts(self) -> list[dict]:
        return [event.to_dict() for event in self.events]


class LogBatcher:
    """
    FIFO queue of LogBatch objects fed by add_logs().

    Appends and pops are guarded by a lock so messages can be added from any
    thread while a sender drains the queue.
    """

    def __init__(self, large_message_behavior: LargeMessageBehavior = LargeMessageBehavior.TRUNCATE):
        self.large_message_behavior = LargeMessageBehavior(large_message_behavior)
        self._batches: deque[LogBatch] = deque()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._batches)

    @property
    def batches(self) -> list[LogBatch]:
        """Snapshot of the queued batches, oldest first."""
        with self._lock:
            return list(self._batches)

    @property
    def pending_events(self) -> int:
        with self._lock:
            return sum(len(batch) for batch in self._batches)

    def add_logs(self, messages: list[str], timestamp: int | None = None):
        """
        Encode messages and pack them into batches.

        All messages share one timestamp. Under the ERROR policy an oversized
        message raises OversizeMessageError; messages before it stay queued.
        """
        if timestamp is None:
            timestamp = now_millis()

        for message in messages:
            data = message.encode("utf-8")
            if len(data) <= MAX_MESSAGE_BYTES:
                self.add_to_stack(timestamp, data)
                continue

            behavior = self.large_message_behavior
            if behavior is LargeMessageBehavior.TRUNCATE:
                logger.debug(f"Truncating {len(data)} byte message to {MAX_MESSAGE_BYTES} bytes")
                self.add_to_stack(timestamp, truncate_middle(data))
            elif behavior is LargeMessageBehavior.SPLIT:
                chunks = split_chunks(data)
                logger.debug(f"Splitting {len(data)} byte message into {len(chunks)} events")
                for chunk in chunks:
                    self.add_to_stack(timestamp, chunk)
            elif behavior is LargeMessageBehavior.IGNORE:
                logger.debug(f"Ignoring {len(data)} byte message")
            else:
                raise OversizeMessageError(
                    f"Log message is {len(data)} bytes; the per-message limit is "
                    f"{MAX_MESSAGE_BYTES} bytes. Message starts with: {message[:100]!r}"
                )

    def add_to_stack(self, timestamp: int, data: bytes):
        """Append an encoded message to the newest batch, opening a new one if full."""
        if not data:
            return  # CloudWatch rejects empty messages
        event = LogEvent(timestamp=timestamp, message=data.decode("utf-8"))
        with self._lock:
            if not self._batches or not self._batches[-1].fits(len(data)):
                self._batches.append(LogBatch())
            self._batches[-1].append(event, len(data))

    def pop(self) -> LogBatch:
        """Remove and return the oldest batch. Raises IndexError when empty."""
        with self._lock:
            return self._batches.popleft()

    def prepend(self, batch: LogBatch):
        """Put a batch back at the head of the queue."""
        with self._lock:
            self._batches.appendleft(batch)
