"""
Delivery engine for one CloudWatch Logs destination (log group + log stream).

Usage:
    from cwlogs import CloudWatch, CloudWatchConfig

    config = CloudWatchConfig(aws_access_key="...", aws_secret_key="...", region="us-east-1")
    cw = CloudWatch(config, group_name="my-app", stream_name="web-1")

    await cw.log("Service started")
    await cw.log_many(["line 1", "line 2"])  # Same timestamp for both
    await cw.aclose()

Messages are packed into batches immediately; batches are then sent oldest
first, one request at a time per destination. Failed batches go back to the
head of the queue and are retried on the next call.
"""

import asyncio
import contextlib
import json
import logging

from .batcher import LogBatch, LogBatcher, now_millis
from .classifier import (
    Accepted,
    Fatal,
    RepairAction,
    RetryAfterRepair,
    RESOURCE_NOT_FOUND,
    classify_response,
    resource_created,
)
from .config import CloudWatchConfig
from .errors import CloudWatchError, ServiceError, TransportError
from .transport import AwsTransport, CloudWatchResponse, Transport, target_for
from .validation import validate_destination

logger = logging.getLogger(__name__)

CREATE_LOG_GROUP = target_for("CreateLogGroup")
CREATE_LOG_STREAM = target_for("CreateLogStream")
PUT_LOG_EVENTS = target_for("PutLogEvents")


class CloudWatch:
    """
    Sends logs to a single log stream.

    Safe to call concurrently: every request for this destination runs under
    one asyncio.Lock, while adding messages to the queue never waits for it.
    """

    def __init__(
        self,
        config: CloudWatchConfig,
        group_name: str | None = None,
        stream_name: str | None = None,
        transport: Transport | None = None,
    ):
        """
        Initialize the engine.

        Args:
            config: Credentials and delivery settings
            group_name: Log group the stream lives in
            stream_name: Log stream to write to
            transport: Request sender; defaults to an AwsTransport built from config
        """
        self.config = config
        self.group_name = group_name
        self.stream_name = stream_name
        self.delay = config.delay
        self.retries = config.retries

        if transport is None:
            transport = AwsTransport(
                config.aws_access_key,
                config.aws_secret_key,
                config.region,
                aws_session_token=config.aws_session_token,
                timeout=config.request_timeout,
                endpoint=config.endpoint,
            )
            self._owns_transport = True
        else:
            self._owns_transport = False
        self._transport = transport

        self._batcher = LogBatcher(config.large_message_behavior)
        self._lock = asyncio.Lock()
        self._sequence_token: str | None = None
        self._log_stream_created = False
        self._log_group_created = False
        self._flush_task: asyncio.Task | None = None

        # Stats
        self._sent_batches = 0
        self._sent_events = 0
        self._error_count = 0
        self._last_error: str | None = None

    @property
    def sequence_token(self) -> str | None:
        return self._sequence_token

    @property
    def batcher(self) -> LogBatcher:
        return self._batcher

    def set_delay(self, delay: float) -> float:
        """Set the pause before each send. Negative values become 0."""
        self.delay = max(0.0, delay)
        logger.debug(f"Set delay to {self.delay}s")
        return self.delay

    def set_logging_parameters(self, group_name: str | None, stream_name: str | None):
        self.group_name = group_name
        self.stream_name = stream_name

    async def log(self, message: str):
        """Send a single message."""
        await self.log_many([message])

    async def log_many(self, messages: list[str]):
        """
        Queue messages and send everything that is queued.

        All messages in one call share a timestamp.

        Raises:
            InvalidDestinationError: group/stream names missing or malformed
            OversizeMessageError: oversized message under the ``error`` policy
            CloudWatchError: delivery failed after all retries; unsent batches
                stay queued for the next call
        """
        logger.debug(f"Logging {len(messages)} messages to {self.group_name}/{self.stream_name}")
        validate_destination(self.group_name, self.stream_name)
        self.enqueue(messages)
        await self.flush()

    def enqueue(self, messages: list[str]):
        """Pack messages into the queue without sending anything."""
        self._batcher.add_logs(messages, timestamp=now_millis())

    async def flush(self):
        """Create the stream if needed, then send every queued batch."""
        validate_destination(self.group_name, self.stream_name)
        if not self._log_stream_created:
            async with self._lock:
                await self._create_log_stream_and_group()
        await self._send_all_logs()

    async def _create_log_stream_and_group(self):
        error: CloudWatchError | None = None
        for attempt in range(self.retries):
            try:
                await self._create_log_stream()
                return
            except CloudWatchError as e:
                if isinstance(e, ServiceError) and e.error_type == RESOURCE_NOT_FOUND:
                    # The group is missing too, whatever the local flag says
                    self._log_group_created = False
                    await self._create_log_group()
                    await self._create_log_stream()
                    return
                error = e
                self._record_error(e)
                logger.warning(f"Failed to create log stream {self.stream_name}. Retrying {attempt + 1}: {e}")
        raise error

    async def _create_log_stream(self):
        if self._log_stream_created:
            return
        logger.debug(f"Creating log stream {self.group_name}/{self.stream_name}")
        self._log_stream_created = True
        body = json.dumps({"logGroupName": self.group_name, "logStreamName": self.stream_name})
        try:
            response = await self._transport.send("POST", body, CREATE_LOG_STREAM)
            created = resource_created(response, "CreateLogStream")
        except BaseException:
            self._log_stream_created = False
            raise
        if created:
            logger.info(f"Created log stream {self.group_name}/{self.stream_name}")
        else:
            logger.debug(f"Log stream {self.group_name}/{self.stream_name} already exists")

    async def _create_log_group(self):
        if self._log_group_created:
            return
        logger.debug(f"Creating log group {self.group_name}")
        self._log_group_created = True
        body = json.dumps({"logGroupName": self.group_name})
        try:
            response = await self._transport.send("POST", body, CREATE_LOG_GROUP)
            created = resource_created(response, "CreateLogGroup")
        except BaseException:
            self._log_group_created = False
            raise
        if created:
            logger.info(f"Created log group {self.group_name}")
        else:
            logger.debug(f"Log group {self.group_name} already exists")

    async def _send_all_logs(self):
        while len(self._batcher) > 0:
            if self.delay:
                await asyncio.sleep(self.delay)
            async with self._lock:
                await self._send_logs()

    async def _send_logs(self):
        """Send the oldest batch. Must hold self._lock."""
        if len(self._batcher) == 0:
            logger.debug("All logs have already been sent")
            return

        batch = self._batcher.pop()
        success = False
        error: Exception | None = None
        try:
            for attempt in range(self.retries):
                try:
                    response = await self._put_log_events(batch)
                    success = await self._handle_response(response)
                except Exception as e:
                    error = e
                    self._record_error(e)
                    logger.warning(f"Failed to send {len(batch)} log events. Retrying {attempt + 1}: {e}")
                if success:
                    break
        finally:
            # Also runs on cancellation; an undelivered batch returns to the head
            if not success:
                self._batcher.prepend(batch)

        if not success:
            logger.error(f"Failed to send logs to {self.group_name}/{self.stream_name} after {self.retries} attempts")
            if error is None:
                raise ServiceError(
                    f"CloudWatch ERROR: Batch of {len(batch)} events was not accepted after {self.retries} attempts"
                )
            if isinstance(error, CloudWatchError):
                raise error
            raise TransportError(f"CloudWatch ERROR: Unexpected failure sending log events: {error}") from error

        self._sent_batches += 1
        self._sent_events += len(batch)

    def _create_body(self, batch: LogBatch) -> str:
        body = {
            "logEvents": batch.to_dicts(),
            "logGroupName": self.group_name,
            "logStreamName": self.stream_name,
        }
        if self._sequence_token is not None:
            body["sequenceToken"] = self._sequence_token
        return json.dumps(body)

    async def _put_log_events(self, batch: LogBatch) -> CloudWatchResponse | None:
        body = self._create_body(batch)
        logger.debug(f"Sending {len(batch)} log events ({batch.size} bytes)")
        return await self._transport.send("POST", body, PUT_LOG_EVENTS)

    async def _handle_response(self, response: CloudWatchResponse | None) -> bool:
        """
        Apply the classified outcome of a PutLogEvents call.

        Returns True if the batch is delivered, False if it should be resent.
        Raises ServiceError for fatal responses.
        """
        result = classify_response(response, self._sequence_token)

        if isinstance(result, Accepted):
            if result.already_accepted:
                logger.warning("Data already accepted; treating batch as delivered")
            self._sequence_token = result.token
            self._warn_rejected(response)
            return True

        if isinstance(result, RetryAfterRepair):
            await self._repair(result)
            return False

        if isinstance(result, Fatal):
            logger.error(result.reason)
            raise result.to_error()

        raise ServiceError(f"CloudWatch ERROR: Unhandled response classification {result!r}")

    async def _repair(self, result: RetryAfterRepair):
        if result.action is RepairAction.ADOPT_TOKEN:
            logger.warning("Found incorrect sequence token. Attempting to fix.")
            self._sequence_token = result.token
        elif result.action is RepairAction.RECREATE_STREAM:
            logger.warning(f"Log stream {self.stream_name} doesnt exist. Recreating.")
            self._log_stream_created = False
            self._sequence_token = None
            await self._create_log_stream()
        elif result.action is RepairAction.RECREATE_GROUP:
            logger.warning(f"Log group {self.group_name} doesnt exist. Recreating.")
            # A stream cannot outlive its group
            self._log_group_created = False
            self._log_stream_created = False
            self._sequence_token = None
            await self._create_log_group()
            await self._create_log_stream()

    def _warn_rejected(self, response: CloudWatchResponse | None):
        if response is None or response.status_code != 200:
            return
        try:
            rejected = response.json().get("rejectedLogEventsInfo")
        except (ValueError, AttributeError):
            return
        if rejected:
            logger.warning(f"CloudWatch rejected some log events: {rejected}")

    def _record_error(self, error: Exception):
        self._error_count += 1
        self._last_error = str(error)

    def get_stats(self) -> dict:
        """Get delivery statistics."""
        return {
            "group_name": self.group_name,
            "stream_name": self.stream_name,
            "sent_batches": self._sent_batches,
            "sent_events": self._sent_events,
            "error_count": self._error_count,
            "last_error": self._last_error,
            "pending_batches": len(self._batcher),
            "pending_events": self._batcher.pending_events,
            "log_stream_created": self._log_stream_created,
            "log_group_created": self._log_group_created,
            "has_sequence_token": self._sequence_token is not None,
        }

    def start_auto_flush(self, interval: float = 5.0) -> asyncio.Task:
        """Flush queued logs every ``interval`` seconds in a background task."""
        if self._flush_task is None or self._flush_task.done():
            self._flush_task = asyncio.create_task(self._flush_loop(interval))
        return self._flush_task

    async def _flush_loop(self, interval: float):
        while True:
            await asyncio.sleep(interval)
            if len(self._batcher) == 0:
                continue
            try:
                await self.flush()
            except CloudWatchError as e:
                # Batches stay queued; next tick retries them
                logger.warning(f"Background flush to {self.group_name}/{self.stream_name} failed: {e}")

    async def aclose(self):
        """Stop background flushing, send what is queued and close the transport."""
        if self._flush_task is not None:
            self._flush_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._flush_task
            self._flush_task = None
        try:
            if len(self._batcher) > 0:
                await self.flush()
        finally:
            if self._owns_transport:
                await self._transport.aclose()
