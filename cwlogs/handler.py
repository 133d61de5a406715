"""
Multi-destination registry and stdlib logging integration.

Usage:
    from cwlogs import CloudWatchHandler, from_env

    handler = CloudWatchHandler(from_env())
    await handler.log_many(
        messages=["job started", "job finished"],
        group_name="batch-jobs",
        stream_name="nightly",
    )
    await handler.aclose()

    # Route stdlib logging into a stream
    cw = handler.get_or_create_instance("my-app", "web-1")
    log_handler = setup_logging(cw)
    logging.getLogger(__name__).info("Service started")
    await log_handler.flush_async()
"""

import logging

from .config import CloudWatchConfig
from .engine import CloudWatch
from .transport import AwsTransport, Transport

logger = logging.getLogger(__name__)

# Records from these loggers are never shipped; they fire while shipping
EXCLUDED_LOGGERS = ("cwlogs", "httpx", "httpcore", "botocore")


class CloudWatchHandler:
    """
    Keeps one CloudWatch engine per (log group, log stream).

    Engines are created on first use and kept for the life of the handler.
    They share a single transport.
    """

    def __init__(self, config: CloudWatchConfig, transport: Transport | None = None):
        self.config = config
        self._instances: dict[tuple[str, str], CloudWatch] = {}
        self._transport = transport
        self._owns_transport = transport is None

    @property
    def transport(self) -> Transport:
        if self._transport is None:
            self._transport = AwsTransport(
                self.config.aws_access_key,
                self.config.aws_secret_key,
                self.config.region,
                aws_session_token=self.config.aws_session_token,
                timeout=self.config.request_timeout,
                endpoint=self.config.endpoint,
            )
        return self._transport

    @property
    def instances(self) -> dict[tuple[str, str], CloudWatch]:
        return dict(self._instances)

    def get_instance(self, group_name: str, stream_name: str) -> CloudWatch | None:
        """Return the engine for a destination, or None if none was created yet."""
        return self._instances.get((group_name, stream_name))

    def get_or_create_instance(self, group_name: str, stream_name: str) -> CloudWatch:
        instance = self.get_instance(group_name, stream_name)
        if instance is None:
            instance = CloudWatch(
                self.config,
                group_name=group_name,
                stream_name=stream_name,
                transport=self.transport,
            )
            self._instances[(group_name, stream_name)] = instance
            logger.debug(f"Created CloudWatch instance for {group_name}/{stream_name}")
        return instance

    async def log(self, msg: str, group_name: str, stream_name: str):
        """Send one message to group_name/stream_name."""
        await self.log_many([msg], group_name, stream_name)

    async def log_many(self, messages: list[str], group_name: str, stream_name: str):
        """Send messages to group_name/stream_name. They share a timestamp."""
        await self.get_or_create_instance(group_name, stream_name).log_many(messages)

    async def aclose(self):
        """
        Flush every destination and close the shared transport.

        Every destination gets its flush attempt; the first failure is
        raised once the transport is closed.
        """
        first_error: Exception | None = None
        for (group_name, stream_name), instance in self._instances.items():
            try:
                await instance.aclose()
            except Exception as e:
                logger.warning(f"Failed to flush {group_name}/{stream_name} on close: {e}")
                if first_error is None:
                    first_error = e
        if self._owns_transport and self._transport is not None:
            await self._transport.aclose()
        if first_error is not None:
            raise first_error


class CloudWatchLogHandler(logging.Handler):
    """
    Python logging handler that queues records for a CloudWatch stream.

    emit() only packs the formatted record into the engine's queue; nothing
    is sent until flush_async() runs or the engine's auto-flush fires.
    """

    def __init__(self, engine: CloudWatch, min_level: int = logging.INFO):
        """
        Initialize the handler.

        Args:
            engine: Destination to ship records to
            min_level: Minimum log level to ship (default: INFO)
        """
        super().__init__(level=min_level)
        self.engine = engine

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.split(".")[0] in EXCLUDED_LOGGERS:
            return False
        return super().filter(record)

    def emit(self, record: logging.LogRecord):
        try:
            self.engine.enqueue([self.format(record)])
        except Exception:
            self.handleError(record)

    async def flush_async(self):
        """Send everything queued so far."""
        await self.engine.flush()


def setup_logging(
    engine: CloudWatch,
    min_level: int = logging.INFO,
    also_console: bool = True,
    auto_flush_interval: float | None = None,
) -> CloudWatchLogHandler:
    """
    Attach a CloudWatchLogHandler to the root logger.

    Args:
        engine: Destination for log records
        min_level: Minimum log level to ship
        also_console: Also log to console (default: True)
        auto_flush_interval: If set, flush in the background every N seconds
            (requires a running event loop)

    Returns:
        The installed handler
    """
    handler = CloudWatchLogHandler(engine, min_level=min_level)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    root_logger = logging.getLogger()
    root_logger.addHandler(handler)

    if also_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        root_logger.addHandler(console_handler)

    if root_logger.level == logging.NOTSET or root_logger.level > min_level:
        root_logger.setLevel(min_level)

    if auto_flush_interval:
        engine.start_auto_flush(auto_flush_interval)

    return handler
