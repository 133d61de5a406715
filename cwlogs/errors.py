"""
Exceptions raised by the cwlogs client.

Everything derives from CloudWatchError so callers of ``log``/``log_many``
can catch a single type.
"""


class CloudWatchError(Exception):
    """Base error for the CloudWatch Logs client."""

    pass


class InvalidDestinationError(CloudWatchError):
    """Log group or log stream name is missing or malformed. Never retried."""

    pass


class OversizeMessageError(CloudWatchError):
    """A message exceeded the per-event size limit under the ``error`` policy."""

    pass


class TransportError(CloudWatchError):
    """Network failure or timeout talking to CloudWatch Logs."""

    pass


class ServiceError(CloudWatchError):
    """CloudWatch Logs answered with a response the client cannot recover from."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
        error_type: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.error_type = error_type
