"""Log group / log stream name checks."""

import re

from .errors import InvalidDestinationError

GROUP_NAME_PATTERN = re.compile(r"^[.\-_/#A-Za-z0-9]+$")
STREAM_NAME_PATTERN = re.compile(r"^[^:*]*$")
MAX_NAME_LENGTH = 512


def validate_name(name: str | None, kind: str, pattern: re.Pattern):
    """Raise InvalidDestinationError unless name is 1-512 chars and matches pattern."""
    if name is None:
        raise InvalidDestinationError(
            f"CloudWatch ERROR: No {kind} supplied. Set it with set_logging_parameters(group_name, stream_name)"
        )
    if not 0 < len(name) <= MAX_NAME_LENGTH:
        raise InvalidDestinationError(
            f'Provided {kind} "{name}" is invalid. {kind} must be between 1 and {MAX_NAME_LENGTH} characters.'
        )
    if not pattern.fullmatch(name):
        raise InvalidDestinationError(
            f'Provided {kind} "{name}" doesnt match pattern {pattern.pattern} required of {kind}'
        )


def validate_destination(group_name: str | None, stream_name: str | None):
    validate_name(group_name, "groupName", GROUP_NAME_PATTERN)
    validate_name(stream_name, "streamName", STREAM_NAME_PATTERN)
