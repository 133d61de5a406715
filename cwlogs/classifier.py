"""
Classification of PutLogEvents responses.

Every response maps to exactly one of:

    Accepted          - the batch is stored; remember the new sequence token
    RetryAfterRepair  - fix local state (token, stream, group) and resend
    Fatal             - give up on this attempt and surface the response
"""

import json
from dataclasses import dataclass
from enum import Enum

from .errors import ServiceError
from .transport import CloudWatchResponse

INVALID_SEQUENCE_TOKEN = "InvalidSequenceTokenException"
RESOURCE_NOT_FOUND = "ResourceNotFoundException"
DATA_ALREADY_ACCEPTED = "DataAlreadyAcceptedException"
RESOURCE_ALREADY_EXISTS = "ResourceAlreadyExistsException"

STREAM_MISSING_MESSAGE = "The specified log stream does not exist."
GROUP_MISSING_MESSAGE = "The specified log group does not exist."


class RepairAction(Enum):
    """Local state fix applied before resending a batch."""

    ADOPT_TOKEN = "adopt_token"
    RECREATE_STREAM = "recreate_stream"
    RECREATE_GROUP = "recreate_group"


@dataclass(frozen=True)
class Accepted:
    token: str | None
    already_accepted: bool = False


@dataclass(frozen=True)
class RetryAfterRepair:
    action: RepairAction
    token: str | None = None


@dataclass(frozen=True)
class Fatal:
    reason: str
    status_code: int | None = None
    body: str | None = None
    error_type: str | None = None

    def to_error(self) -> ServiceError:
        return ServiceError(self.reason, status_code=self.status_code, body=self.body, error_type=self.error_type)


Classification = Accepted | RetryAfterRepair | Fatal


def decode_reply(response: CloudWatchResponse) -> dict | None:
    """Decode a JSON object body, or None if the body is not one."""
    try:
        reply = response.json()
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    return reply if isinstance(reply, dict) else None


def error_type_of(reply: dict | None) -> str | None:
    """The ``__type`` discriminator of an error reply."""
    if not reply:
        return None
    return reply.get("__type")


def classify_response(response: CloudWatchResponse | None, current_token: str | None) -> Classification:
    """
    Decide what to do with a PutLogEvents response.

    Args:
        response: Transport response, or None if nothing came back
        current_token: Sequence token that was sent with the request
    """
    if response is None:
        return Fatal("CloudWatch ERROR: Null response received from AWS")

    status_code = response.status_code
    reply = decode_reply(response)

    if status_code == 200:
        return Accepted(token=(reply or {}).get("nextSequenceToken"))

    error_type = error_type_of(reply)
    message = reply.get("message") if reply else None

    if error_type == INVALID_SEQUENCE_TOKEN:
        expected = reply.get("expectedSequenceToken")
        if expected != current_token:
            return RetryAfterRepair(RepairAction.ADOPT_TOKEN, token=expected)
    elif error_type == RESOURCE_NOT_FOUND and message == STREAM_MISSING_MESSAGE:
        return RetryAfterRepair(RepairAction.RECREATE_STREAM)
    elif error_type == RESOURCE_NOT_FOUND and message == GROUP_MISSING_MESSAGE:
        return RetryAfterRepair(RepairAction.RECREATE_GROUP)
    elif error_type == DATA_ALREADY_ACCEPTED:
        return Accepted(token=reply.get("expectedSequenceToken"), already_accepted=True)

    return Fatal(
        f"CloudWatch ERROR: StatusCode: {status_code}, AWS Response: {response.text}",
        status_code=status_code,
        body=response.text,
        error_type=error_type,
    )


def resource_created(response: CloudWatchResponse | None, operation: str) -> bool:
    """
    Check a CreateLogGroup/CreateLogStream response.

    Returns True when the resource was created and False when it already
    existed.

    Raises:
        ServiceError: for any other outcome; ``error_type`` carries the
            response discriminator so callers can react to
            ResourceNotFoundException.
    """
    if response is None:
        raise ServiceError(f"CloudWatch ERROR: Null response received from AWS for {operation}")
    if response.status_code == 200:
        return True

    reply = decode_reply(response)
    error_type = error_type_of(reply)
    if error_type == RESOURCE_ALREADY_EXISTS:
        return False
    raise ServiceError(
        f"CloudWatch ERROR: {operation} failed. StatusCode: {response.status_code}, AWS Response: {response.text}",
        status_code=response.status_code,
        body=response.text,
        error_type=error_type,
    )
