"""
HTTP transport for the CloudWatch Logs JSON API.

Requests are signed with AWS Signature Version 4 (botocore) and sent with
httpx. The engine only depends on the Transport protocol, so tests can swap
in a fake.
"""

import json
import logging
from dataclasses import dataclass
from typing import Protocol

import httpx
from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials

from .errors import TransportError

logger = logging.getLogger(__name__)

SERVICE_NAME = "logs"
TARGET_PREFIX = "Logs_20140328"
CONTENT_TYPE = "application/x-amz-json-1.1"


@dataclass
class CloudWatchResponse:
    """Status code and raw body of a CloudWatch Logs API call."""

    status_code: int
    body: bytes = b""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> dict:
        """Decode the body as JSON. An empty body decodes to {}."""
        if not self.body:
            return {}
        return json.loads(self.body.decode("utf-8"))


class Transport(Protocol):
    """Anything that can deliver a signed CloudWatch Logs request."""

    async def send(self, request_kind: str, json_body: str, target: str) -> CloudWatchResponse | None: ...

    async def aclose(self) -> None: ...


def target_for(operation: str) -> str:
    """X-Amz-Target header value for an API operation name."""
    return f"{TARGET_PREFIX}.{operation}"


class AwsTransport:
    """
    Sends SigV4-signed requests to the CloudWatch Logs endpoint of a region.

    One instance can be shared by every destination; the underlying
    httpx.AsyncClient pools connections.
    """

    def __init__(
        self,
        aws_access_key: str,
        aws_secret_key: str,
        region: str,
        aws_session_token: str | None = None,
        timeout: float = 10.0,
        endpoint: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.region = region
        self.endpoint = (endpoint or f"https://logs.{region}.amazonaws.com").rstrip("/") + "/"
        self.timeout = timeout
        self._credentials = Credentials(aws_access_key, aws_secret_key, aws_session_token)
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    def _sign(self, request_kind: str, json_body: str, target: str) -> AWSRequest:
        request = AWSRequest(
            method=request_kind,
            url=self.endpoint,
            data=json_body.encode("utf-8"),
            headers={"Content-Type": CONTENT_TYPE, "X-Amz-Target": target},
        )
        SigV4Auth(self._credentials, SERVICE_NAME, self.region).add_auth(request)
        return request

    async def send(self, request_kind: str, json_body: str, target: str) -> CloudWatchResponse:
        """
        Sign and send one API call.

        Args:
            request_kind: HTTP method, always "POST" for CloudWatch Logs
            json_body: Request payload as a JSON string
            target: Full X-Amz-Target, e.g. "Logs_20140328.PutLogEvents"

        Raises:
            TransportError: on connection errors and timeouts
        """
        signed = self._sign(request_kind, json_body, target)
        try:
            response = await self._client.request(
                request_kind,
                signed.url,
                content=json_body.encode("utf-8"),
                headers=dict(signed.headers.items()),
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise TransportError(f"{target} request to {self.endpoint} failed: {e}") from e

        logger.debug(f"{target} -> HTTP {response.status_code}")
        return CloudWatchResponse(status_code=response.status_code, body=response.content)

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
