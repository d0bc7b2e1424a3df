"""
Transports for the chat-completion endpoint.

A transport takes the request payload and returns the raw status code
and body; classifying the result is the orchestration loop's job.

- HttpTransport: plain ``requests`` POST
- OpenAITransport: the OpenAI SDK, for endpoints it handles better
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import openai
import requests
from openai import OpenAI

from .exceptions import TransportFailure
from .models import TransportType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportResponse:
    """Status code and body returned by the endpoint."""

    status_code: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class Transport(Protocol):
    """Anything that can POST a chat-completion payload."""

    def send(self, payload: dict) -> TransportResponse: ...

    def close(self) -> None: ...


class HttpTransport:
    """POSTs payloads to ``{base_url}/chat/completions`` with requests."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 60.0,
    ):
        self.url = base_url.rstrip("/") + "/chat/completions"
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
        )

    def send(self, payload: dict) -> TransportResponse:
        try:
            response = self._session.post(self.url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("POST to %s failed: %s", self.url, e)
            raise TransportFailure(f"Request to {self.url} failed: {e}") from e
        return TransportResponse(status_code=response.status_code, body=response.text)

    def close(self) -> None:
        self._session.close()


class OpenAITransport:
    """Sends payloads through the OpenAI SDK and returns the raw HTTP result."""

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
    ):
        # Retries are the caller's decision, never the SDK's
        self._client = OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    def send(self, payload: dict) -> TransportResponse:
        try:
            raw = self._client.chat.completions.with_raw_response.create(**payload)
        except openai.APIStatusError as e:
            return TransportResponse(status_code=e.status_code, body=e.response.text)
        except openai.APIConnectionError as e:
            logger.error("OpenAI SDK connection failed: %s", e)
            raise TransportFailure(f"Connection to endpoint failed: {e}") from e
        return TransportResponse(
            status_code=raw.http_response.status_code,
            body=raw.http_response.text,
        )

    def close(self) -> None:
        try:
            self._client.close()
        except Exception as e:
            logger.debug("Error closing OpenAI client: %s", e)


def build_transport(
    kind: str,
    api_key: str,
    base_url: str,
    timeout: float = 60.0,
) -> Transport:
    """
    Create a transport by name.

    Args:
        kind: ``"http"`` or ``"openai"``.

    Raises:
        ValueError: For an unknown transport name.
    """
    try:
        transport_type = TransportType(kind)
    except ValueError:
        raise ValueError(f"Unknown transport type: {kind}")

    if transport_type == TransportType.OPENAI:
        return OpenAITransport(api_key=api_key, base_url=base_url, timeout=timeout)
    return HttpTransport(api_key=api_key, base_url=base_url, timeout=timeout)
