"""HTTP transport for the remote authentication round trip."""

import logging
from dataclasses import dataclass
from typing import Dict

import requests

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Raised when the round trip fails: connection failure or timeout."""


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    body: bytes

    @property
    def is_error(self) -> bool:
        return not 200 <= self.status_code < 300


class RequestsTransport:
    """
    Form-encoded POST over ``requests``.

    A session is opened per call, so one instance can be shared between
    concurrent attempts.
    """

    def post(self, url: str, data: Dict[str, str], timeout: float) -> TransportResponse:
        """
        POST ``data`` as application/x-www-form-urlencoded.

        Args:
            url: Endpoint URL
            data: Form fields
            timeout: Connect and read timeout in seconds

        Returns:
            Status code and raw body, whatever the status

        Raises:
            TransportError: On connection failure or timeout
        """
        try:
            with requests.Session() as session:
                response = session.post(url, data=data, timeout=timeout)
        except requests.Timeout as e:
            raise TransportError(f"Timed out after {timeout}s posting to {url}") from e
        except requests.RequestException as e:
            raise TransportError(f"Request to {url} failed: {e}") from e

        logger.debug("POST %s -> %s (%d bytes)", url, response.status_code, len(response.content))
        return TransportResponse(status_code=response.status_code, body=response.content)
