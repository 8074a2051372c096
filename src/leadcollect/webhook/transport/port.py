"""Webhook transport port (abstract interface)."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class TransportResponse:
    """What came back from the endpoint."""

    status_code: int
    body: str = ""

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


class WebhookTransport(ABC):
    """Abstract interface for sending one webhook request."""

    @abstractmethod
    def post(self, url: str, body: bytes, headers: dict[str, str], timeout: float) -> TransportResponse:
        """POST ``body`` to ``url``.

        Raises:
            TransportError: no response was received (DNS, connect, timeout, ...).
        """
        ...
