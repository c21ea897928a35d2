"""HTTP client for the `/api/chat` endpoint."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from models.chat_models import StagedImage

LOGGER = logging.getLogger(__name__)
CHAT_PATH = "/api/chat"


class ExchangeFailed(Exception):
    """The endpoint answered with an error or an unusable body."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ChatTransport:
    """Post one prompt and staged image as a multipart form and return the answer."""

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8000",
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """Initialize the transport.

        Args:
            base_url: Root URL of the image chat server.
            transport: Optional httpx transport, e.g. `httpx.ASGITransport(app=...)`.
            timeout: Request timeout in seconds; None leaves the request unbounded.
        """
        self.base_url = base_url
        self.transport = transport
        self.timeout = timeout

    async def send(self, prompt: str, image: StagedImage) -> str:
        """Submit an exchange and return the generated text.

        Raises:
            ExchangeFailed: On a non-2xx status or a body without a `response` string.
            httpx.HTTPError: On network failures.
        """
        async with httpx.AsyncClient(
            base_url=self.base_url, transport=self.transport, timeout=self.timeout
        ) as client:
            response = await client.post(
                CHAT_PATH,
                data={"prompt": prompt},
                files={"image": (image.filename, image.data, image.mime_type)},
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ExchangeFailed("Response body is not JSON", response.status_code) from exc

        if not response.is_success:
            error = payload.get("error") if isinstance(payload, dict) else None
            raise ExchangeFailed(error or "Failed to get response", response.status_code)

        text = payload.get("response") if isinstance(payload, dict) else None
        if not isinstance(text, str):
            raise ExchangeFailed("Response body has no text", response.status_code)
        return text
