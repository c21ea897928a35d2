"""Answer a prompt about an image through an OpenAI-compatible chat endpoint."""

import logging
import time
from typing import Any

from openai import AsyncOpenAI

from services.openai.media_inputs import build_messages, to_image_data_url
from services.openai.response_utils import extract_text, serialize_response

LOGGER = logging.getLogger(__name__)


class ImageChatService:
    """Send one prompt plus one image to a fixed model and return its text."""

    def __init__(self, client: AsyncOpenAI, model: str) -> None:
        """Initialize the service with a shared async client.

        Args:
            client: Async OpenAI client created once at startup.
            model: Fixed model identifier every request is addressed to.
        """
        if client is None:
            raise ValueError("OpenAI client must be provided.")
        if not model:
            raise ValueError("Model identifier must be provided.")
        self.client = client
        self.model = model

    async def generate(self, prompt: str, image_bytes: bytes, mime_type: str) -> str:
        """Return the model's answer to `prompt` about the given image.

        Args:
            prompt: User question, forwarded unchanged.
            image_bytes: Raw bytes of the uploaded image.
            mime_type: Media type declared for the image.

        Returns:
            The generated text, unmodified.

        Raises:
            Exception: Whatever the SDK raises, or ValueError for a response without text.
        """
        start_time = time.time()
        image_url = to_image_data_url(image_bytes, mime_type)
        LOGGER.debug("Sending %d image bytes (%s) to %s", len(image_bytes), mime_type, self.model)

        response = await self._create_completion(build_messages(prompt, image_url))
        text = self._parse_response(response)

        LOGGER.info("Model %s answered in %.2fs", self.model, time.time() - start_time)
        return text

    async def _create_completion(self, messages: Any) -> Any:
        """Send the multimodal request to the chat completions API."""
        try:
            return await self.client.chat.completions.create(model=self.model, messages=messages)
        except Exception as exc:
            LOGGER.error("Error during chat completion call: %s", exc)
            raise

    def _parse_response(self, response: Any) -> str:
        """Pull the generated text out of the model response."""
        try:
            return extract_text(response)
        except ValueError as exc:
            LOGGER.error("Error parsing model response: %s", exc)
            LOGGER.debug("Full response object: %r", serialize_response(response))
            raise
