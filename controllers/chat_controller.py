"""Controller for prompt-plus-image exchanges."""

import logging
from typing import Any, Mapping

from starlette.datastructures import UploadFile

from models.chat_models import ExchangeRequest, ExchangeResponse
from services.openai.image_chat import ImageChatService
from utils.errors import MissingField, UpstreamFailure
from utils.media_validation import read_image_upload, require_prompt, resolve_image_type

LOGGER = logging.getLogger(__name__)


async def build_exchange_request(form: Mapping[str, Any]) -> ExchangeRequest:
    """Validate the submitted form and return the request to forward.

    Args:
        form: Parsed multipart form with `prompt` and `image` entries.

    Returns:
        An ExchangeRequest with the raw image bytes and their media type.

    Raises:
        MissingField: If the prompt is absent or blank, or the image is absent or empty.
    """
    prompt = form.get("prompt")
    image = form.get("image")

    if not isinstance(prompt, str):
        raise MissingField("prompt")
    prompt = require_prompt(prompt)

    if not isinstance(image, UploadFile):
        raise MissingField("image")
    image_bytes = await read_image_upload(image)

    return ExchangeRequest(
        prompt=prompt,
        image_bytes=image_bytes,
        mime_type=resolve_image_type(image.content_type, image_bytes),
    )


class ChatController:
    """Coordinate exchanges between the API layer and the model service."""

    def __init__(self, service: ImageChatService) -> None:
        """Initialize the controller with the shared model service."""
        self.service = service

    async def exchange(self, form: Mapping[str, Any]) -> ExchangeResponse:
        """Validate a submission and return the model's answer.

        Raises:
            MissingField: Before any model call, when a field is absent.
            UpstreamFailure: When the model call fails for any reason.
        """
        request = await build_exchange_request(form)
        try:
            text = await self.service.generate(request.prompt, request.image_bytes, request.mime_type)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOGGER.exception("Error processing request")
            raise UpstreamFailure(str(exc)) from exc
        return ExchangeResponse(text=text)
