"""FastAPI routes for image chat exchanges."""

import logging

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from controllers.chat_controller import ChatController
from services.openai.image_chat import ImageChatService
from utils.errors import MissingField, UpstreamFailure

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


class ChatResponse(BaseModel):
    response: str


class ErrorResponse(BaseModel):
    error: str


def get_image_chat_service(request: Request) -> ImageChatService:
    """Retrieve the shared model service from the app state."""
    service = getattr(request.app.state, "image_chat_service", None)
    if service is None:
        LOGGER.error("Model client not initialized; was the app started through its lifespan?")
        raise UpstreamFailure("Model client not initialized.")
    return service


@router.post(
    "/chat",
    response_model=ChatResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Ask a question about an uploaded image",
)
async def chat(request: Request, service: ImageChatService = Depends(get_image_chat_service)):
    """Forward the `prompt` and `image` form fields to the model and relay its answer.

    Args:
        request: Incoming multipart request; the form is read directly so that a
            missing field yields a 400 rather than a schema validation error.
        service: Model service created at startup.

    Returns:
        ChatResponse carrying the generated text.
    """
    try:
        form = await request.form()
    except StarletteHTTPException as exc:
        # Starlette reports unparseable multipart bodies this way.
        LOGGER.warning("Rejecting unreadable form body: %s", exc.detail)
        raise MissingField("form") from exc

    try:
        result = await ChatController(service).exchange(form)
    finally:
        await form.close()
    return ChatResponse(response=result.text)
