"""Utilities for reading chat completion responses."""

from typing import Any


def extract_text(response: Any) -> str:
    """Return the generated text of the first choice.

    Args:
        response: Object returned by `AsyncOpenAI.chat.completions.create`.

    Returns:
        The message content exactly as the model produced it.

    Raises:
        ValueError: If the response carries no choices or no text content.
    """
    choices = getattr(response, "choices", None)
    if not choices:
        raise ValueError("Model response did not include any choices.")

    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if not isinstance(content, str):
        raise ValueError("Model response did not include text content.")
    return content


def serialize_response(response: Any) -> Any:
    """Convert a response object into a serializable structure."""
    if hasattr(response, "model_dump"):
        return response.model_dump()
    if hasattr(response, "to_dict"):
        return response.to_dict()
    return str(response)
