"""Utilities to build multimodal input payloads for the chat completions API."""

import base64
from typing import Any, Dict, List


def encode_image(image_bytes: bytes) -> str:
    """Base64-encode raw image bytes into an ASCII string."""
    return base64.b64encode(image_bytes).decode("ascii")


def to_image_data_url(image_bytes: bytes, mime_type: str) -> str:
    """Convert raw image bytes into a data URL suitable for vision input."""
    return f"data:{mime_type};base64,{encode_image(image_bytes)}"


def build_messages(prompt: str, image_url: str) -> List[Dict[str, Any]]:
    """Compose a single user turn carrying the prompt and the image together."""
    return [
        {
            "role": "user",
            "content": [
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": {"url": image_url}},
            ],
        }
    ]
