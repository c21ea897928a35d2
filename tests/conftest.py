"""Shared fixtures: a stand-in model client and small PNG images."""

from __future__ import annotations

import io
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from PIL import Image


class _FakeCompletions:
    """Records `chat.completions.create` calls and replays a canned outcome."""

    def __init__(self, text: Optional[str], error: Optional[Exception], response: Any) -> None:
        self.text = text
        self.error = error
        self.response = response
        self.calls: List[Dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        if self.response is not None:
            return self.response
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.text))])


class FakeModelClient:
    """Minimal object shaped like `AsyncOpenAI` for the calls the service makes."""

    def __init__(
        self,
        text: Optional[str] = "A red square.",
        *,
        error: Optional[Exception] = None,
        response: Any = None,
    ) -> None:
        self.completions = _FakeCompletions(text, error, response)
        self.chat = SimpleNamespace(completions=self.completions)

    @property
    def calls(self) -> List[Dict[str, Any]]:
        return self.completions.calls


def make_png(color: str = "red", size: tuple[int, int] = (10, 10)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def fake_client() -> FakeModelClient:
    return FakeModelClient()
