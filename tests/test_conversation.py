"""Tests for the chat surface conversation state machine."""

from __future__ import annotations

import asyncio
from typing import List, Optional

import httpx
import pytest

from main import create_app
from models.chat_models import Role, StagedImage
from services.chat_surface.conversation import APOLOGY_TEXT, Conversation, ExchangePhase
from services.chat_surface.image_staging import ClipboardItem
from services.chat_surface.transport import ChatTransport, ExchangeFailed
from services.openai.image_chat import ImageChatService
from tests.conftest import FakeModelClient, make_png


class _RecordingTransport:
    """Transport stub that snapshots conversation state while the request is in flight."""

    def __init__(self, conversation_ref: List[Conversation], text: str = "ok", error: Optional[Exception] = None):
        self.conversation_ref = conversation_ref
        self.text = text
        self.error = error
        self.sent: List[tuple] = []
        self.seen_loading: List[bool] = []
        self.seen_can_submit: List[bool] = []
        self.seen_phase: List[ExchangePhase] = []
        self.nested_result = "unset"

    async def send(self, prompt: str, image: StagedImage) -> str:
        conversation = self.conversation_ref[0]
        self.sent.append((prompt, image))
        self.seen_loading.append(conversation.loading)
        self.seen_can_submit.append(conversation.can_submit)
        self.seen_phase.append(conversation.phase)
        self.nested_result = await conversation.submit()
        if self.error is not None:
            raise self.error
        return self.text


def _stub_conversation(**kwargs) -> tuple[Conversation, _RecordingTransport]:
    ref: List[Conversation] = []
    transport = _RecordingTransport(ref, **kwargs)
    conversation = Conversation(transport)
    ref.append(conversation)
    return conversation, transport


def _asgi_conversation(model_client: FakeModelClient) -> Conversation:
    app = create_app(image_chat_service=ImageChatService(model_client, "test-model"))
    transport = ChatTransport("http://testserver", transport=httpx.ASGITransport(app=app))
    return Conversation(transport)


def _stage(conversation: Conversation, data: bytes) -> None:
    asyncio.run(conversation.stager.stage_from_clipboard([ClipboardItem("file", "image/png", data)]))


def test_full_exchange_against_endpoint(png_bytes: bytes) -> None:
    """User and bot messages are appended in order with the model's exact text."""
    model_client = FakeModelClient("A red square.")
    conversation = _asgi_conversation(model_client)
    _stage(conversation, png_bytes)
    conversation.set_prompt("What is this?")

    outcome = asyncio.run(conversation.submit())

    assert outcome is not None and outcome.ok
    user, bot = conversation.messages
    assert user.role is Role.USER
    assert user.text == "What is this?"
    assert user.image is not None and user.image.startswith("data:image/png;base64,")
    assert bot.role is Role.BOT
    assert bot.text == "A red square."
    assert bot.image is None
    assert int(user.id) < int(bot.id)
    assert len(model_client.calls) == 1


def test_upstream_failure_shows_apology(png_bytes: bytes) -> None:
    conversation = _asgi_conversation(FakeModelClient(error=RuntimeError("boom")))
    _stage(conversation, png_bytes)
    conversation.set_prompt("What is this?")

    outcome = asyncio.run(conversation.submit())

    assert outcome is not None
    assert outcome.error_kind == "ExchangeFailed"
    assert [m.text for m in conversation.messages] == ["What is this?", APOLOGY_TEXT]


def test_each_exchange_adds_exactly_two_messages(png_bytes: bytes) -> None:
    conversation = _asgi_conversation(FakeModelClient("answer"))

    for index in range(3):
        _stage(conversation, png_bytes)
        conversation.set_prompt(f"question {index}")
        before = len(conversation.messages)
        asyncio.run(conversation.submit())
        assert len(conversation.messages) == before + 2

    roles = [m.role for m in conversation.messages]
    assert roles == [Role.USER, Role.BOT] * 3
    ids = [int(m.id) for m in conversation.messages]
    assert ids == sorted(ids) and len(set(ids)) == len(ids)


@pytest.mark.parametrize("prompt", ["", "   "])
def test_blank_prompt_blocks_submission(png_bytes: bytes, prompt: str) -> None:
    conversation, transport = _stub_conversation()
    _stage(conversation, png_bytes)
    conversation.set_prompt(prompt)

    assert conversation.can_submit is False
    assert asyncio.run(conversation.submit()) is None
    assert transport.sent == []
    assert conversation.messages == ()


def test_missing_image_blocks_submission() -> None:
    conversation, transport = _stub_conversation()
    conversation.set_prompt("Describe")

    assert conversation.phase is ExchangePhase.IDLE
    assert asyncio.run(conversation.submit()) is None
    assert transport.sent == []


def test_loading_flag_spans_request_and_blocks_resubmission(png_bytes: bytes) -> None:
    conversation, transport = _stub_conversation(text="A red square.")
    _stage(conversation, png_bytes)
    conversation.set_prompt("What is this?")
    assert conversation.phase is ExchangePhase.STAGED
    assert conversation.loading is False

    asyncio.run(conversation.submit())

    assert transport.seen_loading == [True]
    assert transport.seen_can_submit == [False]
    assert transport.seen_phase == [ExchangePhase.SUBMITTING]
    assert transport.nested_result is None
    assert len(transport.sent) == 1
    assert conversation.loading is False


def test_settlement_resets_prompt_and_image(png_bytes: bytes) -> None:
    conversation, _ = _stub_conversation(error=ExchangeFailed("Failed to process the request", 500))
    _stage(conversation, png_bytes)
    conversation.set_prompt("What is this?")

    asyncio.run(conversation.submit())

    assert conversation.prompt == ""
    assert conversation.stager.staged is None
    assert conversation.phase is ExchangePhase.IDLE
    assert conversation.messages[-1].text == APOLOGY_TEXT


def test_network_error_shows_apology(png_bytes: bytes) -> None:
    conversation, _ = _stub_conversation(error=httpx.ConnectError("refused"))
    _stage(conversation, png_bytes)
    conversation.set_prompt("Describe")

    outcome = asyncio.run(conversation.submit())

    assert outcome is not None and outcome.error_kind == "ConnectError"
    assert len(conversation.messages) == 2
    assert conversation.messages[-1].text == APOLOGY_TEXT


def test_staged_image_can_be_cleared(png_bytes: bytes) -> None:
    conversation, _ = _stub_conversation()
    _stage(conversation, png_bytes)
    conversation.set_prompt("Describe")
    assert conversation.can_submit is True

    conversation.clear_image()

    assert conversation.phase is ExchangePhase.IDLE
    assert conversation.can_submit is False


class _PastingTransport:
    """Transport stub that pastes a new image while the request is in flight."""

    def __init__(self, conversation_ref: List[Conversation], pasted: bytes) -> None:
        self.conversation_ref = conversation_ref
        self.pasted = pasted
        self.paste_result = "unset"
        self.phase_during_paste = None

    async def send(self, prompt: str, image: StagedImage) -> str:
        conversation = self.conversation_ref[0]
        self.phase_during_paste = conversation.phase
        self.paste_result = await conversation.stager.stage_from_clipboard(
            [ClipboardItem("file", "image/png", self.pasted)]
        )
        return "A red square."


def test_images_cannot_be_staged_while_submitting(png_bytes: bytes) -> None:
    """Image sources are ignored for the whole in-flight interval and reopen afterwards."""
    ref: List[Conversation] = []
    transport = _PastingTransport(ref, make_png("blue"))
    conversation = Conversation(transport)
    ref.append(conversation)
    _stage(conversation, png_bytes)
    conversation.set_prompt("What is this?")

    asyncio.run(conversation.submit())

    assert transport.phase_during_paste is ExchangePhase.SUBMITTING
    assert transport.paste_result is None
    assert conversation.stager.staged is None
    assert conversation.stager.locked is False

    _stage(conversation, png_bytes)
    assert conversation.phase is ExchangePhase.STAGED


def test_staging_reopens_after_failed_exchange(png_bytes: bytes) -> None:
    conversation, _ = _stub_conversation(error=ExchangeFailed("Failed to process the request", 500))
    _stage(conversation, png_bytes)
    conversation.set_prompt("What is this?")

    asyncio.run(conversation.submit())
    _stage(conversation, png_bytes)

    assert conversation.stager.locked is False
    assert conversation.stager.has_image is True


def test_cancelled_exchange_still_settles(png_bytes: bytes) -> None:
    """Cancellation propagates, but the log keeps its user/bot pairing and inputs reopen."""
    conversation, _ = _stub_conversation(error=asyncio.CancelledError())
    _stage(conversation, png_bytes)
    conversation.set_prompt("What is this?")

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(conversation.submit())

    assert [m.role for m in conversation.messages] == [Role.USER, Role.BOT]
    assert conversation.messages[-1].text == APOLOGY_TEXT
    assert conversation.loading is False
    assert conversation.stager.locked is False
