"""In-memory conversation state for the chat surface."""

from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional, Tuple

from models.chat_models import ExchangeResponse, Message, MessageIdFactory, Role
from services.chat_surface.image_staging import ImageStager
from services.chat_surface.transport import ChatTransport, ExchangeFailed

LOGGER = logging.getLogger(__name__)

APOLOGY_TEXT = "Sorry, there was an error processing your request. Please try again."


class ExchangePhase(str, Enum):
	IDLE = "idle"
	STAGED = "staged"
	SUBMITTING = "submitting"


class Conversation:
	"""Append-only message log plus the prompt and image being composed.

	One exchange is in flight at most: `submit` refuses to start while
	`loading` is set, so user and bot messages are always appended as
	consecutive pairs.
	"""

	def __init__(self, transport: ChatTransport, stager: Optional[ImageStager] = None) -> None:
		self.transport = transport
		self.stager = stager or ImageStager()
		self.prompt = ""
		self.loading = False
		self._messages: List[Message] = []
		self._ids = MessageIdFactory()

	@property
	def messages(self) -> Tuple[Message, ...]:
		return tuple(self._messages)

	@property
	def phase(self) -> ExchangePhase:
		if self.loading:
			return ExchangePhase.SUBMITTING
		if self.stager.has_image:
			return ExchangePhase.STAGED
		return ExchangePhase.IDLE

	@property
	def can_submit(self) -> bool:
		"""Whether the submit control is enabled."""
		return not self.loading and bool(self.prompt.strip()) and self.stager.has_image

	def set_prompt(self, text: str) -> None:
		if self.loading:
			return
		self.prompt = text

	def clear_image(self) -> None:
		if self.loading:
			return
		self.stager.clear()

	async def submit(self) -> Optional[ExchangeResponse]:
		"""Run one exchange and append its user and bot messages.

		Image staging is locked until the exchange settles.

		Returns:
			None when submission is blocked, otherwise the outcome of the exchange.
		"""
		if not self.can_submit:
			return None

		prompt = self.prompt
		image = self.stager.staged
		self._append(Role.USER, prompt, image.preview)
		self.loading = True
		self.stager.lock()

		# Stays in place only when the task is cancelled mid-request.
		outcome = ExchangeResponse(error_kind="Cancelled")
		try:
			text = await self.transport.send(prompt, image)
			outcome = ExchangeResponse(text=text)
		except ExchangeFailed as exc:
			LOGGER.error("Exchange failed with status %s: %s", exc.status_code, exc)
			outcome = ExchangeResponse(error_kind=type(exc).__name__)
		except Exception as exc:  # pylint: disable=broad-exception-caught
			LOGGER.error("Exchange request failed: %r", exc)
			outcome = ExchangeResponse(error_kind=type(exc).__name__)
		finally:
			self._append(Role.BOT, outcome.text if outcome.ok else APOLOGY_TEXT)
			self.loading = False
			self.prompt = ""
			self.stager.clear()
			self.stager.unlock()
		return outcome

	def _append(self, role: Role, text: str, image: Optional[str] = None) -> Message:
		message = Message(id=self._ids.next_id(), role=role, text=text, image=image)
		self._messages.append(message)
		return message
