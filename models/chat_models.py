"""Chat domain models shared by the submission handler and the chat surface."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional


class Role(str, Enum):
	"""Author of a chat message."""

	USER = "user"
	BOT = "bot"


@dataclass(frozen=True)
class Message:
	"""One entry of the conversation log.

	Attributes:
		id: Creation-time derived identifier, strictly increasing within a session.
		role: Who produced the message.
		text: Prompt text for user messages, generated or apology text for bot messages.
		image: Optional `data:` URL preview, only set on user messages with an upload.
	"""

	id: str
	role: Role
	text: str
	image: Optional[str] = None


@dataclass
class MessageIdFactory:
	"""Hand out time-derived ids that never repeat or go backwards."""

	clock: Callable[[], int] = time.time_ns
	_last: int = field(default=0, init=False)

	def next_id(self) -> str:
		now = self.clock()
		self._last = now if now > self._last else self._last + 1
		return str(self._last)


@dataclass(frozen=True)
class StagedImage:
	"""An image picked, dropped or pasted but not yet submitted."""

	data: bytes
	mime_type: str
	filename: str
	preview: str


@dataclass(frozen=True)
class ExchangeRequest:
	"""Validated submission handed to the model."""

	prompt: str
	image_bytes: bytes
	mime_type: str


@dataclass(frozen=True)
class ExchangeResponse:
	"""Outcome of one exchange: generated text or an error kind."""

	text: Optional[str] = None
	error_kind: Optional[str] = None

	@property
	def ok(self) -> bool:
		return self.error_kind is None
