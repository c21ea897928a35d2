"""Stage a single image for the next exchange from any of three sources.

The file picker, a drag-and-drop zone and clipboard paste all converge on
`ImageStager`. Only one image is ever staged; whichever load was started
last wins. Every load takes a ticket, and a load that finishes after a newer
one was started (or after `clear()`) is discarded instead of overwriting the
newer state.
"""

from __future__ import annotations

import base64
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Optional

import aiofiles

from models.chat_models import StagedImage
from utils.media_validation import normalize_content_type, sniff_image_type

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DroppedFile:
	"""A file delivered by a drop event."""

	filename: str
	content_type: str
	data: bytes


@dataclass(frozen=True)
class ClipboardItem:
	"""One entry of clipboard data; `data` is None for non-file items."""

	kind: str
	content_type: str
	data: Optional[bytes] = None


def is_image_type(content_type: Optional[str]) -> bool:
	return normalize_content_type(content_type).startswith("image/")


def to_preview(data: bytes, mime_type: str) -> str:
	"""Return a `data:` URL preview, the same shape a browser FileReader yields."""
	return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


class ImageStager:
	"""Hold at most one staged image and arbitrate between overlapping loads."""

	def __init__(self) -> None:
		self._staged: Optional[StagedImage] = None
		self._ticket = 0
		self._locked = False

	@property
	def staged(self) -> Optional[StagedImage]:
		return self._staged

	@property
	def has_image(self) -> bool:
		return self._staged is not None

	@property
	def locked(self) -> bool:
		return self._locked

	def lock(self) -> None:
		"""Refuse new images and drop pending loads while an exchange is in flight."""
		self._ticket += 1
		self._locked = True

	def unlock(self) -> None:
		self._locked = False

	def clear(self) -> None:
		"""Discard the staged image and any load still in progress."""
		self._ticket += 1
		self._staged = None

	async def stage_from_file_picker(self, path: str | Path) -> Optional[StagedImage]:
		"""Stage the file chosen in a file picker."""
		path = Path(path)

		async def load() -> Optional[StagedImage]:
			async with aiofiles.open(path, "rb") as fh:
				data = await fh.read()
			guessed, _ = mimetypes.guess_type(path.name)
			mime_type = guessed if is_image_type(guessed) else sniff_image_type(data)
			if mime_type is None:
				LOGGER.warning("Picked file %s is not an image; staged image unchanged", path.name)
				return None
			return self._build(data, mime_type, path.name)

		return await self._run(load)

	async def stage_from_drop(self, files: Iterable[DroppedFile]) -> Optional[StagedImage]:
		"""Stage the first image among the dropped files; other files are ignored."""
		dropped = next((f for f in files if is_image_type(f.content_type)), None)
		if dropped is None:
			LOGGER.debug("Drop carried no image; staged image unchanged")
			return None

		async def load() -> StagedImage:
			return self._build(dropped.data, normalize_content_type(dropped.content_type), dropped.filename)

		return await self._run(load)

	async def stage_from_clipboard(self, items: Iterable[ClipboardItem]) -> Optional[StagedImage]:
		"""Stage the first image found in pasted clipboard data."""
		pasted = next(
			(
				item
				for item in items
				if item.kind == "file" and item.data is not None and is_image_type(item.content_type)
			),
			None,
		)
		if pasted is None:
			return None

		mime_type = normalize_content_type(pasted.content_type)
		extension = mimetypes.guess_extension(mime_type) or ""

		async def load() -> StagedImage:
			return self._build(pasted.data, mime_type, f"pasted-image{extension}")

		return await self._run(load)

	async def _run(self, load: Callable[[], Awaitable[Optional[StagedImage]]]) -> Optional[StagedImage]:
		if self._locked:
			LOGGER.debug("Image staging is locked; ignoring new image")
			return None
		self._ticket += 1
		ticket = self._ticket
		image = await load()
		if image is None:
			return None
		if ticket != self._ticket or self._locked:
			LOGGER.debug("Discarding stale image load %d (latest is %d)", ticket, self._ticket)
			return None
		self._staged = image
		return image

	@staticmethod
	def _build(data: bytes, mime_type: str, filename: str) -> StagedImage:
		return StagedImage(data=data, mime_type=mime_type, filename=filename, preview=to_preview(data, mime_type))

