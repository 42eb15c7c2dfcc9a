from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional, Set

from interview_assistant.constants import Messages
from interview_assistant.errors import AssistantError
from interview_assistant.schemas import DetectionContext, OverlayPosition, OverlaySnapshot, OverlayState
from interview_assistant.services.answer_service import AnswerSynthesizer
from interview_assistant.services.storage import StorageManager


logger = logging.getLogger(__name__)

SnapshotListener = Callable[[OverlaySnapshot], None]


class OverlayController:
	"""State of the floating answer panel.

	idle -> loading -> ready | error, and back to loading on regenerate or on a
	new question. Every synthesis carries a request id; a result is rendered
	(and written to history) only while its id is still the active one, so an
	answer for an earlier question can never show up under a newer question.
	"""

	def __init__(
		self,
		synthesizer: AnswerSynthesizer,
		storage: StorageManager,
		*,
		regenerate_bypasses_cache: bool = False,
	) -> None:
		self._synthesizer = synthesizer
		self._storage = storage
		self._regenerate_bypasses_cache = regenerate_bypasses_cache

		self.state = OverlayState.IDLE
		self.question: Optional[str] = None
		self.answer: Optional[str] = None
		self.error: Optional[str] = None
		self.visible = False
		self.minimized = False
		self.locked = False
		self.position = OverlayPosition()

		self._context: Optional[DetectionContext] = None
		self._request_seq = 0
		self._active_request: Optional[int] = None
		self._loaded = False
		self._tasks: Set[asyncio.Task] = set()
		self._listeners: List[SnapshotListener] = []

	@property
	def synthesizer(self) -> AnswerSynthesizer:
		return self._synthesizer

	# Rendering

	def snapshot(self) -> OverlaySnapshot:
		return OverlaySnapshot(
			state=self.state,
			visible=self.visible,
			minimized=self.minimized,
			locked=self.locked,
			position=self.position.model_copy(),
			question=self.question,
			answer=self.answer,
			error=self.error,
		)

	def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
		self._listeners.append(listener)

		def _unsubscribe() -> None:
			if listener in self._listeners:
				self._listeners.remove(listener)

		return _unsubscribe

	def _notify(self) -> None:
		snap = self.snapshot()
		for listener in list(self._listeners):
			try:
				listener(snap)
			except Exception:
				logger.exception("Overlay listener failed")

	# Visibility

	async def show(self) -> None:
		if not self._loaded:
			await self._load_position()
			self._loaded = True
		self.visible = True
		self._notify()

	def hide(self) -> None:
		self.visible = False
		self._notify()

	def close(self) -> None:
		self.hide()

	def is_shown(self) -> bool:
		return self.visible

	async def _load_position(self) -> None:
		user_settings = await self._storage.get_settings()
		self.position = user_settings.overlay_position.model_copy()
		self.locked = user_settings.overlay_locked
		self.minimized = user_settings.overlay_minimized

	# Question / answer flow

	def on_question_detected(self, question: str, context: Optional[DetectionContext] = None) -> asyncio.Task:
		"""Adopt ``question`` as current and start synthesis. Loading is set before returning."""
		self.question = question
		self._context = context
		return self._begin(use_cache=True)

	def regenerate(self) -> Optional[asyncio.Task]:
		if not self.question:
			return None
		return self._begin(use_cache=not self._regenerate_bypasses_cache)

	@property
	def pending(self) -> bool:
		return self.state == OverlayState.LOADING

	def _begin(self, use_cache: bool) -> asyncio.Task:
		self._request_seq += 1
		request_id = self._request_seq
		self._active_request = request_id
		self.state = OverlayState.LOADING
		self.answer = None
		self.error = None
		self._notify()

		task = asyncio.ensure_future(self._synthesize(request_id, self.question, self._context, use_cache))
		self._tasks.add(task)
		task.add_done_callback(self._tasks.discard)
		return task

	def _is_current(self, request_id: int, question: Optional[str]) -> bool:
		return request_id == self._active_request and question == self.question

	async def _synthesize(
		self,
		request_id: int,
		question: str,
		context: Optional[DetectionContext],
		use_cache: bool,
	) -> Optional[str]:
		try:
			answer = await self._synthesizer.generate(question, context, use_cache=use_cache)
		except AssistantError as e:
			logger.warning("Error generating answer: %s", e.message)
			if self._is_current(request_id, question):
				self.state = OverlayState.ERROR
				self.error = e.message
				self._notify()
			return None
		except Exception:
			logger.exception("Unexpected error generating answer")
			if self._is_current(request_id, question):
				self.state = OverlayState.ERROR
				self.error = Messages.ERROR_GENERATING
				self._notify()
			return None

		if not self._is_current(request_id, question):
			logger.debug("Discarding stale answer for: %s", question)
			return None

		self.state = OverlayState.READY
		self.answer = answer
		self._notify()
		await self._storage.add_to_history(question, answer, context.url if context else "")
		return answer

	# User actions

	def copy(self) -> Optional[str]:
		if self.state != OverlayState.READY or not self.answer:
			return None
		return self.answer

	async def toggle_minimize(self) -> bool:
		self.minimized = not self.minimized
		self._notify()
		await self._storage.update_setting("overlay_minimized", self.minimized)
		return self.minimized

	async def toggle_lock(self) -> bool:
		self.locked = not self.locked
		self._notify()
		await self._storage.update_setting("overlay_locked", self.locked)
		return self.locked

	async def move_to(
		self,
		x: int,
		y: int,
		*,
		viewport_width: int,
		viewport_height: int,
		width: int = 300,
		height: int = 200,
	) -> bool:
		"""Move the panel, kept inside the viewport. Ignored while locked."""
		if self.locked:
			return False
		max_x = max(0, viewport_width - width)
		max_y = max(0, viewport_height - height)
		self.position = OverlayPosition(x=max(0, min(x, max_x)), y=max(0, min(y, max_y)))
		self._notify()
		await self._storage.update_setting("overlay_position", self.position.model_dump())
		return True

	async def wait_idle(self) -> None:
		"""Wait for every in-flight synthesis, including superseded ones."""
		if self._tasks:
			await asyncio.gather(*list(self._tasks), return_exceptions=True)
