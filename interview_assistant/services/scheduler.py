from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional

from interview_assistant.schemas import DetectionContext
from interview_assistant.services.page_document import CHARACTER_DATA, CHILD_LIST, Mutation, Observation
from interview_assistant.services.scanner import PageScanner


logger = logging.getLogger(__name__)

QuestionCallback = Callable[[str, DetectionContext], None]

IDLE = "idle"
MONITORING = "monitoring"


class DetectionScheduler:
	"""Runs the page scanner and reports each new distinct question once.

	Three triggers feed one scan entry point: document mutations (debounced),
	a periodic timer for pages that change without observable mutations, and a
	one-shot initial scan after a startup delay. All timers live on the running
	asyncio loop and are cancelled synchronously by ``stop``.
	"""

	def __init__(
		self,
		scanner: PageScanner,
		*,
		debounce_s: float = 0.5,
		interval_s: float = 3.0,
		initial_delay_s: float = 1.0,
		context_factory: Optional[Callable[[], DetectionContext]] = None,
	) -> None:
		self._scanner = scanner
		self._debounce_s = debounce_s
		self._interval_s = interval_s
		self._initial_delay_s = initial_delay_s
		self._context_factory = context_factory or scanner.question_context

		self._callbacks: List[QuestionCallback] = []
		self._observations: List[Observation] = []
		self._loop: Optional[asyncio.AbstractEventLoop] = None
		self._debounce_handle: Optional[asyncio.TimerHandle] = None
		self._periodic_handle: Optional[asyncio.TimerHandle] = None
		self._initial_handle: Optional[asyncio.TimerHandle] = None

		self._monitoring = False
		self._dirty = False
		self.current_question: Optional[str] = None
		self.last_question: Optional[str] = None

	@property
	def state(self) -> str:
		return MONITORING if self._monitoring else IDLE

	@property
	def is_monitoring(self) -> bool:
		return self._monitoring

	@property
	def dirty(self) -> bool:
		return self._dirty

	def on_question_detected(self, callback: QuestionCallback) -> None:
		self._callbacks.append(callback)

	def start(self) -> None:
		if self._monitoring:
			return
		self._loop = asyncio.get_running_loop()
		self._monitoring = True
		self._observations.append(self._scanner.document.observe(self._handle_mutations))
		self._periodic_handle = self._loop.call_later(self._interval_s, self._periodic_tick)
		self._initial_handle = self._loop.call_later(self._initial_delay_s, self._initial_scan)
		logger.info("Question detector started")

	def stop(self) -> None:
		was_monitoring = self._monitoring
		self._monitoring = False
		self._dirty = False

		for observation in self._observations:
			observation.disconnect()
		self._observations = []

		for handle in (self._debounce_handle, self._periodic_handle, self._initial_handle):
			if handle is not None:
				handle.cancel()
		self._debounce_handle = None
		self._periodic_handle = None
		self._initial_handle = None
		if was_monitoring:
			logger.info("Question detector stopped")

	def _handle_mutations(self, mutations: List[Mutation]) -> None:
		if not self._monitoring or self._loop is None:
			return
		should_check = any(
			(m.kind == CHILD_LIST and m.added_nodes > 0) or m.kind == CHARACTER_DATA
			for m in mutations
		)
		if not should_check:
			return
		self._dirty = True
		# Only the latest change arms the debounce
		if self._debounce_handle is not None:
			self._debounce_handle.cancel()
		self._debounce_handle = self._loop.call_later(self._debounce_s, self._debounced_scan)

	def _debounced_scan(self) -> None:
		self._debounce_handle = None
		self._safe_detect()

	def _initial_scan(self) -> None:
		self._initial_handle = None
		self._safe_detect()

	def _periodic_tick(self) -> None:
		if not self._monitoring or self._loop is None:
			return
		# Re-arm first so a stop() from inside a callback cancels the next tick
		self._periodic_handle = self._loop.call_later(self._interval_s, self._periodic_tick)
		self._safe_detect()

	def _safe_detect(self) -> None:
		try:
			self.detect_question()
		except Exception:
			logger.exception("Question scan failed")

	def detect_question(self) -> Optional[str]:
		"""Scan now. Returns the question when it was new and callbacks ran."""
		if not self._monitoring:
			return None
		self._dirty = False

		question = self._scanner.scan()
		if not question or question == self.last_question:
			return None

		self.current_question = question
		self.last_question = question
		context = self._context_factory()
		logger.debug("New question accepted: %s", question)

		for callback in list(self._callbacks):
			# a callback may have stopped the detector
			if not self._monitoring:
				break
			try:
				callback(question, context)
			except Exception:
				logger.exception("Error in question detection callback")
		return question

	def get_current_question(self) -> Optional[str]:
		return self.current_question
