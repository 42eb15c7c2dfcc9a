from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from interview_assistant.config import Settings, settings as app_settings
from interview_assistant.schemas import (
	DetectionContext,
	DetectionRecord,
	HistoryEntry,
	StatusOut,
	UserSettings,
)
from interview_assistant.services.answer_service import AnswerSynthesizer
from interview_assistant.services.backends import validate_api_key
from interview_assistant.services.overlay import OverlayController
from interview_assistant.services.page_document import HtmlDocument
from interview_assistant.services.scanner import PageScanner
from interview_assistant.services.scheduler import DetectionScheduler
from interview_assistant.services.storage import JsonFileStore, KeyValueStore, MemoryStore, StorageManager
from interview_assistant.utils.audit import JsonlAuditor
from interview_assistant.utils.logging import set_debug


logger = logging.getLogger(__name__)

KeyValidator = Callable[[str, str], Awaitable[bool]]

OVERLAY_SETTINGS = ("overlay_position", "overlay_locked", "overlay_minimized")


class AssistantService:
	"""Wires detection to the overlay and applies settings changes at runtime."""

	def __init__(
		self,
		*,
		document: HtmlDocument,
		storage: StorageManager,
		scanner: PageScanner,
		scheduler: DetectionScheduler,
		overlay: OverlayController,
		auditor: Optional[JsonlAuditor] = None,
		config: Optional[Settings] = None,
		key_validator: KeyValidator = validate_api_key,
	) -> None:
		self.document = document
		self.storage = storage
		self.scanner = scanner
		self.scheduler = scheduler
		self.overlay = overlay
		self._auditor = auditor or JsonlAuditor()
		self._config = config or app_settings
		self._key_validator = key_validator

		self.enabled = False
		self.user_settings: Optional[UserSettings] = None
		self._callback_registered = False
		self._recent: List[DetectionRecord] = []
		self._tasks: Set[asyncio.Task] = set()

	async def start(self) -> None:
		self.user_settings = await self.storage.get_settings()
		set_debug(self.user_settings.debug, self._config.log_level)
		self.enabled = self.user_settings.enabled
		if not self.enabled:
			logger.info("Interview assistant is disabled")
			return
		await self._set_enabled(True)
		logger.info("Interview assistant initialized successfully")

	async def shutdown(self) -> None:
		self.scheduler.stop()
		await self.overlay.wait_idle()

	def _initialize_detector(self) -> None:
		if not self._callback_registered:
			self.scheduler.on_question_detected(self._handle_question_detected)
			self._callback_registered = True
		if self.user_settings is not None and self.user_settings.auto_detect:
			self.scheduler.start()

	async def _set_enabled(self, enabled: bool) -> None:
		self.enabled = enabled
		if enabled:
			await self.overlay.show()
			self._initialize_detector()
			logger.info("Interview assistant enabled")
		else:
			self.overlay.hide()
			self.scheduler.stop()
			logger.info("Interview assistant disabled")

	def _handle_question_detected(self, question: str, context: DetectionContext) -> None:
		logger.info("Question detected: %s", question)
		self.overlay.on_question_detected(question, context)

		record = DetectionRecord(
			id=uuid.uuid4().hex,
			question=question,
			context=context,
			url=context.url,
			timestamp=datetime.utcnow(),
		)
		self._recent.insert(0, record)
		del self._recent[self._config.max_recent_detections:]

		if self._auditor.enabled:
			task = asyncio.ensure_future(self._auditor.log({
				"type": "question_detected",
				"question": question,
				"platform": context.platform,
				"url": context.url,
			}))
			self._tasks.add(task)
			task.add_done_callback(self._tasks.discard)

	async def toggle(self) -> bool:
		enabled = not self.enabled
		await self.storage.update_setting("enabled", enabled)
		self.user_settings = await self.storage.get_settings()
		await self._set_enabled(enabled)
		return self.enabled

	async def update_settings(self, changes: Dict[str, Any]) -> UserSettings:
		updated = await self.storage.update_settings(changes)
		self.user_settings = updated
		set_debug(updated.debug, self._config.log_level)

		if "enabled" in changes and updated.enabled != self.enabled:
			await self._set_enabled(updated.enabled)

		if "auto_detect" in changes:
			if updated.auto_detect and self.enabled:
				self._initialize_detector()
			else:
				self.scheduler.stop()

		if any(key in changes for key in OVERLAY_SETTINGS):
			self.overlay.position = updated.overlay_position.model_copy()
			self.overlay.locked = updated.overlay_locked
			self.overlay.minimized = updated.overlay_minimized

		logger.debug("Settings updated: %s", sorted(changes))
		return updated

	def force_detection(self) -> Optional[str]:
		return self.scheduler.detect_question()

	def regenerate(self) -> Optional[asyncio.Task]:
		if self.scheduler.get_current_question() is None and self.overlay.question is None:
			return None
		return self.overlay.regenerate()

	def load_page(self, url: str, html: str) -> bool:
		return self.document.load(html, url=url)

	def is_supported_platform(self) -> bool:
		return self.scanner.is_supported_platform()

	def get_status(self) -> StatusOut:
		current = self.scheduler.get_current_question()
		return StatusOut(
			enabled=self.enabled,
			monitoring=self.scheduler.is_monitoring,
			has_question=current is not None,
			current_question=current,
			overlay_visible=self.overlay.is_shown(),
			supported_platform=self.is_supported_platform(),
			url=self.document.url,
		)

	def recent_detections(self) -> List[DetectionRecord]:
		return list(self._recent)

	async def get_history(self) -> List[HistoryEntry]:
		return await self.storage.get_history()

	async def clear_history(self) -> bool:
		self._recent = []
		return await self.storage.clear_history()

	async def test_api_key(self, provider: str, api_key: str) -> bool:
		try:
			return await self._key_validator(provider, api_key)
		except Exception:
			logger.exception("Error testing API key")
			return False


def build_services(config: Optional[Settings] = None, storage_store: Optional[KeyValueStore] = None) -> AssistantService:
	"""Construct the whole pipeline once; callers keep the returned service."""
	config = config or app_settings
	if storage_store is None:
		storage_store = JsonFileStore(config.store_path) if config.store_path else MemoryStore()

	document = HtmlDocument()
	storage = StorageManager(storage_store, max_history_entries=config.max_history_entries)
	scanner = PageScanner(document)
	scheduler = DetectionScheduler(
		scanner,
		debounce_s=config.debounce_ms / 1000.0,
		interval_s=config.periodic_interval_s,
		initial_delay_s=config.initial_delay_s,
	)
	synthesizer = AnswerSynthesizer(storage, config=config)
	overlay = OverlayController(
		synthesizer,
		storage,
		regenerate_bypasses_cache=config.regenerate_bypasses_cache,
	)
	auditor = JsonlAuditor(config.analytics_path)
	return AssistantService(
		document=document,
		storage=storage,
		scanner=scanner,
		scheduler=scheduler,
		overlay=overlay,
		auditor=auditor,
		config=config,
	)
