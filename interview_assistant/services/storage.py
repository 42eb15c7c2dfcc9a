from __future__ import annotations

import asyncio
import json
import logging
import os
import time
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from interview_assistant.schemas import CacheEntry, HistoryEntry, UserSettings


logger = logging.getLogger(__name__)

SETTINGS_KEY = "settings"
HISTORY_KEY = "history"
CACHE_KEY = "responseCache"


class KeyValueStore(ABC):
	"""Opaque async map holding JSON-compatible blobs."""

	@abstractmethod
	async def get(self, key: str) -> Any:
		...

	@abstractmethod
	async def set(self, key: str, value: Any) -> None:
		...


class MemoryStore(KeyValueStore):
	def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
		self._data: Dict[str, Any] = json.loads(json.dumps(initial or {}))

	async def get(self, key: str) -> Any:
		value = self._data.get(key)
		# Hand out copies so callers never mutate stored state in place
		return json.loads(json.dumps(value)) if value is not None else None

	async def set(self, key: str, value: Any) -> None:
		self._data[key] = json.loads(json.dumps(value))


class JsonFileStore(KeyValueStore):
	"""All keys in one JSON file, rewritten whole on every set."""

	def __init__(self, path: str | Path) -> None:
		self._path = Path(path)
		self._lock = asyncio.Lock()

	@property
	def path(self) -> Path:
		return self._path

	def _read(self) -> Dict[str, Any]:
		if not self._path.exists():
			return {}
		with self._path.open("r", encoding="utf-8") as f:
			raw = json.load(f)
		return raw if isinstance(raw, dict) else {}

	def _write(self, data: Dict[str, Any]) -> None:
		self._path.parent.mkdir(parents=True, exist_ok=True)
		tmp = self._path.with_suffix(self._path.suffix + ".tmp")
		with tmp.open("w", encoding="utf-8") as f:
			json.dump(data, f, ensure_ascii=False, indent=2)
		os.replace(tmp, self._path)

	async def get(self, key: str) -> Any:
		async with self._lock:
			return self._read().get(key)

	async def set(self, key: str, value: Any) -> None:
		async with self._lock:
			data = self._read()
			data[key] = value
			self._write(data)


def hash_string(text: str) -> str:
	"""32-bit rolling hash (``h * 31 + unit`` over UTF-16 code units).

	Narrow and non-cryptographic: two questions can collide and share a
	cache slot.
	"""
	data = text.encode("utf-16-le")
	h = 0
	for i in range(0, len(data), 2):
		unit = data[i] | (data[i + 1] << 8)
		h = (h * 31 + unit) & 0xFFFFFFFF
	if h >= 0x80000000:
		h -= 0x100000000
	return str(h)


class StorageManager:
	"""Settings, history and response cache on top of a key-value store.

	Store failures are logged and degrade gracefully: settings fall back to
	defaults, history and cache operations become no-ops.
	"""

	def __init__(
		self,
		store: KeyValueStore,
		*,
		max_history_entries: int = 50,
		clock: Callable[[], float] = time.time,
	) -> None:
		self._store = store
		self._max_history_entries = max_history_entries
		self._clock = clock
		self._lock = asyncio.Lock()

	def _now_ms(self) -> int:
		return int(self._clock() * 1000)

	# Settings

	async def get_settings(self) -> UserSettings:
		try:
			raw = await self._store.get(SETTINGS_KEY) or {}
			merged = {**UserSettings().model_dump(), **raw}
			return UserSettings.model_validate(merged)
		except Exception:
			logger.exception("Error getting settings, using defaults")
			return UserSettings()

	async def save_settings(self, value: UserSettings) -> bool:
		try:
			await self._store.set(SETTINGS_KEY, value.model_dump(mode="json"))
			return True
		except Exception:
			logger.exception("Error saving settings")
			return False

	async def get_setting(self, key: str) -> Any:
		current = await self.get_settings()
		return getattr(current, key)

	async def update_settings(self, changes: Dict[str, Any]) -> UserSettings:
		async with self._lock:
			current = await self.get_settings()
			updated = UserSettings.model_validate({**current.model_dump(), **changes})
			await self.save_settings(updated)
			return updated

	async def update_setting(self, key: str, value: Any) -> bool:
		if key not in UserSettings.model_fields:
			raise KeyError(f"unknown setting: {key}")
		async with self._lock:
			current = await self.get_settings()
			updated = UserSettings.model_validate({**current.model_dump(), key: value})
			return await self.save_settings(updated)

	# History

	async def get_history(self) -> List[HistoryEntry]:
		try:
			raw = await self._store.get(HISTORY_KEY) or []
			return [HistoryEntry.model_validate(item) for item in raw]
		except Exception:
			logger.exception("Error getting history")
			return []

	async def add_to_history(self, question: str, answer: str, url: str = "") -> Optional[HistoryEntry]:
		entry = HistoryEntry(
			id=uuid.uuid4().hex,
			question=question,
			answer=answer,
			url=url,
			timestamp=datetime.utcnow(),
		)
		async with self._lock:
			try:
				history = await self._store.get(HISTORY_KEY) or []
				history.insert(0, entry.model_dump(mode="json"))
				# Keep only the configured number of entries, newest first
				del history[self._max_history_entries:]
				await self._store.set(HISTORY_KEY, history)
			except Exception:
				logger.exception("Error adding to history")
				return None
		return entry

	async def clear_history(self) -> bool:
		try:
			await self._store.set(HISTORY_KEY, [])
			return True
		except Exception:
			logger.exception("Error clearing history")
			return False

	# Response cache

	async def get_cached_response(self, question: str, ttl_hours: float) -> Optional[CacheEntry]:
		try:
			cache = await self._store.get(CACHE_KEY) or {}
			raw = cache.get(hash_string(question))
			if raw is None:
				return None
			entry = CacheEntry.model_validate(raw)
		except Exception:
			logger.exception("Error getting cached response")
			return None
		if entry.timestamp < self._now_ms() - int(ttl_hours * 3600 * 1000):
			return None
		return entry

	async def cache_response(self, question: str, answer: str, ttl_hours: float) -> bool:
		now = self._now_ms()
		expiry = now - int(ttl_hours * 3600 * 1000)
		async with self._lock:
			try:
				cache: Dict[str, Any] = await self._store.get(CACHE_KEY) or {}
				cache[hash_string(question)] = CacheEntry(answer=answer, timestamp=now).model_dump()
				cache = {
					key: value for key, value in cache.items()
					if isinstance(value, dict) and value.get("timestamp", 0) >= expiry
				}
				await self._store.set(CACHE_KEY, cache)
				return True
			except Exception:
				logger.exception("Error caching response")
				return False
