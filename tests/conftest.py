"""
Pytest configuration and fixtures.
Provides fakes for the language-model backend, the clock and the page.
"""

import asyncio
import re
from typing import Any, Dict, List, Optional

import pytest

from interview_assistant.config import Settings
from interview_assistant.errors import BackendError
from interview_assistant.services.answer_service import AnswerSynthesizer
from interview_assistant.services.assistant import AssistantService
from interview_assistant.services.overlay import OverlayController
from interview_assistant.services.page_document import HtmlDocument
from interview_assistant.services.scanner import PageScanner
from interview_assistant.services.scheduler import DetectionScheduler
from interview_assistant.services.storage import MemoryStore, StorageManager


_QUESTION_IN_PROMPT = re.compile(r'Interview Question: "(.*)"')


class FakeClock:
	def __init__(self, start: float = 1_700_000_000.0) -> None:
		self.now = start

	def __call__(self) -> float:
		return self.now

	def advance(self, seconds: float) -> None:
		self.now += seconds


class FakeBackend:
	"""Records calls; answers "answer to <question>" unless told otherwise."""

	def __init__(self, provider: str = "groq", hold: bool = False, error: Optional[Exception] = None) -> None:
		self.provider = provider
		self.model = "fake-model"
		self.hold = hold
		self.error = error
		self.calls: List[Dict[str, Any]] = []
		self.gates: List[asyncio.Event] = []

	async def generate(self, prompt: str, *, system_prompt: str, max_tokens: int, temperature: float) -> str:
		match = _QUESTION_IN_PROMPT.search(prompt)
		question = match.group(1) if match else prompt
		self.calls.append({
			"prompt": prompt,
			"question": question,
			"system_prompt": system_prompt,
			"max_tokens": max_tokens,
			"temperature": temperature,
		})
		if self.hold:
			gate = asyncio.Event()
			self.gates.append(gate)
			await gate.wait()
		if self.error is not None:
			raise self.error
		return f"answer to {question} #{len(self.calls)}"

	async def validate(self) -> bool:
		return True

	def release(self, index: int) -> None:
		self.gates[index].set()


class FakeBackendFactory:
	def __init__(self, backend: FakeBackend) -> None:
		self.backend = backend
		self.requests: List[tuple] = []

	def __call__(self, provider: str, api_key: str) -> FakeBackend:
		self.requests.append((provider, api_key))
		self.backend.provider = provider
		return self.backend


class FailingStore:
	async def get(self, key: str) -> Any:
		raise OSError("store unavailable")

	async def set(self, key: str, value: Any) -> None:
		raise OSError("store unavailable")


INTERVIEW_PAGE = """
<html><body>
  <header><span class="job-title">Senior Backend Engineer</span>
  <span class="company-name">Acme Corp</span></header>
  <main>
    <h2>Welcome to your interview</h2>
    <div data-testid="question-prompt">Question: Tell me about a time you disagreed with your manager.</div>
    <div class="timer">Time left 01:30</div>
    <div class="rec-indicator">REC</div>
  </main>
</body></html>
"""


@pytest.fixture
def clock() -> FakeClock:
	return FakeClock()


@pytest.fixture
def store() -> MemoryStore:
	return MemoryStore()


@pytest.fixture
def storage(store: MemoryStore, clock: FakeClock) -> StorageManager:
	return StorageManager(store, max_history_entries=5, clock=clock)


@pytest.fixture
def keyed_store() -> MemoryStore:
	return MemoryStore({"settings": {"api_key": "test-key-123", "enabled": True}})


@pytest.fixture
def keyed_storage(keyed_store: MemoryStore, clock: FakeClock) -> StorageManager:
	return StorageManager(keyed_store, max_history_entries=5, clock=clock)


@pytest.fixture
def fake_backend() -> FakeBackend:
	return FakeBackend()


@pytest.fixture
def backend_factory(fake_backend: FakeBackend) -> FakeBackendFactory:
	return FakeBackendFactory(fake_backend)


@pytest.fixture
def test_config() -> Settings:
	return Settings(
		store_path=None,
		debounce_ms=60_000,
		periodic_interval_s=60.0,
		initial_delay_s=60.0,
		answer_temperature=0.7,
		max_recent_detections=3,
	)


def build_assistant(
	storage: StorageManager,
	backend_factory: FakeBackendFactory,
	config: Settings,
	html: str = "",
	url: str = "https://app.hirevue.com/interviews/42",
	key_validator=None,
) -> AssistantService:
	document = HtmlDocument(html, url=url)
	scanner = PageScanner(document)
	scheduler = DetectionScheduler(
		scanner,
		debounce_s=config.debounce_ms / 1000.0,
		interval_s=config.periodic_interval_s,
		initial_delay_s=config.initial_delay_s,
	)
	synthesizer = AnswerSynthesizer(storage, backend_factory=backend_factory, config=config)
	overlay = OverlayController(synthesizer, storage, regenerate_bypasses_cache=config.regenerate_bypasses_cache)
	kwargs = {}
	if key_validator is not None:
		kwargs["key_validator"] = key_validator
	return AssistantService(
		document=document,
		storage=storage,
		scanner=scanner,
		scheduler=scheduler,
		overlay=overlay,
		config=config,
		**kwargs,
	)


def backend_error(message: str = "Groq API Error: rate limited") -> BackendError:
	return BackendError(message, provider="groq", status_code=429)
