"""Tests for the Groq and Gemini backends with their SDKs faked out."""

from types import SimpleNamespace

import httpx
import pytest
from google.api_core import exceptions as google_exceptions
from groq import APIConnectionError, RateLimitError

from interview_assistant.config import Settings
from interview_assistant.errors import BackendError, ConfigError
from interview_assistant.services.backends import (
	GeminiBackend,
	GroqBackend,
	build_backend,
	validate_api_key,
)


GROQ_URL = "https://api.groq.com/openai/v1/chat/completions"


class FakeGroqClient:
	def __init__(self, content="  A spoken answer.  ", error=None, models_error=None):
		self.kwargs = None
		self.requests = []
		self._content = content
		self._error = error
		self._models_error = models_error
		self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))
		self.models = SimpleNamespace(list=self._list)

	def __call__(self, **kwargs):
		self.kwargs = kwargs
		return self

	def _create(self, **kwargs):
		self.requests.append(kwargs)
		if self._error is not None:
			raise self._error
		message = SimpleNamespace(content=self._content)
		return SimpleNamespace(choices=[SimpleNamespace(message=message)])

	def _list(self):
		if self._models_error is not None:
			raise self._models_error
		return SimpleNamespace(data=[])


class FakeGenAI:
	"""Stands in for the ``google.generativeai`` module."""

	def __init__(self, text="Jawaban lisan.", error=None, list_error=None, candidates=None):
		self.configured = []
		self.models = []
		self.requests = []
		self._text = text
		self._error = error
		self._list_error = list_error
		self._candidates = candidates

	def configure(self, api_key):
		self.configured.append(api_key)

	def GenerativeModel(self, model, system_instruction=None):
		self.models.append((model, system_instruction))
		return SimpleNamespace(generate_content=self._generate)

	def _generate(self, contents, generation_config=None):
		self.requests.append({"contents": contents, "generation_config": generation_config})
		if self._error is not None:
			raise self._error
		if self._candidates is not None:
			return SimpleNamespace(candidates=self._candidates)
		part = SimpleNamespace(text=self._text)
		return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])

	def list_models(self):
		if self._list_error is not None:
			raise self._list_error
		return iter([SimpleNamespace(name="models/gemini-2.5-pro")])


def rate_limit_error():
	response = httpx.Response(429, request=httpx.Request("POST", GROQ_URL))
	return RateLimitError(
		"Error code: 429",
		response=response,
		body={"error": {"message": "Rate limit reached for model"}},
	)


@pytest.mark.unit
class TestGroqBackend:
	"""Chat completions wire protocol."""

	@pytest.mark.asyncio
	async def test_generate_sends_chat_request(self):
		client = FakeGroqClient()
		backend = GroqBackend("gsk-test", "openai/gpt-oss-120b", client_factory=client)
		answer = await backend.generate("the prompt", system_prompt="be a coach", max_tokens=400, temperature=0.7)

		assert answer == "A spoken answer."
		assert client.kwargs == {"api_key": "gsk-test", "max_retries": 0}
		request = client.requests[0]
		assert request["model"] == "openai/gpt-oss-120b"
		assert request["max_tokens"] == 400
		assert request["temperature"] == 0.7
		assert request["messages"] == [
			{"role": "system", "content": "be a coach"},
			{"role": "user", "content": "the prompt"},
		]

	@pytest.mark.asyncio
	async def test_status_error_carries_provider_message(self):
		backend = GroqBackend("gsk-test", "m", client_factory=FakeGroqClient(error=rate_limit_error()))
		with pytest.raises(BackendError) as exc_info:
			await backend.generate("p", system_prompt="s", max_tokens=10, temperature=0.7)
		assert exc_info.value.message == "Groq API Error: Rate limit reached for model"
		assert exc_info.value.status_code == 429
		assert exc_info.value.provider == "groq"

	@pytest.mark.asyncio
	async def test_connection_error(self):
		error = APIConnectionError(request=httpx.Request("POST", GROQ_URL))
		backend = GroqBackend("gsk-test", "m", client_factory=FakeGroqClient(error=error))
		with pytest.raises(BackendError) as exc_info:
			await backend.generate("p", system_prompt="s", max_tokens=10, temperature=0.7)
		assert exc_info.value.message.startswith("Groq API Error:")
		assert exc_info.value.status_code is None

	@pytest.mark.asyncio
	async def test_empty_content_is_an_error(self):
		backend = GroqBackend("gsk-test", "m", client_factory=FakeGroqClient(content=""))
		with pytest.raises(BackendError):
			await backend.generate("p", system_prompt="s", max_tokens=10, temperature=0.7)

	def test_missing_key(self):
		with pytest.raises(ConfigError):
			GroqBackend("", "m", client_factory=FakeGroqClient())

	@pytest.mark.asyncio
	async def test_validate(self):
		assert await GroqBackend("k", "m", client_factory=FakeGroqClient()).validate() is True
		rejected = GroqBackend("k", "m", client_factory=FakeGroqClient(models_error=rate_limit_error()))
		assert await rejected.validate() is False


@pytest.mark.unit
class TestGeminiBackend:
	"""Generate-content wire protocol."""

	@pytest.mark.asyncio
	async def test_generate_sends_prompt_parts(self):
		sdk = FakeGenAI()
		backend = GeminiBackend("AIza-test", "models/gemini-2.5-pro", sdk=sdk)
		answer = await backend.generate("the prompt", system_prompt="be a coach", max_tokens=300, temperature=0.7)

		assert answer == "Jawaban lisan."
		assert sdk.configured == ["AIza-test"]
		assert sdk.models == [("models/gemini-2.5-pro", "be a coach")]
		request = sdk.requests[0]
		assert request["contents"] == [{"role": "user", "parts": [{"text": "the prompt"}]}]
		assert request["generation_config"] == {"temperature": 0.7, "max_output_tokens": 300}

	@pytest.mark.asyncio
	async def test_api_error(self):
		sdk = FakeGenAI(error=google_exceptions.PermissionDenied("API key not valid"))
		backend = GeminiBackend("AIza-test", "m", sdk=sdk)
		with pytest.raises(BackendError) as exc_info:
			await backend.generate("p", system_prompt="s", max_tokens=10, temperature=0.7)
		assert exc_info.value.message == "Gemini API Error: API key not valid"
		assert exc_info.value.status_code == 403
		assert exc_info.value.provider == "gemini"

	@pytest.mark.asyncio
	async def test_transport_error(self):
		backend = GeminiBackend("AIza-test", "m", sdk=FakeGenAI(error=ConnectionResetError("reset")))
		with pytest.raises(BackendError) as exc_info:
			await backend.generate("p", system_prompt="s", max_tokens=10, temperature=0.7)
		assert "reset" in exc_info.value.message

	@pytest.mark.asyncio
	async def test_no_candidates(self):
		backend = GeminiBackend("AIza-test", "m", sdk=FakeGenAI(candidates=[]))
		with pytest.raises(BackendError) as exc_info:
			await backend.generate("p", system_prompt="s", max_tokens=10, temperature=0.7)
		assert exc_info.value.message == "Gemini API Error: malformed response"

	@pytest.mark.asyncio
	async def test_validate(self):
		assert await GeminiBackend("k", "m", sdk=FakeGenAI()).validate() is True
		rejected = FakeGenAI(list_error=google_exceptions.Unauthenticated("bad key"))
		assert await GeminiBackend("k", "m", sdk=rejected).validate() is False


@pytest.mark.unit
class TestFactory:
	"""Provider selection and key validation."""

	def test_builds_configured_models(self):
		config = Settings(groq_model="groq-model", gemini_model="gemini-model")
		groq = build_backend("groq", "k", config)
		gemini = build_backend("GEMINI", "k", config)
		assert isinstance(groq, GroqBackend) and groq.model == "groq-model"
		assert isinstance(gemini, GeminiBackend) and gemini.model == "gemini-model"

	def test_default_models_answer_without_reasoning(self):
		config = Settings(_env_file=None)
		assert build_backend("groq", "k", config).model == "llama-3.3-70b-versatile"
		assert build_backend("gemini", "k", config).model == "models/gemini-2.0-flash"

	def test_unknown_provider(self):
		with pytest.raises(ConfigError):
			build_backend("openai", "k")

	def test_missing_key(self):
		with pytest.raises(ConfigError):
			build_backend("groq", "")

	@pytest.mark.asyncio
	async def test_validate_api_key(self):
		seen = []

		def factory(provider, api_key):
			seen.append((provider, api_key))
			return GroqBackend(api_key, "m", client_factory=FakeGroqClient())

		assert await validate_api_key("groq", "gsk-1", factory=factory) is True
		assert seen == [("groq", "gsk-1")]
		assert await validate_api_key("openai", "k") is False
		assert await validate_api_key("groq", "") is False
