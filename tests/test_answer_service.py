"""Tests for prompt construction and cached answer synthesis."""

import pytest

from conftest import FakeBackend, FakeBackendFactory, backend_error
from interview_assistant.constants import Messages
from interview_assistant.errors import BackendError, ConfigError
from interview_assistant.schemas import DetectionContext
from interview_assistant.services.answer_service import (
	SYSTEM_PROMPT,
	AnswerSynthesizer,
	build_prompt,
	language_instruction,
)


QUESTION = "What is your biggest weakness?"


@pytest.fixture
def synthesizer(keyed_storage, backend_factory, test_config):
	return AnswerSynthesizer(keyed_storage, backend_factory=backend_factory, config=test_config)


@pytest.mark.unit
class TestPrompt:
	"""Prompt wording and context lines."""

	def test_language_instruction(self):
		assert language_instruction("id") == "Respond in Indonesian (Bahasa Indonesia)"
		assert language_instruction("en") == "Respond in English"
		assert language_instruction("fr") == "Respond in English"

	def test_prompt_contains_question_and_guidelines(self):
		prompt = build_prompt(QUESTION, None, "en")
		assert prompt.startswith("Respond in English.")
		assert f'Interview Question: "{QUESTION}"' in prompt
		assert "60-90 seconds" in prompt
		assert prompt.endswith("Provide only the answer, no additional commentary:")
		assert "Job Position" not in prompt

	def test_prompt_context_lines(self):
		context = DetectionContext(job_title="Data Engineer", company="Acme", industry="Fintech")
		prompt = build_prompt(QUESTION, context, "id")
		assert "- Job Position: Data Engineer" in prompt
		assert "- Company: Acme" in prompt
		assert "- Industry: Fintech" in prompt
		assert prompt.index("Job Position") < prompt.index("Provide only the answer")


@pytest.mark.unit
class TestGenerate:
	"""Cache-or-network synthesis."""

	@pytest.mark.asyncio
	async def test_missing_key_fails_without_backend_call(self, storage, backend_factory, fake_backend, test_config):
		synthesizer = AnswerSynthesizer(storage, backend_factory=backend_factory, config=test_config)
		with pytest.raises(ConfigError) as exc_info:
			await synthesizer.generate(QUESTION)
		assert exc_info.value.message == Messages.NO_API_KEY
		assert fake_backend.calls == []
		assert backend_factory.requests == []

	@pytest.mark.asyncio
	async def test_backend_request_parameters(self, synthesizer, fake_backend, backend_factory):
		answer = await synthesizer.generate(QUESTION)
		assert answer == f"answer to {QUESTION} #1"
		assert backend_factory.requests == [("groq", "test-key-123")]
		call = fake_backend.calls[0]
		assert call["system_prompt"] == SYSTEM_PROMPT
		assert call["max_tokens"] == 400
		assert call["temperature"] == 0.7
		assert call["prompt"].startswith("Respond in Indonesian (Bahasa Indonesia).")

	@pytest.mark.asyncio
	async def test_warm_cache_skips_backend(self, synthesizer, fake_backend):
		first = await synthesizer.generate(QUESTION)
		second = await synthesizer.generate(QUESTION)
		assert first == second
		assert len(fake_backend.calls) == 1

	@pytest.mark.asyncio
	async def test_cache_key_uses_normalized_question(self, synthesizer, fake_backend):
		await synthesizer.generate("Question:  What is your   biggest weakness?")
		await synthesizer.generate(QUESTION)
		assert len(fake_backend.calls) == 1
		assert fake_backend.calls[0]["question"] == QUESTION

	@pytest.mark.asyncio
	async def test_expired_cache_calls_backend_again(self, synthesizer, fake_backend, clock):
		await synthesizer.generate(QUESTION)
		clock.advance(25 * 3600)
		answer = await synthesizer.generate(QUESTION)
		assert answer.endswith("#2")
		assert len(fake_backend.calls) == 2

	@pytest.mark.asyncio
	async def test_cache_disabled(self, synthesizer, keyed_storage, fake_backend, keyed_store):
		await keyed_storage.update_settings({"cache_enabled": False})
		await synthesizer.generate(QUESTION)
		await synthesizer.generate(QUESTION)
		assert len(fake_backend.calls) == 2
		assert await keyed_store.get("responseCache") is None

	@pytest.mark.asyncio
	async def test_bypassing_cache_still_refreshes_it(self, synthesizer, fake_backend):
		await synthesizer.generate(QUESTION)
		fresh = await synthesizer.generate(QUESTION, use_cache=False)
		assert fresh.endswith("#2")
		assert await synthesizer.generate(QUESTION) == fresh
		assert len(fake_backend.calls) == 2

	@pytest.mark.asyncio
	async def test_provider_and_length_follow_settings(self, synthesizer, keyed_storage, fake_backend, backend_factory):
		await keyed_storage.update_settings({"ai_provider": "gemini", "max_response_length": 120, "response_language": "en"})
		await synthesizer.generate(QUESTION)
		assert backend_factory.requests == [("gemini", "test-key-123")]
		assert fake_backend.calls[0]["max_tokens"] == 240
		assert fake_backend.calls[0]["prompt"].startswith("Respond in English.")

	@pytest.mark.asyncio
	async def test_errors_are_not_cached(self, keyed_storage, test_config, keyed_store):
		backend = FakeBackend(error=backend_error())
		synthesizer = AnswerSynthesizer(keyed_storage, backend_factory=FakeBackendFactory(backend), config=test_config)
		with pytest.raises(BackendError) as exc_info:
			await synthesizer.generate(QUESTION)
		assert exc_info.value.message == "Groq API Error: rate limited"
		assert await keyed_store.get("responseCache") is None

	@pytest.mark.asyncio
	async def test_context_reaches_prompt(self, synthesizer, fake_backend):
		await synthesizer.generate(QUESTION, DetectionContext(company="Acme Corp"))
		assert "- Company: Acme Corp" in fake_backend.calls[0]["prompt"]
