from __future__ import annotations

import logging
from typing import Callable, Optional

from interview_assistant.config import Settings, settings as app_settings
from interview_assistant.constants import LANGUAGES, Messages
from interview_assistant.errors import ConfigError
from interview_assistant.schemas import DetectionContext, UserSettings
from interview_assistant.services.backends import AnswerBackend, build_backend
from interview_assistant.services.classifier import normalize_text
from interview_assistant.services.storage import StorageManager


logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
	"You are an expert interview coach helping someone answer interview questions "
	"professionally and concisely."
)

BackendFactory = Callable[[str, str], AnswerBackend]


def language_instruction(language: str) -> str:
	name = LANGUAGES.get((language or "").lower(), LANGUAGES["en"])
	return f"Respond in {name}"


def build_prompt(question: str, context: Optional[DetectionContext], language: str) -> str:
	"""Spoken-answer prompt: language directive, question, guidance, then page hints."""
	prompt = (
		f"{language_instruction(language)}.\n\n"
		"You are helping someone answer an interview question. "
		"Provide a concise, professional, and compelling answer.\n\n"
		f"Interview Question: \"{question}\"\n\n"
		"Guidelines:\n"
		"- Keep the answer between 60-90 seconds when spoken aloud\n"
		"- Be specific and use examples when possible\n"
		"- Show enthusiasm and confidence\n"
		"- Structure: Brief intro + main points + conclusion\n"
		"- Avoid generic answers, make it personal and authentic"
	)
	if context is not None:
		if context.job_title:
			prompt += f"\n- Job Position: {context.job_title}"
		if context.company:
			prompt += f"\n- Company: {context.company}"
		if context.industry:
			prompt += f"\n- Industry: {context.industry}"
	prompt += "\n\nProvide only the answer, no additional commentary:"
	return prompt


class AnswerSynthesizer:
	"""Turns a question into an answer, from cache when possible.

	Calls are independent: two concurrent requests for the same question both
	go through cache-or-network. Keeping only one visible is the overlay's job.
	"""

	def __init__(
		self,
		storage: StorageManager,
		backend_factory: Optional[BackendFactory] = None,
		config: Optional[Settings] = None,
	) -> None:
		self._storage = storage
		self._config = config or app_settings
		self._backend_factory = backend_factory or (lambda provider, key: build_backend(provider, key, self._config))

	async def generate(
		self,
		question: str,
		context: Optional[DetectionContext] = None,
		*,
		use_cache: bool = True,
	) -> str:
		user_settings = await self._storage.get_settings()
		if not user_settings.api_key:
			raise ConfigError(Messages.NO_API_KEY)

		normalized = normalize_text(question)
		caching = user_settings.cache_enabled
		if caching and use_cache:
			cached = await self._storage.get_cached_response(normalized, user_settings.cache_ttl_hours)
			if cached is not None:
				logger.debug("Cache hit for question: %s", normalized)
				return cached.answer

		answer = await self._call_backend(normalized, context, user_settings)

		if caching:
			await self._storage.cache_response(normalized, answer, user_settings.cache_ttl_hours)
		return answer

	async def _call_backend(self, question: str, context: Optional[DetectionContext], user_settings: UserSettings) -> str:
		backend = self._backend_factory(user_settings.ai_provider, user_settings.api_key)
		prompt = build_prompt(question, context, user_settings.response_language)
		logger.info("Generating answer with %s (%s)", backend.provider, backend.model)
		return await backend.generate(
			prompt,
			system_prompt=SYSTEM_PROMPT,
			# Rough words-to-tokens estimate
			max_tokens=user_settings.max_response_length * 2,
			temperature=self._config.answer_temperature,
		)
