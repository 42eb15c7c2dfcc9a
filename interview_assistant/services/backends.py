"""
Language-model backends used for answer synthesis.

Two wire protocols are supported:
  1. Chat completions (Groq SDK): bearer-token auth, system/user messages,
     text at ``choices[0].message.content``.
  2. Generate content (google-generativeai): API key, prompt parts plus a
     generation config, text at ``candidates[0].content.parts[0].text``.

Both SDKs are blocking, so calls run in a worker thread and only suspend the
calling task. Neither backend retries on its own.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

import anyio
import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from groq import APIConnectionError, APIError, APIStatusError, Groq

from interview_assistant.config import Settings, settings as app_settings
from interview_assistant.constants import Messages, Providers
from interview_assistant.errors import BackendError, ConfigError


logger = logging.getLogger(__name__)


class AnswerBackend(ABC):
	provider: str = ""

	def __init__(self, api_key: str, model: str) -> None:
		if not api_key:
			raise ConfigError(Messages.NO_API_KEY)
		self._api_key = api_key
		self._model = model

	@property
	def model(self) -> str:
		return self._model

	async def generate(self, prompt: str, *, system_prompt: str, max_tokens: int, temperature: float) -> str:
		def _call() -> str:
			return self._generate_sync(prompt, system_prompt, max_tokens, temperature)

		return await anyio.to_thread.run_sync(_call)

	async def validate(self) -> bool:
		"""Cheap list-models probe; True when the credential is accepted."""
		return await anyio.to_thread.run_sync(self._validate_sync)

	@abstractmethod
	def _generate_sync(self, prompt: str, system_prompt: str, max_tokens: int, temperature: float) -> str:
		...

	@abstractmethod
	def _validate_sync(self) -> bool:
		...


def _groq_error_message(err: APIError) -> str:
	body = getattr(err, "body", None)
	if isinstance(body, dict):
		inner = body.get("error", body)
		if isinstance(inner, dict) and inner.get("message"):
			return str(inner["message"])
	return getattr(err, "message", None) or str(err)


class GroqBackend(AnswerBackend):
	provider = Providers.GROQ

	def __init__(self, api_key: str, model: str, client_factory: Callable[..., Any] = Groq) -> None:
		super().__init__(api_key, model)
		self._client = client_factory(api_key=api_key, max_retries=0)

	def _generate_sync(self, prompt: str, system_prompt: str, max_tokens: int, temperature: float) -> str:
		messages: List[Dict[str, str]] = [
			{"role": "system", "content": system_prompt},
			{"role": "user", "content": prompt},
		]
		try:
			resp = self._client.chat.completions.create(
				model=self._model,
				messages=messages,
				max_tokens=max_tokens,
				temperature=temperature,
			)
		except APIStatusError as e:
			raise BackendError(f"Groq API Error: {_groq_error_message(e)}", self.provider, e.status_code) from e
		except APIConnectionError as e:
			raise BackendError(f"Groq API Error: {e.message or 'connection failed'}", self.provider) from e
		except APIError as e:
			raise BackendError(f"Groq API Error: {_groq_error_message(e)}", self.provider) from e

		try:
			content = resp.choices[0].message.content
		except (AttributeError, IndexError, TypeError) as e:
			raise BackendError("Groq API Error: malformed response", self.provider) from e
		if not content:
			raise BackendError("Groq API Error: empty response", self.provider)
		return content.strip()

	def _validate_sync(self) -> bool:
		try:
			self._client.models.list()
			return True
		except APIError as e:
			logger.info("Groq credential rejected: %s", _groq_error_message(e))
			return False


class GeminiBackend(AnswerBackend):
	provider = Providers.GEMINI

	def __init__(self, api_key: str, model: str, sdk: Any = genai) -> None:
		super().__init__(api_key, model)
		self._sdk = sdk

	def _generate_sync(self, prompt: str, system_prompt: str, max_tokens: int, temperature: float) -> str:
		try:
			self._sdk.configure(api_key=self._api_key)
			gmodel = self._sdk.GenerativeModel(self._model, system_instruction=system_prompt)
			resp = gmodel.generate_content(
				[{"role": "user", "parts": [{"text": prompt}]}],
				generation_config={"temperature": temperature, "max_output_tokens": max_tokens},
			)
		except google_exceptions.GoogleAPICallError as e:
			raise BackendError(f"Gemini API Error: {e.message}", self.provider, getattr(e, "code", None)) from e
		except google_exceptions.GoogleAPIError as e:
			raise BackendError(f"Gemini API Error: {e}", self.provider) from e
		except OSError as e:
			# transport failures surface as connection/timeouts from the HTTP layer
			raise BackendError(f"Gemini API Error: {e}", self.provider) from e

		try:
			text = resp.candidates[0].content.parts[0].text
		except (AttributeError, IndexError, TypeError) as e:
			raise BackendError("Gemini API Error: malformed response", self.provider) from e
		if not text:
			raise BackendError("Gemini API Error: empty response", self.provider)
		return text.strip()

	def _validate_sync(self) -> bool:
		try:
			self._sdk.configure(api_key=self._api_key)
			next(iter(self._sdk.list_models()), None)
			return True
		except google_exceptions.GoogleAPIError as e:
			logger.info("Gemini credential rejected: %s", e)
			return False
		except OSError as e:
			logger.info("Gemini probe failed: %s", e)
			return False


def build_backend(provider: str, api_key: str, config: Optional[Settings] = None) -> AnswerBackend:
	config = config or app_settings
	provider = (provider or "").lower()
	if provider == Providers.GROQ:
		return GroqBackend(api_key, config.groq_model)
	if provider == Providers.GEMINI:
		return GeminiBackend(api_key, config.gemini_model)
	raise ConfigError(Messages.INVALID_PROVIDER)


async def validate_api_key(provider: str, api_key: str, factory: Callable[[str, str], AnswerBackend] = build_backend) -> bool:
	try:
		backend = factory(provider, api_key)
	except ConfigError:
		return False
	return await backend.validate()
