"""
Exception taxonomy for the assistant.

Absence of a question on the page is not an error; scanners return None.
"""

from __future__ import annotations

from typing import Optional


class AssistantError(Exception):
	"""Base exception for all assistant errors."""

	def __init__(self, message: str) -> None:
		self.message = message
		super().__init__(self.message)


class ConfigError(AssistantError):
	"""Missing or invalid credential/provider. User-correctable, never retried."""


class BackendError(AssistantError):
	"""A language-model backend answered with a failure or could not be reached."""

	def __init__(
		self,
		message: str,
		provider: Optional[str] = None,
		status_code: Optional[int] = None,
	) -> None:
		self.provider = provider
		self.status_code = status_code
		super().__init__(message)
