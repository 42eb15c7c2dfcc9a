from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Dict, List, Optional

from interview_assistant.constants import (
	COMPANY_SELECTORS,
	JOB_TITLE_SELECTORS,
	PLATFORMS,
	QUESTION_SELECTORS,
	RECORDING_SELECTORS,
	TIMER_SELECTORS,
	UNKNOWN_PLATFORM,
)
from interview_assistant.schemas import DetectionContext
from interview_assistant.services.classifier import classify_normalized, normalize_text
from interview_assistant.services.page_document import Element, HostDocument


logger = logging.getLogger(__name__)

_TIME_PATTERN = re.compile(r"\d{1,2}:\d{2}")


def is_element_visible(element: Optional[Element]) -> bool:
	if element is None:
		return False
	box = element.bounding_box()
	style = element.computed_style()
	return (
		box.width > 0
		and box.height > 0
		and style.get("visibility") != "hidden"
		and style.get("display") != "none"
		and style.get("opacity") != "0"
	)


class PageScanner:
	"""Finds the current interview question on a host document.

	Selectors are tried in priority order and elements in document order; the
	first candidate the classifier accepts wins, so purpose-built question
	containers beat generic headings even when both would match.
	"""

	def __init__(
		self,
		document: HostDocument,
		selectors: Optional[List[str]] = None,
		platforms: Optional[Dict[str, str]] = None,
	) -> None:
		self._document = document
		self._selectors = list(selectors) if selectors is not None else list(QUESTION_SELECTORS)
		self._platforms = dict(platforms) if platforms is not None else dict(PLATFORMS)

	@property
	def document(self) -> HostDocument:
		return self._document

	def scan(self) -> Optional[str]:
		for selector in self._selectors:
			for element in self._document.query_all(selector):
				text = self.extract_question_text(element)
				if classify_normalized(text):
					return text
		return None

	@staticmethod
	def extract_question_text(element: Optional[Element]) -> str:
		if element is None:
			return ""
		return normalize_text(element.text)

	def question_context(self) -> DetectionContext:
		hints = self.extract_page_context()
		return DetectionContext(
			url=self._document.url,
			timestamp=datetime.utcnow(),
			platform=self.detect_platform(),
			is_recording=self.detect_recording_state(),
			timer=self.detect_timer(),
			job_title=hints.get("job_title"),
			company=hints.get("company"),
		)

	def detect_platform(self) -> str:
		hostname = self._document.hostname
		for domain, platform in self._platforms.items():
			if domain in hostname:
				return platform
		return UNKNOWN_PLATFORM

	def is_supported_platform(self) -> bool:
		return self.detect_platform() != UNKNOWN_PLATFORM

	def detect_recording_state(self) -> bool:
		for selector in RECORDING_SELECTORS:
			element = self._document.query(selector)
			if element is not None and is_element_visible(element):
				return True
		return False

	def detect_timer(self) -> Optional[str]:
		for selector in TIMER_SELECTORS:
			element = self._document.query(selector)
			if element is not None and is_element_visible(element):
				text = element.text or ""
				if _TIME_PATTERN.search(text):
					return text.strip()
		return None

	def extract_page_context(self) -> Dict[str, str]:
		"""Job title and company hints, first non-empty match per field."""
		context: Dict[str, str] = {}
		for key, selectors in (("job_title", JOB_TITLE_SELECTORS), ("company", COMPANY_SELECTORS)):
			for selector in selectors:
				element = self._document.query(selector)
				if element is not None and element.text.strip():
					context[key] = element.text.strip()
					break
		if context:
			logger.debug("Page context hints: %s", context)
		return context
