from __future__ import annotations

import re
from typing import List, Pattern


MIN_QUESTION_LENGTH = 10
MAX_QUESTION_LENGTH = 1000

# Case-insensitive substring triggers (English and Indonesian)
QUESTION_INDICATORS: List[str] = [
	"?",
	# English question words
	"what", "how", "why", "when", "where", "who", "which", "whose",
	"tell me", "describe", "explain", "discuss", "share",
	"give me an example", "walk me through", "can you",
	"would you", "could you", "do you", "have you",
	"are you", "will you", "did you", "if you",
	"think about", "talk about", "your experience",
	"your background", "your approach", "your thoughts",
	# Indonesian question words
	"apa", "bagaimana", "mengapa", "kapan", "dimana", "siapa",
	"ceritakan", "jelaskan", "berikan contoh", "bisakah",
	"dapatkah", "apakah", "pengalaman", "pendapat",
]

QUESTION_PATTERNS: List[Pattern[str]] = [
	re.compile(r"^(what|how|why|when|where|who|which|whose)\b", re.IGNORECASE),
	re.compile(r"\b(tell|describe|explain|discuss|share)\b.*\b(about|your|us|me)\b", re.IGNORECASE),
	re.compile(r"\b(can|could|would|will|do|did|have|are)\s+you\b", re.IGNORECASE),
	re.compile(r"\bwalk\s+(me|us)\s+through\b", re.IGNORECASE),
	re.compile(r"\bgive\s+(me|us)\s+an?\s+example\b", re.IGNORECASE),
	re.compile(r"\bthink\s+about\b", re.IGNORECASE),
	re.compile(r"\btalk\s+about\b", re.IGNORECASE),
	re.compile(r"\byour\s+(experience|background|approach|thoughts|opinion)\b", re.IGNORECASE),
]

_WHITESPACE = re.compile(r"\s+")
_LABEL_PREFIX = re.compile(r"^(Interview Question|Question|Problem|Q\d*)\b\.?:?\s*", re.IGNORECASE)
_ORDINAL_PREFIX = re.compile(r"^\d+\.?\s*")
_HAS_LETTER = re.compile(r"[a-zA-Z]")
_ONLY_DIGITS = re.compile(r"^\d+$")


def normalize_text(text: str | None) -> str:
	"""Collapse whitespace and strip leading "Question:", "Q1." or "3." style labels."""
	if not text:
		return ""
	text = _WHITESPACE.sub(" ", text).strip()
	text = _LABEL_PREFIX.sub("", text, count=1)
	text = _ORDINAL_PREFIX.sub("", text, count=1)
	return text


def is_question(text: str | None) -> bool:
	"""Heuristically decide whether ``text`` reads like an interview question.

	Text is normalized first, so callers may pass raw node text. Deterministic
	and free of side effects.
	"""
	return classify_normalized(normalize_text(text))


def classify_normalized(text: str) -> bool:
	"""Classify text that already went through ``normalize_text`` once."""
	if len(text) < MIN_QUESTION_LENGTH or len(text) > MAX_QUESTION_LENGTH:
		return False
	if not _HAS_LETTER.search(text) or _ONLY_DIGITS.match(text):
		return False

	lower = text.lower()
	if any(indicator in lower for indicator in QUESTION_INDICATORS):
		return True
	return any(pattern.search(text) for pattern in QUESTION_PATTERNS)
