"""Static tables shared by the detection and synthesis services."""

from __future__ import annotations

from typing import Dict, List


class Providers:
	GROQ = "groq"
	GEMINI = "gemini"

	ALL = (GROQ, GEMINI)


# Ordered by priority: purpose-built question containers first, generic text last.
QUESTION_SELECTORS: List[str] = [
	# Standard question selectors
	'[data-testid*="question"]',
	'[data-qa*="question"]',
	'[data-cy*="question"]',
	".question-text",
	".interview-question",
	".question-content",
	'[class*="question"]',
	'[id*="question"]',

	# Content selectors
	".prompt-text",
	".prompt-content",
	'[class*="prompt"]',
	'[id*="prompt"]',

	# Generic content areas that might contain questions
	"main h1, main h2, main h3, main h4",
	"section h1, section h2, section h3, section h4",
	".content h1, .content h2, .content h3, .content h4",

	# Interview platform specific
	'[data-automation*="question"]',
	'[aria-label*="question"]',
	'[role="heading"]',

	# Text containers that might have questions
	"p:only-child",
	".text-content",
	".interview-text",
	'[class*="interview"]',

	# Generic fallbacks
	'div[class*="text"]:not([class*="button"]):not([class*="input"])',
	'span[class*="text"]:not([class*="button"]):not([class*="input"])',
]

TIMER_SELECTORS: List[str] = [
	'[data-testid*="timer"]',
	".countdown",
	".timer",
	'[class*="countdown"]',
	'[id*="timer"]',
]

RECORDING_SELECTORS: List[str] = [
	'[data-testid*="recording"]',
	".recording",
	'[class*="recording"]',
	".rec-indicator",
]

JOB_TITLE_SELECTORS: List[str] = [
	'[data-testid*="job-title"]',
	".job-title",
	'[class*="position"]',
	'[class*="role"]',
]

COMPANY_SELECTORS: List[str] = [
	'[data-testid*="company"]',
	".company-name",
	'[class*="company"]',
]

# hostname fragment -> display name
PLATFORMS: Dict[str, str] = {
	"hirevue.com": "HireVue",
	"myinterview.com": "myInterview",
	"spark-hire.com": "Spark Hire",
	"vidcruiter.com": "VidCruiter",
	"talview.com": "Talview",
	"interview.com": "Interview.com",
	"zoom.us": "Zoom",
	"meet.google.com": "Google Meet",
	"teams.microsoft.com": "Microsoft Teams",
}

UNKNOWN_PLATFORM = "Unknown"

LANGUAGES: Dict[str, str] = {
	"id": "Indonesian (Bahasa Indonesia)",
	"en": "English",
}


class Messages:
	NO_API_KEY = "Please set your AI API key in the assistant settings"
	NO_QUESTION_DETECTED = "No interview question detected on this page"
	GENERATING_ANSWER = "Generating answer..."
	ERROR_GENERATING = "Error generating answer. Please try again."
	EXTENSION_DISABLED = "Assistant is disabled. Enable it in the settings."
	INVALID_PROVIDER = "Invalid AI provider selected"
