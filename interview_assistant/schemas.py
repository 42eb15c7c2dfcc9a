from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime
from enum import Enum


class OverlayPosition(BaseModel):
	x: int = 20
	y: int = 20


class UserSettings(BaseModel):
	"""Persisted user configuration. Unknown keys are rejected on update."""

	enabled: bool = False
	ai_provider: Literal["groq", "gemini"] = "groq"
	api_key: str = ""
	response_language: str = Field(default="id", description="Answer language code: id|en")
	auto_detect: bool = True
	overlay_position: OverlayPosition = Field(default_factory=OverlayPosition)
	overlay_locked: bool = False
	overlay_minimized: bool = False
	max_response_length: int = Field(default=200, ge=20, le=2000, description="Target answer length in words")
	cache_enabled: bool = True
	cache_ttl_hours: float = Field(default=24.0, gt=0)
	debug: bool = False


class SettingsUpdate(BaseModel):
	model_config = ConfigDict(extra="forbid")

	enabled: Optional[bool] = None
	ai_provider: Optional[Literal["groq", "gemini"]] = None
	api_key: Optional[str] = None
	response_language: Optional[str] = None
	auto_detect: Optional[bool] = None
	overlay_position: Optional[OverlayPosition] = None
	overlay_locked: Optional[bool] = None
	overlay_minimized: Optional[bool] = None
	max_response_length: Optional[int] = Field(default=None, ge=20, le=2000)
	cache_enabled: Optional[bool] = None
	cache_ttl_hours: Optional[float] = Field(default=None, gt=0)
	debug: Optional[bool] = None


class DetectionContext(BaseModel):
	url: str = ""
	timestamp: datetime = Field(default_factory=datetime.utcnow)
	platform: str = "Unknown"
	is_recording: bool = False
	timer: Optional[str] = None
	job_title: Optional[str] = None
	company: Optional[str] = None
	industry: Optional[str] = None


class HistoryEntry(BaseModel):
	model_config = ConfigDict(frozen=True)

	id: str
	question: str
	answer: str
	url: str = ""
	timestamp: datetime


class CacheEntry(BaseModel):
	answer: str
	timestamp: int = Field(..., description="Creation time in epoch milliseconds")


class DetectionRecord(BaseModel):
	id: str
	question: str
	context: DetectionContext
	url: str = ""
	timestamp: datetime


class OverlayState(str, Enum):
	IDLE = "idle"
	LOADING = "loading"
	READY = "ready"
	ERROR = "error"


class OverlaySnapshot(BaseModel):
	state: OverlayState
	visible: bool
	minimized: bool
	locked: bool
	position: OverlayPosition
	question: Optional[str] = None
	answer: Optional[str] = None
	error: Optional[str] = None


# HTTP payloads

class AnswerIn(BaseModel):
	question: str = Field(..., min_length=1)
	job_title: Optional[str] = None
	company: Optional[str] = None
	industry: Optional[str] = None


class AnswerOut(BaseModel):
	answer: str
	created_at: datetime


class PageSnapshotIn(BaseModel):
	url: str = Field(..., description="Page URL the snapshot was taken from")
	html: str = Field(..., description="Serialized document markup")


class MoveIn(BaseModel):
	x: int
	y: int
	viewport_width: Optional[int] = None
	viewport_height: Optional[int] = None
	width: int = Field(default=300, ge=0, description="Rendered overlay width")
	height: int = Field(default=200, ge=0, description="Rendered overlay height")


class KeyCheckIn(BaseModel):
	provider: Literal["groq", "gemini"]
	api_key: str = Field(..., min_length=1)


class KeyCheckOut(BaseModel):
	valid: bool


class CopyOut(BaseModel):
	copied: bool
	text: Optional[str] = None


class StatusOut(BaseModel):
	enabled: bool
	monitoring: bool
	has_question: bool
	current_question: Optional[str] = None
	overlay_visible: bool
	supported_platform: bool
	url: str = ""


class HistoryOut(BaseModel):
	items: List[HistoryEntry]


class DetectionsOut(BaseModel):
	items: List[DetectionRecord]


class ToggleOut(BaseModel):
	enabled: bool


def dump_settings(value: UserSettings) -> Dict[str, Any]:
	return value.model_dump(mode="json")
