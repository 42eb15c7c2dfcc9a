from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import List
from dotenv import load_dotenv


# Ensure .env is loaded eagerly
load_dotenv(dotenv_path=".env")


class Settings(BaseSettings):
	# Server
	host: str = "127.0.0.1"
	port: int = 8000
	cors_allow_origins: List[str] = [
		"http://localhost:3000",
		"http://localhost:5173",
		"http://127.0.0.1:3000",
		"http://127.0.0.1:5173",
	]

	# Auth for the local API (browser relay and panel)
	api_token: str | None = None

	# Groq (chat completions). Non-reasoning defaults: max_tokens is 2x the word
	# budget, which a reasoning model can exhaust before emitting any answer.
	groq_model: str = "llama-3.3-70b-versatile"

	# Google Gemini (generate content)
	gemini_model: str = "models/gemini-2.0-flash"

	answer_temperature: float = 0.7
	regenerate_bypasses_cache: bool = False

	# Detection timings
	debounce_ms: int = 500
	periodic_interval_s: float = 3.0
	initial_delay_s: float = 1.0

	# Persistence
	store_path: str | None = "data/store.json"
	max_history_entries: int = 50
	max_recent_detections: int = 20

	# Overlay viewport used for clamping moves when the renderer sends none
	viewport_width: int = 1280
	viewport_height: int = 800

	# Logging
	log_level: str = "INFO"
	analytics_path: str | None = None  # e.g., logs/detections.jsonl

	@field_validator("answer_temperature")
	@classmethod
	def clamp_temperature(cls, v: float) -> float:
		return max(0.0, min(1.0, v))

	@field_validator("cors_allow_origins", mode="before")
	@classmethod
	def parse_cors_origins(cls, v):
		# Allow environment variable override
		if isinstance(v, str):
			return [origin.strip() for origin in v.split(",")]
		return v

	class Config:
		env_file = ".env"
		env_file_encoding = "utf-8"
		env_prefix = "ASSISTANT_"


settings = Settings()
