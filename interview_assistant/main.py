from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

from interview_assistant.config import settings
from interview_assistant.errors import BackendError, ConfigError
from interview_assistant.utils.logging import configure_logging
from interview_assistant.routers.assistant import router as assistant_router
from interview_assistant.routers.ws import router as ws_router
from interview_assistant.services.assistant import AssistantService, build_services


configure_logging(settings.log_level)


def create_app(assistant: Optional[AssistantService] = None) -> FastAPI:
	@asynccontextmanager
	async def lifespan(app: FastAPI):
		service = assistant or build_services(settings)
		app.state.assistant = service
		await service.start()
		try:
			yield
		finally:
			await service.shutdown()

	app = FastAPI(title="Interview Assistant", version="0.1.0", lifespan=lifespan)

	# CORS
	app.add_middleware(
		CORSMiddleware,
		allow_origins=settings.cors_allow_origins,
		# Wildcard origins require credentials to be False per CORS spec
		allow_credentials=False if settings.cors_allow_origins == ["*"] else True,
		allow_methods=["*"],
		allow_headers=["*"],
		max_age=3600,
	)

	@app.exception_handler(ConfigError)
	async def config_error_handler(request: Request, exc: ConfigError) -> JSONResponse:
		return JSONResponse(status_code=400, content={"detail": exc.message})

	@app.exception_handler(BackendError)
	async def backend_error_handler(request: Request, exc: BackendError) -> JSONResponse:
		return JSONResponse(status_code=502, content={"detail": exc.message, "provider": exc.provider})

	@app.get("/health")
	async def health(request: Request) -> JSONResponse:
		service: AssistantService = request.app.state.assistant
		user_settings = service.user_settings
		return JSONResponse({
			"status": "ok",
			"version": app.version,
			"llm": {
				"provider": user_settings.ai_provider if user_settings else None,
				"configured": bool(user_settings and user_settings.api_key),
			},
		})

	# Routers
	app.include_router(assistant_router, prefix="/api", tags=["assistant"])
	app.include_router(ws_router, tags=["realtime"])
	return app


app = create_app()


def run() -> None:
	import uvicorn

	uvicorn.run("interview_assistant.main:app", host=settings.host, port=settings.port)
