from fastapi import APIRouter, HTTPException, Depends, Request
from datetime import datetime

from interview_assistant.config import settings
from interview_assistant.schemas import (
	AnswerIn,
	AnswerOut,
	CopyOut,
	DetectionContext,
	DetectionsOut,
	HistoryOut,
	KeyCheckIn,
	KeyCheckOut,
	MoveIn,
	OverlaySnapshot,
	PageSnapshotIn,
	SettingsUpdate,
	StatusOut,
	ToggleOut,
	UserSettings,
)
from interview_assistant.services.assistant import AssistantService
from interview_assistant.utils.security import verify_api_token


router = APIRouter(dependencies=[Depends(verify_api_token)])


def get_assistant(request: Request) -> AssistantService:
	return request.app.state.assistant


def _masked(value: UserSettings) -> UserSettings:
	if not value.api_key:
		return value
	return value.model_copy(update={"api_key": "*" * 8 + value.api_key[-4:]})


@router.get("/status", response_model=StatusOut)
async def get_status(assistant: AssistantService = Depends(get_assistant)):
	return assistant.get_status()


@router.post("/toggle", response_model=ToggleOut)
async def toggle(assistant: AssistantService = Depends(get_assistant)):
	enabled = await assistant.toggle()
	return ToggleOut(enabled=enabled)


@router.get("/settings", response_model=UserSettings)
async def get_settings(assistant: AssistantService = Depends(get_assistant)):
	return _masked(await assistant.storage.get_settings())


@router.put("/settings", response_model=UserSettings)
async def update_settings(payload: SettingsUpdate, assistant: AssistantService = Depends(get_assistant)):
	changes = payload.model_dump(exclude_unset=True)
	if not changes:
		raise HTTPException(status_code=400, detail="No settings to update")
	updated = await assistant.update_settings(changes)
	return _masked(updated)


@router.get("/history", response_model=HistoryOut)
async def get_history(assistant: AssistantService = Depends(get_assistant)):
	return HistoryOut(items=await assistant.get_history())


@router.delete("/history")
async def clear_history(assistant: AssistantService = Depends(get_assistant)):
	await assistant.clear_history()
	return {"status": "ok"}


@router.get("/detections", response_model=DetectionsOut)
async def get_detections(assistant: AssistantService = Depends(get_assistant)):
	return DetectionsOut(items=assistant.recent_detections())


@router.post("/page")
async def push_page(payload: PageSnapshotIn, assistant: AssistantService = Depends(get_assistant)):
	changed = assistant.load_page(payload.url, payload.html)
	return {"status": "ok", "changed": changed}


@router.post("/detect")
async def force_detection(assistant: AssistantService = Depends(get_assistant)):
	question = assistant.force_detection()
	return {"status": "ok", "question": question}


@router.post("/regenerate", response_model=OverlaySnapshot)
async def regenerate(assistant: AssistantService = Depends(get_assistant)):
	task = assistant.regenerate()
	if task is None:
		raise HTTPException(status_code=409, detail="No question detected yet")
	await task
	return assistant.overlay.snapshot()


@router.post("/answer", response_model=AnswerOut)
async def answer_question(payload: AnswerIn, assistant: AssistantService = Depends(get_assistant)):
	# Direct synthesis for a typed question; ConfigError/BackendError map to 400/502
	context = DetectionContext(job_title=payload.job_title, company=payload.company, industry=payload.industry)
	answer = await assistant.overlay.synthesizer.generate(payload.question, context)
	return AnswerOut(answer=answer, created_at=datetime.utcnow())


@router.post("/test-key", response_model=KeyCheckOut)
async def test_api_key(payload: KeyCheckIn, assistant: AssistantService = Depends(get_assistant)):
	return KeyCheckOut(valid=await assistant.test_api_key(payload.provider, payload.api_key))


@router.get("/overlay", response_model=OverlaySnapshot)
async def get_overlay(assistant: AssistantService = Depends(get_assistant)):
	return assistant.overlay.snapshot()


@router.post("/overlay/copy", response_model=CopyOut)
async def copy_answer(assistant: AssistantService = Depends(get_assistant)):
	text = assistant.overlay.copy()
	return CopyOut(copied=text is not None, text=text)


@router.post("/overlay/minimize", response_model=OverlaySnapshot)
async def minimize(assistant: AssistantService = Depends(get_assistant)):
	await assistant.overlay.toggle_minimize()
	return assistant.overlay.snapshot()


@router.post("/overlay/lock", response_model=OverlaySnapshot)
async def lock(assistant: AssistantService = Depends(get_assistant)):
	await assistant.overlay.toggle_lock()
	return assistant.overlay.snapshot()


@router.post("/overlay/move", response_model=OverlaySnapshot)
async def move(payload: MoveIn, assistant: AssistantService = Depends(get_assistant)):
	moved = await assistant.overlay.move_to(
		payload.x,
		payload.y,
		viewport_width=payload.viewport_width or settings.viewport_width,
		viewport_height=payload.viewport_height or settings.viewport_height,
		width=payload.width,
		height=payload.height,
	)
	if not moved:
		raise HTTPException(status_code=409, detail="Overlay is locked")
	return assistant.overlay.snapshot()


@router.post("/overlay/show", response_model=OverlaySnapshot)
async def show(assistant: AssistantService = Depends(get_assistant)):
	await assistant.overlay.show()
	return assistant.overlay.snapshot()


@router.post("/overlay/hide", response_model=OverlaySnapshot)
async def hide(assistant: AssistantService = Depends(get_assistant)):
	assistant.overlay.close()
	return assistant.overlay.snapshot()
