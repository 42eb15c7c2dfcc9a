from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Depends, status

from interview_assistant.schemas import OverlaySnapshot
from interview_assistant.utils.security import websocket_token_ok


logger = logging.getLogger(__name__)

router = APIRouter()


async def _drain(websocket: WebSocket) -> None:
	# Renderers only listen; reading keeps disconnects observable
	while True:
		msg = await websocket.receive()
		if msg.get("type") == "websocket.disconnect":
			return


def collect_task_errors(tasks: Iterable[asyncio.Task]) -> List[BaseException]:
	"""Retrieve exceptions of finished tasks so none goes unobserved."""
	errors: List[BaseException] = []
	for task in tasks:
		if task.done() and not task.cancelled():
			error = task.exception()
			if error is not None:
				errors.append(error)
	return errors


@router.websocket("/ws/overlay")
async def ws_overlay(websocket: WebSocket, authorized: bool = Depends(websocket_token_ok)):
	if not authorized:
		await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
		return
	await websocket.accept()

	overlay = websocket.app.state.assistant.overlay
	queue: asyncio.Queue[OverlaySnapshot] = asyncio.Queue()
	unsubscribe = overlay.subscribe(queue.put_nowait)
	queue.put_nowait(overlay.snapshot())

	async def _pump() -> None:
		while True:
			snap = await queue.get()
			await websocket.send_json(snap.model_dump(mode="json"))

	pump = asyncio.create_task(_pump())
	drain = asyncio.create_task(_drain(websocket))
	try:
		done, _ = await asyncio.wait({pump, drain}, return_when=asyncio.FIRST_COMPLETED)
		for error in collect_task_errors(done):
			if not isinstance(error, WebSocketDisconnect):
				logger.warning("Overlay stream closed: %s", error)
	finally:
		unsubscribe()
		for task in (pump, drain):
			task.cancel()
