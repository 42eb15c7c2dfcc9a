from __future__ import annotations

from fastapi import Header, HTTPException, Query, status
from typing import Optional

from interview_assistant.config import settings


async def verify_api_token(authorization: Optional[str] = Header(default=None)) -> None:
	if not settings.api_token:
		return
	if not authorization or not authorization.startswith("Bearer "):
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing API token")
	token = authorization.removeprefix("Bearer ")
	if token != settings.api_token:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API token")


def websocket_token_ok(token: Optional[str] = Query(default=None)) -> bool:
	# Browsers cannot set headers on websockets; accept the token as a query parameter
	if not settings.api_token:
		return True
	return token == settings.api_token
