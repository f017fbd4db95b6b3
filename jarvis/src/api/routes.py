"""
Jarvis - API Route Definitions
===============================
  - GET  /              → landing page (static ``index.html``)
  - POST /chat          → run one chat turn, return ``{"response": ...}``
  - GET  /chat-history  → last 50 exchanges, oldest first

Each handler is a thin controller: it parses the request, delegates to
the ``ChatEngine`` stored on ``app.state`` and formats the response.
``JarvisError`` failures and unexpected exceptions are both caught here,
logged with their traceback, and returned as a generic 500; the real
cause is never sent to the client.
"""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import FileResponse, JSONResponse
from pydantic import ValidationError as PydanticValidationError

from jarvis.src.api.schemas import ChatRequest, ChatResponse, ErrorResponse, ExchangeOut
from jarvis.src.core.chat_engine import ChatEngine
from jarvis.src.core.errors import JarvisError, ValidationError
from jarvis.src.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

CHAT_ERROR = "An error occurred while processing your request."
HISTORY_ERROR = "An error occurred while fetching chat history."


def get_engine(request: Request) -> ChatEngine:
    return request.app.state.engine


def _error(message: str) -> JSONResponse:
    return JSONResponse(status_code=500, content=ErrorResponse(error=message).model_dump())


async def _parse_chat_request(request: Request) -> ChatRequest:
    try:
        payload = await request.json()
        return ChatRequest.model_validate(payload)
    except (json.JSONDecodeError, UnicodeDecodeError, PydanticValidationError) as exc:
        raise ValidationError("Request body must be JSON with a 'message' string") from exc


@router.get("/", include_in_schema=False)
async def index(request: Request) -> FileResponse:
    return FileResponse(request.app.state.static_dir / "index.html")


@router.post("/chat", response_model=ChatResponse, responses={500: {"model": ErrorResponse}})
async def chat(request: Request, engine: ChatEngine = Depends(get_engine)):
    try:
        body = await _parse_chat_request(request)
        reply = await engine.respond(body.message)
        return ChatResponse(response=reply)
    except JarvisError as exc:
        logger.error("[API] Chat request failed: %s", exc, exc_info=exc)
        return _error(CHAT_ERROR)
    except Exception:
        logger.exception("[API] Unexpected error processing chat")
        return _error(CHAT_ERROR)


@router.get("/chat-history", response_model=list[ExchangeOut], responses={500: {"model": ErrorResponse}})
async def chat_history(engine: ChatEngine = Depends(get_engine)):
    try:
        exchanges = await engine.recent_history()
        return JSONResponse(content=jsonable_encoder([ExchangeOut.model_validate(ex) for ex in exchanges]))
    except JarvisError as exc:
        logger.error("[API] Chat history failed: %s", exc, exc_info=exc)
        return _error(HISTORY_ERROR)
    except Exception:
        logger.exception("[API] Unexpected error fetching chat history")
        return _error(HISTORY_ERROR)
