from __future__ import annotations

import logging

import sentry_sdk
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...assistant import ChatAssistant
from ...assistant.policy import LLMExhausted
from ...contracts import ChatRequest, ChatResponse
from ...llm_client import LLMError
from ...metrics import chat_replies_total
from ...settings import settings
from ...storage import DB

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])

CHAT_ERROR_REPLY = "Lo siento, hubo un error. Por favor intenta de nuevo."


def get_assistant() -> ChatAssistant:
    return ChatAssistant(DB, venue_name=settings.VENUE_NAME)


def _apology() -> JSONResponse:
    chat_replies_total.labels(result="error").inc()
    return JSONResponse({"response": CHAT_ERROR_REPLY}, status_code=500)


@router.post("/chat", response_model=ChatResponse)
async def chat(req: ChatRequest, assistant: ChatAssistant = Depends(get_assistant)):
    """Answer one turn. Markers stay in the reply; the client acts on them."""
    try:
        reply = await assistant.reply(req.message, req.history)
    except (LLMExhausted, LLMError) as exc:
        logger.error("Chat reply failed: %s", exc)
        return _apology()
    except Exception as exc:
        logger.exception("Unexpected chat failure")
        sentry_sdk.capture_exception(exc)
        return _apology()
    chat_replies_total.labels(result="ok").inc()
    return ChatResponse(response=reply)
