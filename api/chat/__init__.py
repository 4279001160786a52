"""
Chat assistant endpoint.
Relays visitor questions about the marketplace to Gemini.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from assistant import (
    AssistantManager, AssistantError, InvalidChatMessageError,
    AssistantDisabledError, FALLBACK_REPLY
)
from ratelimit import rate_limit

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/api/chat",
    tags=["Chat"]
)

class ChatRequest(BaseModel):
    message: Optional[str] = None

class ChatResponse(BaseModel):
    reply: str


def get_assistant() -> AssistantManager:
    return AssistantManager()


@router.post("", response_model=ChatResponse, dependencies=[Depends(rate_limit('chat'))])
async def chat(body: ChatRequest, assistant: AssistantManager = Depends(get_assistant)):
    """Answer a question about the marketplace."""
    try:
        return await assistant.reply(body.message)
    except InvalidChatMessageError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except AssistantDisabledError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e)
        )
    except AssistantError as e:
        logger.error(f"Chat assistant failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"reply": FALLBACK_REPLY}
        )
