import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from core.chat_context import get_context_data
from core.chat_intent import classify_intent
from core.llm_client import LLMError, generate_reply
from db.db_base import get_db
from schemas.chat import ChatRequest, ChatResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/chat", response_model=ChatResponse)
def chat(req: ChatRequest, db: Session = Depends(get_db)) -> ChatResponse:
    """Answer the last message of the conversation using platform data matched to its intent."""
    last_message = req.messages[-1].content if req.messages else ""
    intent = classify_intent(last_message)
    logger.info(f"Detected intent: {intent.value}")

    context = get_context_data(db, intent)
    try:
        text = generate_reply([m.model_dump() for m in req.messages], intent, context)
    except LLMError:
        raise HTTPException(status_code=500, detail="Maaf, terjadi kesalahan di server.")

    return ChatResponse(text=text, intent=intent.value)
