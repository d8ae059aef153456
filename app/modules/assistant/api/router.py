from fastapi import APIRouter, Depends, HTTPException
import logging

from app.modules.assistant.schema.chat import (
    ChatData,
    ChatRequest,
    ChatResponse,
    ConversationItem,
    ConversationListResponse,
    MessageItem,
    MessageListResponse,
)
from app.modules.assistant.services.auth import Identity
from app.modules.assistant.services.errors import ChatServiceError, ConversationNotFoundError
from app.services.memory.repo import all_messages, get_conversation, list_conversations
from core.config import Services, get_services
from .deps import require_user

logger = logging.getLogger(__name__)

v1 = APIRouter(prefix="/api", tags=["Chat"])
router = v1


@v1.post("/chat", response_model=ChatResponse)
async def chat(
    req: ChatRequest,
    identity: Identity = Depends(require_user),
    services: Services = Depends(get_services),
) -> ChatResponse:
    """Answer one chat message, creating the conversation on the first turn."""
    try:
        result = await services.chat.handle_turn(
            user_id=identity.user_id,
            message=req.message,
            conversation_id=req.conversation_id,
            include_sql=req.include_sql,
        )
    except ConversationNotFoundError as e:
        raise HTTPException(status_code=404, detail="Conversation not found") from e
    except ChatServiceError as e:
        logger.error(f"Chat API error at step {e.step}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error") from e

    return ChatResponse(
        data=ChatData(
            message=result.body,
            conversation_id=result.conversation_id,
            sql_query=result.sql,
            sql_results=result.sql_result,
            sql_error=result.sql_error,
        )
    )


# Conversation history endpoints

@v1.get("/conversations", response_model=ConversationListResponse)
async def get_conversations(
    identity: Identity = Depends(require_user),
    services: Services = Depends(get_services),
) -> ConversationListResponse:
    """List the caller's conversations, most recently active first."""
    async with services.sessions() as db:
        rows = await list_conversations(db, identity.user_id)
    return ConversationListResponse(
        data=[
            ConversationItem(
                id=r.id,
                title=r.title,
                created_at=r.created_at.isoformat(),
                updated_at=r.updated_at.isoformat(),
            ) for r in rows
        ]
    )


@v1.get("/conversations/{conversation_id}/messages", response_model=MessageListResponse)
async def get_messages(
    conversation_id: str,
    identity: Identity = Depends(require_user),
    services: Services = Depends(get_services),
) -> MessageListResponse:
    """Get all messages in one of the caller's conversations, oldest first."""
    async with services.sessions() as db:
        conv = await get_conversation(db, conversation_id, user_id=identity.user_id)
        if conv is None:
            raise HTTPException(status_code=404, detail="Conversation not found")
        rows = await all_messages(db, conversation_id)
    return MessageListResponse(
        data=[
            MessageItem(
                id=r.id,
                role=r.role,
                content=r.content,
                sql_query=r.sql_query,
                sql_results=r.sql_results,
                created_at=r.created_at.isoformat(),
            ) for r in rows
        ]
    )
