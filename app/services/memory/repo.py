from typing import Any, List, Optional
from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession
from .json_payload import validate_json
from .models import Conversation, ChatMessage, Invoice, SqlQueryLog, MESSAGE_ROLES, _now


async def create_conversation(db: AsyncSession, user_id: str, title: str) -> Conversation:
    conv = Conversation(user_id=user_id, title=title)
    db.add(conv)
    await db.flush()
    return conv


async def get_conversation(db: AsyncSession, conversation_id: str, user_id: Optional[str] = None) -> Optional[Conversation]:
    conv = await db.get(Conversation, conversation_id)
    if conv is None or (user_id is not None and conv.user_id != user_id):
        return None
    return conv


async def add_message(
    db: AsyncSession,
    conversation_id: str,
    role: str,
    content: str,
    sql_query: Optional[str] = None,
    sql_results: Any = None,
) -> ChatMessage:
    if role not in MESSAGE_ROLES:
        raise ValueError(f"unknown message role: {role!r}")
    msg = ChatMessage(
        conversation_id=conversation_id,
        role=role,
        content=content,
        sql_query=sql_query,
        sql_results=validate_json(sql_results),
    )
    db.add(msg)
    await db.execute(
        update(Conversation).where(Conversation.id == conversation_id).values(updated_at=_now())
    )
    await db.flush()
    return msg


async def last_messages(db: AsyncSession, conversation_id: str, limit: int = 10) -> List[ChatMessage]:
    q = select(ChatMessage).where(ChatMessage.conversation_id == conversation_id).order_by(ChatMessage.created_at.desc()).limit(limit)
    res = await db.execute(q)
    return list(reversed(res.scalars().all()))


async def all_messages(db: AsyncSession, conversation_id: str) -> List[ChatMessage]:
    q = select(ChatMessage).where(ChatMessage.conversation_id == conversation_id).order_by(ChatMessage.created_at.asc())
    res = await db.execute(q)
    return list(res.scalars().all())


async def list_conversations(db: AsyncSession, user_id: str, limit: int = 50) -> List[Conversation]:
    q = select(Conversation).where(Conversation.user_id == user_id).order_by(Conversation.updated_at.desc()).limit(limit)
    res = await db.execute(q)
    return list(res.scalars().all())


async def add_query_log(
    db: AsyncSession,
    user_id: str,
    query: str,
    results: Any = None,
    error: Optional[str] = None,
    execution_time: int = 0,
) -> SqlQueryLog:
    row = SqlQueryLog(
        user_id=user_id,
        query=query,
        results=validate_json(results),
        error=error,
        execution_time=execution_time,
    )
    db.add(row)
    await db.flush()
    return row


async def create_invoice(
    db: AsyncSession,
    user_id: str,
    filename: str,
    original_filename: str,
    file_path: str,
    file_size: int,
    mime_type: str,
    extracted_data: Any = None,
) -> Invoice:
    row = Invoice(
        user_id=user_id,
        filename=filename,
        original_filename=original_filename,
        file_path=file_path,
        file_size=file_size,
        mime_type=mime_type,
        extracted_data=validate_json(extracted_data),
    )
    db.add(row)
    await db.flush()
    return row


async def list_invoices(db: AsyncSession, user_id: str) -> List[Invoice]:
    q = select(Invoice).where(Invoice.user_id == user_id).order_by(Invoice.created_at.desc())
    res = await db.execute(q)
    return list(res.scalars().all())


async def get_invoice(db: AsyncSession, invoice_id: str, user_id: str) -> Optional[Invoice]:
    q = select(Invoice).where(Invoice.id == invoice_id, Invoice.user_id == user_id)
    res = await db.execute(q)
    return res.scalars().first()


async def delete_invoice(db: AsyncSession, invoice_id: str, user_id: str) -> None:
    await db.execute(delete(Invoice).where(Invoice.id == invoice_id, Invoice.user_id == user_id))
