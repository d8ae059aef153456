from typing import Dict, List
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from .repo import last_messages

DEFAULT_HISTORY_LIMIT = 10


async def fetch_history(
    sessions: async_sessionmaker[AsyncSession],
    conversation_id: str,
    limit: int = DEFAULT_HISTORY_LIMIT,
) -> List[Dict[str, str]]:
    """
    Most recent `limit` turns of a conversation as prompt messages, oldest first.

    Store failures propagate; the chat turn treats them as a degraded step.
    """
    if limit <= 0:
        return []
    async with sessions() as db:
        rows = await last_messages(db, conversation_id, limit=limit)
    return [{"role": m.role, "content": m.content} for m in rows]
