from pydantic import BaseModel, Field, StrictBool, StrictStr
from typing import Any, List, Optional


class ChatRequest(BaseModel):
    message: StrictStr = Field(..., min_length=1)
    conversation_id: Optional[str] = None
    include_sql: StrictBool = False


class ChatData(BaseModel):
    message: str
    conversation_id: str
    sql_query: Optional[str] = None
    sql_results: Any = None
    sql_error: Optional[str] = None


class ChatResponse(BaseModel):
    success: bool = True
    data: ChatData


class ConversationItem(BaseModel):
    id: str
    title: str
    created_at: str
    updated_at: str


class ConversationListResponse(BaseModel):
    success: bool = True
    data: List[ConversationItem]


class MessageItem(BaseModel):
    id: str
    role: str
    content: str
    sql_query: Optional[str] = None
    sql_results: Any = None
    created_at: str


class MessageListResponse(BaseModel):
    success: bool = True
    data: List[MessageItem]
