"""
Core Configuration and Services
Consolidated configuration settings and service wiring for the Invoice Chat API
"""

import logging
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from fastapi import FastAPI, Request
from openai import AsyncOpenAI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./invoice_chat.sqlite"

    # OpenAI
    OPENAI_API_KEY: str | None = None
    OPENAI_TIMEOUT_SECS: int = 30

    # Chat completions use the same numbers in SQL-assist and plain mode
    CHAT_MODEL: str = "gpt-3.5-turbo"
    CHAT_MAX_TOKENS: int = 1000
    CHAT_TEMPERATURE: float = 0.7

    # Invoice field extraction
    EXTRACTION_MODEL: str = "gpt-3.5-turbo"
    EXTRACTION_MAX_TOKENS: int = 500
    EXTRACTION_TEMPERATURE: float = 0.1

    # Conversation context
    HISTORY_LIMIT: int = 10

    # Supabase (auth + storage)
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str | None = None
    SUPABASE_JWT_SECRET: str | None = None

    # Invoices
    INVOICE_BUCKET: str = "invoices"
    INVOICE_MAX_BYTES: int = 10 * 1024 * 1024
    INVOICE_ALLOWED_TYPES: list[str] = [
        "application/pdf",
        "image/png",
        "image/jpeg",
        "image/jpg",
    ]

    # CORS Configuration
    CORS_ALLOWED_ORIGINS: list[str] = [
        "http://127.0.0.1:8000",
        "http://localhost:3000",
    ]


settings = Settings()


def get_llm_client(cfg: Settings = settings) -> AsyncOpenAI:
    """Create the OpenAI client. Retries are disabled; every failure surfaces once."""
    return AsyncOpenAI(
        api_key=cfg.OPENAI_API_KEY,
        timeout=cfg.OPENAI_TIMEOUT_SECS,
        max_retries=0,
    )


class Services:
    """Collaborator handles built once at startup and shared by the routers."""

    def __init__(
        self,
        settings: Settings,
        sessions: async_sessionmaker[AsyncSession],
        llm,
        identity,
        storage,
        chat,
    ):
        self.settings = settings
        self.sessions = sessions
        self.llm = llm
        self.identity = identity
        self.storage = storage
        self.chat = chat


def build_services(
    cfg: Settings = settings,
    sessions: Optional[async_sessionmaker[AsyncSession]] = None,
    llm=None,
    identity=None,
    storage=None,
    sql_executor=None,
) -> Services:
    """Construct every collaborator; any argument left as None gets the default implementation."""
    from app.services.memory.db import SessionLocal
    from app.modules.assistant.services.auth import SupabaseIdentityProvider
    from app.modules.assistant.services.chat_service import ChatService
    from app.modules.assistant.services.llm import LLMClient
    from app.modules.assistant.services.sql_engine import PlaceholderSqlExecutor
    from app.modules.assistant.services.storage import SupabaseStorage

    sessions = sessions or SessionLocal
    llm = llm or LLMClient(factory=lambda: get_llm_client(cfg))
    identity = identity or SupabaseIdentityProvider(
        supabase_url=cfg.SUPABASE_URL,
        jwt_secret=cfg.SUPABASE_JWT_SECRET,
    )
    storage = storage or SupabaseStorage(
        base_url=cfg.SUPABASE_URL,
        service_key=cfg.SUPABASE_SERVICE_ROLE_KEY,
        bucket=cfg.INVOICE_BUCKET,
    )
    chat = ChatService(
        sessions=sessions,
        llm=llm,
        sql_executor=sql_executor or PlaceholderSqlExecutor(),
        model=cfg.CHAT_MODEL,
        max_tokens=cfg.CHAT_MAX_TOKENS,
        temperature=cfg.CHAT_TEMPERATURE,
        history_limit=cfg.HISTORY_LIMIT,
    )
    return Services(
        settings=cfg,
        sessions=sessions,
        llm=llm,
        identity=identity,
        storage=storage,
        chat=chat,
    )


def wire_services(app: FastAPI, services: Optional[Services] = None) -> None:
    """Wire all singleton services into app.state on startup."""
    logger.info("Wiring global services...")
    app.state.services = services or build_services()
    logger.info("Service container wiring completed successfully")


def get_services(request: Request) -> Services:
    """
    Get the service container for the current request.

    Args:
        request: FastAPI request object containing app.state

    Returns:
        Services: collaborator handles wired at startup
    """
    return request.app.state.services
