"""Tests for core/config.py settings and service wiring."""

import pytest

from app.modules.assistant.services.auth import SupabaseIdentityProvider
from app.modules.assistant.services.llm import LLMClient
from app.modules.assistant.services.storage import SupabaseStorage
from core.config import Settings, build_services, get_llm_client


@pytest.fixture
def clean_env(monkeypatch):
    for key in ("DATABASE_URL", "OPENAI_API_KEY", "LOG_LEVEL", "CHAT_MODEL", "HISTORY_LIMIT"):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    cfg = Settings(_env_file=None)
    assert cfg.CHAT_MODEL == "gpt-3.5-turbo"
    assert (cfg.CHAT_MAX_TOKENS, cfg.CHAT_TEMPERATURE) == (1000, 0.7)
    assert (cfg.EXTRACTION_MAX_TOKENS, cfg.EXTRACTION_TEMPERATURE) == (500, 0.1)
    assert cfg.HISTORY_LIMIT == 10
    assert cfg.INVOICE_MAX_BYTES == 10 * 1024 * 1024
    assert "application/pdf" in cfg.INVOICE_ALLOWED_TYPES
    assert cfg.DATABASE_URL.startswith("sqlite+aiosqlite://")


def test_environment_overrides(clean_env):
    clean_env.setenv("CHAT_MODEL", "gpt-4o-mini")
    clean_env.setenv("HISTORY_LIMIT", "4")
    cfg = Settings(_env_file=None)
    assert cfg.CHAT_MODEL == "gpt-4o-mini"
    assert cfg.HISTORY_LIMIT == 4


def test_llm_client_never_retries():
    client = get_llm_client(Settings(_env_file=None, OPENAI_API_KEY="sk-test"))
    assert client.max_retries == 0


def test_build_services_defaults_are_lazy():
    cfg = Settings(_env_file=None, OPENAI_API_KEY=None, SUPABASE_URL="")
    services = build_services(cfg=cfg)
    assert isinstance(services.llm, LLMClient)
    assert isinstance(services.identity, SupabaseIdentityProvider)
    assert isinstance(services.storage, SupabaseStorage)
    assert services.settings is cfg
