# Prompt utilities for the chat and invoice services.

from .system_prompt import ChatMode, assemble_messages, build_extraction_messages, SQL_ASSIST_PROMPT, PLAIN_PROMPT

__all__ = ["ChatMode", "assemble_messages", "build_extraction_messages", "SQL_ASSIST_PROMPT", "PLAIN_PROMPT"]
