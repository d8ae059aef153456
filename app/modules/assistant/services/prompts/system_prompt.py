from enum import Enum
from textwrap import dedent
from typing import Dict, List, Sequence


class ChatMode(str, Enum):
    SQL_ASSIST = "sql_assist"
    PLAIN = "plain"

    @classmethod
    def from_flag(cls, include_sql: bool) -> "ChatMode":
        return cls.SQL_ASSIST if include_sql else cls.PLAIN


SQL_ASSIST_PROMPT = dedent("""
You are a helpful AI assistant that specializes in SQL and data analysis.
When users ask questions that could be answered with SQL queries, provide both:
1. A conversational response
2. A SQL query that could help answer their question

Format SQL queries in code blocks with the language specified as 'sql'.
Only suggest SQL queries when they would be relevant and helpful.
Write read-only queries (SELECT). Do not suggest INSERT, UPDATE, DELETE, DROP
or any other statement that modifies data or schema.
""").strip()

PLAIN_PROMPT = (
    "You are a helpful AI assistant. "
    "Provide clear, concise, and helpful responses to user questions."
)

SYSTEM_PROMPTS = {
    ChatMode.SQL_ASSIST: SQL_ASSIST_PROMPT,
    ChatMode.PLAIN: PLAIN_PROMPT,
}

INVOICE_EXTRACTION_PROMPT = dedent("""
You are an AI assistant specialized in extracting structured data from invoice text.
Extract the following information from the invoice text and return it as a JSON object:
- amount (number): Total invoice amount
- date (string): Invoice date in YYYY-MM-DD format
- vendor (string): Company/vendor name
- invoice_number (string): Invoice number or ID
- description (string): Brief description of services/products
- tax_amount (number): Tax amount if present
- currency (string): Currency code (USD, EUR, etc.)

If any field is not found, set it to null.
Return only valid JSON, no additional text.
""").strip()


def assemble_messages(
    mode: ChatMode,
    history: Sequence[Dict[str, str]],
    new_message: str,
) -> List[Dict[str, str]]:
    """
    System directive for `mode`, then the history as given, then the new user turn.
    """
    messages = [{"role": "system", "content": SYSTEM_PROMPTS[ChatMode(mode)]}]
    messages.extend(history)
    messages.append({"role": "user", "content": new_message})
    return messages


def build_extraction_messages(document_text: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": INVOICE_EXTRACTION_PROMPT},
        {"role": "user", "content": f"Extract data from this invoice text:\n\n{document_text}"},
    ]
