"""
Extraction Module
Recovers structured values from free-form model output: the first fenced SQL
block of a chat answer, and the invoice fields of an extraction response.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional
import json
import logging
import re

from core.utils.perf import profile_stage
from .prompts import build_extraction_messages

logger = logging.getLogger(__name__)

SQL_FENCE_RE = re.compile(r"```sql\n(.*?)\n```", re.DOTALL)
JSON_FENCE_RE = re.compile(r"^```(?:json)?\s*\n(.*?)\n?```$", re.DOTALL)

INVOICE_FIELDS = (
    "amount",
    "date",
    "vendor",
    "invoice_number",
    "description",
    "tax_amount",
    "currency",
)


@dataclass(frozen=True)
class ExtractedResponse:
    body: str
    sql: Optional[str] = None


def extract_sql(raw_text: str) -> ExtractedResponse:
    """
    Split a model answer into display text and the first ```sql fenced query.

    The body is returned unchanged; the fenced block stays in it for display.
    No attempt is made to validate the SQL itself.
    """
    match = SQL_FENCE_RE.search(raw_text or "")
    sql = match.group(1).strip() if match else None
    return ExtractedResponse(body=raw_text, sql=sql)


def parse_invoice_fields(raw: Optional[str]) -> Dict[str, Any]:
    """
    Parse a model response into the invoice field mapping.

    Returns {} for anything that isn't a JSON object; otherwise every known
    field is present, None where the model gave nothing.
    """
    text = (raw or "").strip()
    fenced = JSON_FENCE_RE.match(text)
    if fenced:
        text = fenced.group(1).strip()

    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        logger.error("Failed to parse JSON response: %r", raw)
        return {}

    if not isinstance(parsed, dict):
        logger.error("Invoice extraction returned non-object JSON: %r", raw)
        return {}

    fields: Dict[str, Any] = {key: None for key in INVOICE_FIELDS}
    fields.update(parsed)
    return fields


@profile_stage("invoice_extraction")
async def extract_invoice_fields(
    llm,
    document_text: str,
    *,
    model: str,
    max_tokens: int = 500,
    temperature: float = 0.1,
) -> Dict[str, Any]:
    """
    Ask the model for the invoice fields of `document_text`.

    Never raises: a failed model call or an unparseable answer yields {}.
    """
    try:
        raw = await llm.complete(
            build_extraction_messages(document_text),
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
        )
    except Exception as e:
        logger.error(f"OpenAI invoice extraction error: {e}", exc_info=True)
        return {}
    return parse_invoice_fields(raw)
