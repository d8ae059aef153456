"""Tests for services/extraction.py: fenced SQL and invoice field extraction."""

from __future__ import annotations

import logging

import pytest

from app.modules.assistant.services.errors import ModelCallError
from app.modules.assistant.services.extraction import (
    INVOICE_FIELDS,
    extract_invoice_fields,
    extract_sql,
    parse_invoice_fields,
)
from conftest import FakeLLM


# ── extract_sql ───────────────────────────────────────────────────────────────

class TestExtractSql:
    def test_no_code_block(self):
        result = extract_sql("no code block here")
        assert result.body == "no code block here"
        assert result.sql is None

    def test_single_block(self):
        raw = "answer\n```sql\nSELECT 1\n```"
        result = extract_sql(raw)
        assert result.sql == "SELECT 1"
        assert result.body == raw

    def test_interior_is_trimmed(self):
        raw = "Try this:\n```sql\n   SELECT *\n  FROM invoices   \n```\nDone."
        assert extract_sql(raw).sql == "SELECT *\n  FROM invoices"

    def test_only_first_block_is_honored(self):
        raw = (
            "First:\n```sql\nSELECT 1\n```\n"
            "Second:\n```sql\nSELECT 2\n```"
        )
        assert extract_sql(raw).sql == "SELECT 1"

    def test_other_languages_are_ignored(self):
        raw = "```python\nprint('hi')\n```\n```SQL\nSELECT 1\n```"
        assert extract_sql(raw).sql is None

    def test_block_without_newline_before_fence_is_ignored(self):
        assert extract_sql("```sql SELECT 1```").sql is None

    def test_idempotent_on_body(self):
        raw = "Here you go\n```sql\nSELECT count(*) FROM invoices\n```\nAnything else?"
        first = extract_sql(raw)
        second = extract_sql(first.body)
        assert second.sql == first.sql
        assert second.body == first.body

    def test_empty_text(self):
        result = extract_sql("")
        assert result.body == ""
        assert result.sql is None


# ── parse_invoice_fields ──────────────────────────────────────────────────────

class TestParseInvoiceFields:
    def test_not_json(self, caplog):
        with caplog.at_level(logging.ERROR):
            assert parse_invoice_fields("not json") == {}
        assert "not json" in caplog.text

    @pytest.mark.parametrize("raw", ["", None, "   ", "[1, 2]", "42", '"text"', "null"])
    def test_non_object_results(self, raw):
        assert parse_invoice_fields(raw) == {}

    def test_missing_fields_become_none(self):
        fields = parse_invoice_fields('{"amount": 120.5, "vendor": "Acme"}')
        assert set(INVOICE_FIELDS) <= set(fields)
        assert fields["amount"] == 120.5
        assert fields["vendor"] == "Acme"
        assert fields["date"] is None
        assert fields["currency"] is None

    def test_json_fence_is_tolerated(self):
        raw = '```json\n{"invoice_number": "INV-7", "currency": "EUR"}\n```'
        fields = parse_invoice_fields(raw)
        assert fields["invoice_number"] == "INV-7"
        assert fields["currency"] == "EUR"

    def test_extra_keys_are_kept(self):
        fields = parse_invoice_fields('{"amount": 1, "po_number": "PO-1"}')
        assert fields["po_number"] == "PO-1"


# ── extract_invoice_fields ────────────────────────────────────────────────────

class TestExtractInvoiceFields:
    @pytest.mark.asyncio
    async def test_model_returns_not_json(self):
        llm = FakeLLM(replies=["not json"])
        assert await extract_invoice_fields(llm, "Invoice #1", model="m") == {}

    @pytest.mark.asyncio
    async def test_model_failure_is_swallowed(self):
        llm = FakeLLM(error=ModelCallError("down"))
        assert await extract_invoice_fields(llm, "Invoice #1", model="m") == {}

    @pytest.mark.asyncio
    async def test_unexpected_error_is_swallowed(self):
        llm = FakeLLM(error=RuntimeError("boom"))
        assert await extract_invoice_fields(llm, "Invoice #1", model="m") == {}

    @pytest.mark.asyncio
    async def test_request_shape(self):
        llm = FakeLLM(replies=['{"amount": 10, "tax_amount": 1.5}'])
        fields = await extract_invoice_fields(
            llm, "ACME invoice total 10", model="gpt-x", max_tokens=500, temperature=0.1,
        )
        assert fields["amount"] == 10
        assert fields["tax_amount"] == 1.5

        call = llm.calls[0]
        assert call["model"] == "gpt-x"
        assert call["max_tokens"] == 500
        assert call["temperature"] == 0.1
        roles = [m["role"] for m in call["messages"]]
        assert roles == ["system", "user"]
        assert "JSON" in call["messages"][0]["content"]
        assert call["messages"][1]["content"].endswith("ACME invoice total 10")
