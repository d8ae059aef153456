"""
Invoice Service Module
Handles invoice upload, listing and deletion business logic
"""

from typing import List, Tuple
import io
import logging
import os
import time

import anyio
from fastapi import UploadFile, HTTPException
from PIL import Image

from app.modules.assistant.schema.invoices import InvoiceItem, UploadedInvoice
from app.services.memory.models import Invoice
from app.services.memory.repo import create_invoice, delete_invoice, get_invoice, list_invoices
from core.config import Services
from .auth import Identity
from .errors import StorageError
from .extraction import extract_invoice_fields

logger = logging.getLogger(__name__)

PDF_PLACEHOLDER_TEXT = "PDF text extraction would happen here"
IMAGE_PLACEHOLDER_TEXT = "OCR text extraction would happen here"

IMAGE_MAX_SIDE = 2000
IMAGE_JPEG_QUALITY = 85


def invoice_to_item(row: Invoice) -> InvoiceItem:
    return InvoiceItem(
        id=row.id,
        user_id=row.user_id,
        filename=row.filename,
        original_filename=row.original_filename,
        file_path=row.file_path,
        file_size=row.file_size,
        mime_type=row.mime_type,
        extracted_data=row.extracted_data,
        created_at=row.created_at.isoformat(),
        updated_at=row.updated_at.isoformat(),
    )


def document_text_for(mime_type: str) -> str:
    # Text extraction is not implemented; the model sees a placeholder.
    if mime_type == "application/pdf":
        return PDF_PLACEHOLDER_TEXT
    return IMAGE_PLACEHOLDER_TEXT


def optimize_image(data: bytes) -> bytes:
    """Fit the image inside IMAGE_MAX_SIDE x IMAGE_MAX_SIDE (never enlarging) and re-encode as JPEG."""
    with Image.open(io.BytesIO(data)) as img:
        img.thumbnail((IMAGE_MAX_SIDE, IMAGE_MAX_SIDE))
        if img.mode != "RGB":
            img = img.convert("RGB")
        out = io.BytesIO()
        img.save(out, format="JPEG", quality=IMAGE_JPEG_QUALITY)
    return out.getvalue()


async def prepare_payload(data: bytes, content_type: str, key: str) -> Tuple[bytes, str]:
    """Bytes and content type to store; images are optimized, falling back to the original."""
    if not content_type.startswith("image/"):
        return data, content_type
    try:
        optimized = await anyio.to_thread.run_sync(optimize_image, data)
    except Exception as e:
        logger.warning(f"Image optimization failed for {key}, storing original: {e}")
        return data, content_type
    return optimized, "image/jpeg"


def storage_key(user_id: str, original_filename: str) -> str:
    """`{user_id}/{epoch_ms}.{ext}`; the original name never reaches storage."""
    ext = os.path.splitext(original_filename)[1].lstrip(".").lower() or "bin"
    return f"{user_id}/{int(time.time() * 1000)}.{ext}"


async def validate_upload(file: UploadFile, services: Services) -> bytes:
    """Check type and size, returning the file body. Raises 400 on violations."""
    cfg = services.settings
    if not file.filename:
        raise HTTPException(status_code=400, detail="No file provided")

    if file.content_type not in cfg.INVOICE_ALLOWED_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Invalid file type. Only PDF, PNG, and JPEG files are allowed.",
        )

    too_large = HTTPException(
        status_code=400,
        detail=f"File size too large. Maximum size is {cfg.INVOICE_MAX_BYTES // (1024 * 1024)}MB.",
    )
    if file.size is not None and file.size > cfg.INVOICE_MAX_BYTES:
        raise too_large
    data = await file.read()
    if len(data) > cfg.INVOICE_MAX_BYTES:
        raise too_large
    return data


async def process_invoice_upload(
    file: UploadFile,
    identity: Identity,
    services: Services,
) -> UploadedInvoice:
    """
    Store an uploaded invoice, extract its fields, and record it.

    Field extraction never fails the upload. A failed insert removes the
    stored object again.
    """
    data = await validate_upload(file, services)
    key = storage_key(identity.user_id, file.filename)
    payload, stored_type = await prepare_payload(data, file.content_type, key)

    try:
        stored_path = await services.storage.upload(key, payload, stored_type)
    except StorageError as e:
        logger.error(f"Upload error for user {identity.user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to upload file") from e

    extracted = await extract_invoice_fields(
        services.llm,
        document_text_for(file.content_type),
        model=services.settings.EXTRACTION_MODEL,
        max_tokens=services.settings.EXTRACTION_MAX_TOKENS,
        temperature=services.settings.EXTRACTION_TEMPERATURE,
    )

    try:
        async with services.sessions() as db:
            row = await create_invoice(
                db,
                user_id=identity.user_id,
                filename=key,
                original_filename=file.filename,
                file_path=stored_path,
                file_size=len(data),
                mime_type=file.content_type,
                extracted_data=extracted,
            )
            await db.commit()
    except Exception as e:
        logger.error(f"Database error saving invoice {key}: {e}", exc_info=True)
        try:
            await services.storage.remove([key])
        except StorageError as cleanup_error:
            logger.warning(f"Failed to clean up stored file {key}: {cleanup_error}")
        raise HTTPException(status_code=500, detail="Failed to save invoice data") from e

    logger.info(f"Stored invoice {row.id} ({len(data)} bytes) for user {identity.user_id}")
    item = invoice_to_item(row)
    return UploadedInvoice(**item.model_dump(), public_url=services.storage.public_url(stored_path))


async def list_user_invoices(identity: Identity, services: Services) -> List[InvoiceItem]:
    async with services.sessions() as db:
        rows = await list_invoices(db, identity.user_id)
    return [invoice_to_item(r) for r in rows]


async def remove_invoice(invoice_id: str, identity: Identity, services: Services) -> None:
    """Delete the stored file (best-effort) and then the invoice row."""
    async with services.sessions() as db:
        row = await get_invoice(db, invoice_id, identity.user_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Invoice not found")

    try:
        await services.storage.remove([row.file_path])
    except StorageError as e:
        logger.warning(f"Storage deletion error for invoice {invoice_id}: {e}")

    try:
        async with services.sessions() as db:
            await delete_invoice(db, invoice_id, identity.user_id)
            await db.commit()
    except Exception as e:
        logger.error(f"Database deletion error for invoice {invoice_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete invoice") from e
