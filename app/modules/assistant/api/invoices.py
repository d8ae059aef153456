from fastapi import APIRouter, Depends, File, UploadFile

from app.modules.assistant.schema.invoices import (
    InvoiceDeleteResponse,
    InvoiceListResponse,
    InvoiceUploadResponse,
)
from app.modules.assistant.services.auth import Identity
from app.modules.assistant.services.invoice_service import (
    list_user_invoices,
    process_invoice_upload,
    remove_invoice,
)
from core.config import Services, get_services
from .deps import require_user

router = APIRouter(prefix="/api", tags=["Invoices"])


@router.post("/upload", response_model=InvoiceUploadResponse)
async def upload_invoice(
    file: UploadFile = File(...),
    identity: Identity = Depends(require_user),
    services: Services = Depends(get_services),
) -> InvoiceUploadResponse:
    """Upload an invoice file (PDF, PNG or JPEG, up to 10MB)."""
    invoice = await process_invoice_upload(file, identity, services)
    return InvoiceUploadResponse(data=invoice)


@router.get("/invoices", response_model=InvoiceListResponse)
async def get_invoices(
    identity: Identity = Depends(require_user),
    services: Services = Depends(get_services),
) -> InvoiceListResponse:
    return InvoiceListResponse(data=await list_user_invoices(identity, services))


@router.delete("/invoices/{invoice_id}", response_model=InvoiceDeleteResponse)
async def delete_invoice(
    invoice_id: str,
    identity: Identity = Depends(require_user),
    services: Services = Depends(get_services),
) -> InvoiceDeleteResponse:
    await remove_invoice(invoice_id, identity, services)
    return InvoiceDeleteResponse()
