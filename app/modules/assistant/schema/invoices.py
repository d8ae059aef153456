from pydantic import BaseModel
from typing import Any, List, Optional


class InvoiceItem(BaseModel):
    id: str
    user_id: str
    filename: str
    original_filename: str
    file_path: str
    file_size: int
    mime_type: str
    extracted_data: Optional[Any] = None
    created_at: str
    updated_at: str


class UploadedInvoice(InvoiceItem):
    public_url: str


class InvoiceUploadResponse(BaseModel):
    success: bool = True
    data: UploadedInvoice


class InvoiceListResponse(BaseModel):
    success: bool = True
    data: List[InvoiceItem]


class InvoiceDeleteResponse(BaseModel):
    success: bool = True
    message: str = "Invoice deleted successfully"
