# app/modules/router.py
from fastapi import APIRouter
from app.modules.assistant.api.router import v1 as chat_router
from app.modules.assistant.api.invoices import router as invoices_router

router = APIRouter()
router.include_router(chat_router)
router.include_router(invoices_router)
