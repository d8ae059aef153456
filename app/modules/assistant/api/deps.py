from typing import Optional
import logging

from fastapi import Depends, Header, HTTPException

from app.modules.assistant.services.auth import Identity
from app.modules.assistant.services.errors import AuthError
from core.config import Services, get_services

logger = logging.getLogger(__name__)


async def require_user(
    authorization: Optional[str] = Header(None),
    services: Services = Depends(get_services),
) -> Identity:
    """Resolve the bearer token to an identity; any failure is a plain 401."""
    token = (authorization or "").removeprefix("Bearer ").strip()
    try:
        return await services.identity.resolve(token)
    except AuthError as e:
        logger.info(f"[auth] Rejected credential: {e}")
    except Exception as e:
        logger.warning(f"[auth] Identity provider failure: {e}", exc_info=True)
    raise HTTPException(status_code=401, detail="Unauthorized")
