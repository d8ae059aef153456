from typing import Any, List, Optional
import logging

import anyio
from supabase import Client, create_client

from .errors import StorageError

logger = logging.getLogger(__name__)


class SupabaseStorage:
    """Single-bucket wrapper over the Supabase Storage client."""

    def __init__(
        self,
        base_url: str,
        service_key: Optional[str],
        bucket: str = "invoices",
        client: Optional[Client] = None,
    ):
        self._base_url = (base_url or "").rstrip("/")
        self._service_key = service_key
        self.bucket = bucket
        self._sb = client

    def _bucket(self) -> Any:
        if self._sb is None:
            if not self._base_url or not self._service_key:
                raise StorageError("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY are not configured")
            self._sb = create_client(self._base_url, self._service_key)
        return self._sb.storage.from_(self.bucket)

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Store `data` at `path` (never overwriting) and return the stored path."""
        bucket = self._bucket()
        try:
            # supabase-py is synchronous
            await anyio.to_thread.run_sync(
                lambda: bucket.upload(
                    path,
                    data,
                    {"content-type": content_type, "cache-control": "3600", "upsert": "false"},
                )
            )
        except Exception as e:
            raise StorageError(f"upload of {path} failed: {e}") from e
        return path

    async def remove(self, paths: List[str]) -> None:
        bucket = self._bucket()
        try:
            await anyio.to_thread.run_sync(lambda: bucket.remove(list(paths)))
        except Exception as e:
            raise StorageError(f"removal of {len(paths)} object(s) failed: {e}") from e

    def public_url(self, path: str) -> str:
        return f"{self._base_url}/storage/v1/object/public/{self.bucket}/{path}"
