from dataclasses import dataclass
from typing import Any, Optional, Protocol
import logging
import time

from core.utils.perf import elapsed_ms

logger = logging.getLogger(__name__)


@dataclass
class SqlExecution:
    result: Any = None
    error: Optional[str] = None
    duration_ms: int = 0


class SqlExecutor(Protocol):
    async def execute(self, sql: str) -> SqlExecution: ...


class PlaceholderSqlExecutor:
    """
    Stand-in for a sandboxed query engine. Echoes the query back with a notice
    instead of touching any database.
    """

    async def execute(self, sql: str) -> SqlExecution:
        t0 = time.perf_counter()
        result = {
            "message": "SQL execution is not implemented in this demo",
            "query": sql,
            "note": "This would execute against your actual database in production",
        }
        logger.info("[sql] Placeholder execution for query of %d chars", len(sql))
        return SqlExecution(result=result, duration_ms=elapsed_ms(t0))
