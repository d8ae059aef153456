"""
Chat Service Module
Runs one chat turn: conversation resolution, bounded history, model call,
SQL extraction and persistence of both turns.

Only two steps can abort a turn: resolving the conversation (creating it, or
loading one the caller owns) and calling the model. Everything else is
best-effort; its failure is logged and recorded as a degraded step on the
result.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Dict, List, Optional
import logging
import time

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.services.memory.history import fetch_history, DEFAULT_HISTORY_LIMIT
from app.services.memory.repo import add_message, add_query_log, create_conversation, get_conversation
from core.utils.perf import elapsed_ms
from .errors import (
    ConversationCreateError,
    ConversationNotFoundError,
    ConversationResolveError,
    ModelCallError,
)
from .extraction import ExtractedResponse, extract_sql
from .prompts import ChatMode, assemble_messages
from .sql_engine import SqlExecution, SqlExecutor

logger = logging.getLogger(__name__)

TITLE_MAX_CHARS = 50
TITLE_ELLIPSIS = "…"
SQL_EXECUTION_ERROR = "SQL execution error"


def derive_title(message: str) -> str:
    if len(message) > TITLE_MAX_CHARS:
        return message[:TITLE_MAX_CHARS] + TITLE_ELLIPSIS
    return message


class StepOutcome(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"


@dataclass
class TurnResult:
    conversation_id: str
    body: str
    sql: Optional[str] = None
    sql_result: Any = None
    sql_error: Optional[str] = None
    steps: Dict[str, StepOutcome] = field(default_factory=dict)

    @property
    def degraded_steps(self) -> List[str]:
        return [name for name, outcome in self.steps.items() if outcome is StepOutcome.DEGRADED]


class ChatService:
    def __init__(
        self,
        sessions: async_sessionmaker[AsyncSession],
        llm,
        sql_executor: SqlExecutor,
        *,
        model: str,
        max_tokens: int,
        temperature: float,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        self._sessions = sessions
        self._llm = llm
        self._sql_executor = sql_executor
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._history_limit = history_limit

    async def handle_turn(
        self,
        user_id: str,
        message: str,
        conversation_id: Optional[str] = None,
        include_sql: bool = False,
    ) -> TurnResult:
        """
        Answer `message` within `conversation_id`, creating the conversation when absent.

        Raises:
            ConversationCreateError: no conversation id given and creating one failed.
            ConversationNotFoundError: the id is unknown or belongs to another user.
            ConversationResolveError: the supplied conversation could not be loaded.
            ModelCallError: the model produced no answer.
        """
        steps: Dict[str, StepOutcome] = {}
        mode = ChatMode.from_flag(include_sql)

        conv_id = await self._resolve_conversation(user_id, conversation_id, message)
        steps["resolve_conversation"] = StepOutcome.OK

        history = await self._best_effort(
            steps, "fetch_history", conv_id,
            fetch_history(self._sessions, conv_id, self._history_limit),
            default=[],
        )

        await self._best_effort(
            steps, "persist_user_turn", conv_id,
            self._persist_turn(conv_id, "user", message),
        )

        raw = await self._invoke_model(conv_id, assemble_messages(mode, history, message))
        steps["invoke_model"] = StepOutcome.OK

        extracted: ExtractedResponse = extract_sql(raw)

        execution = SqlExecution()
        if include_sql and extracted.sql:
            execution = await self._execute_sql(steps, extracted.sql)
            await self._best_effort(
                steps, "log_query", conv_id,
                self._log_query(user_id, extracted.sql, execution),
            )

        await self._best_effort(
            steps, "persist_assistant_turn", conv_id,
            self._persist_turn(
                conv_id, "assistant", extracted.body,
                sql_query=extracted.sql,
                sql_results=execution.result,
            ),
        )

        result = TurnResult(
            conversation_id=conv_id,
            body=extracted.body,
            sql=extracted.sql,
            sql_result=execution.result,
            sql_error=execution.error,
            steps=steps,
        )
        if result.degraded_steps:
            logger.warning(
                f"[chat] Turn in conversation {conv_id} completed with degraded steps: "
                f"{', '.join(result.degraded_steps)}"
            )
        return result

    async def _resolve_conversation(self, user_id: str, conversation_id: Optional[str], message: str) -> str:
        if conversation_id:
            try:
                async with self._sessions() as db:
                    conv = await get_conversation(db, conversation_id, user_id=user_id)
            except Exception as e:
                logger.error(f"[chat] Error loading conversation {conversation_id}: {e}", exc_info=True)
                raise ConversationResolveError("Failed to load conversation") from e
            if conv is None:
                logger.info(f"[chat] Conversation {conversation_id} not found for user {user_id}")
                raise ConversationNotFoundError("Conversation not found")
            return conv.id
        try:
            async with self._sessions() as db:
                conv = await create_conversation(db, user_id, derive_title(message))
                await db.commit()
        except Exception as e:
            logger.error(f"[chat] Error creating conversation for user {user_id}: {e}", exc_info=True)
            raise ConversationCreateError("Failed to create conversation") from e
        logger.info(f"[chat] Created conversation {conv.id} for user {user_id}")
        return conv.id

    async def _invoke_model(self, conv_id: str, messages: List[Dict[str, str]]) -> str:
        try:
            return await self._llm.complete(
                messages,
                model=self._model,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
        except ModelCallError:
            logger.error(f"[chat] Model call failed for conversation {conv_id}")
            raise
        except Exception as e:
            logger.error(f"[chat] Model call failed for conversation {conv_id}: {e}", exc_info=True)
            raise ModelCallError("Failed to generate response") from e

    async def _execute_sql(self, steps: Dict[str, StepOutcome], sql: str) -> SqlExecution:
        t0 = time.perf_counter()
        try:
            execution = await self._sql_executor.execute(sql)
        except Exception as e:
            logger.error(f"[chat] SQL execution error: {e}", exc_info=True)
            steps["execute_sql"] = StepOutcome.DEGRADED
            return SqlExecution(error=SQL_EXECUTION_ERROR, duration_ms=elapsed_ms(t0))
        steps["execute_sql"] = StepOutcome.OK if execution.error is None else StepOutcome.DEGRADED
        return execution

    async def _persist_turn(
        self,
        conv_id: str,
        role: str,
        content: str,
        sql_query: Optional[str] = None,
        sql_results: Any = None,
    ) -> None:
        async with self._sessions() as db:
            await add_message(db, conv_id, role, content, sql_query=sql_query, sql_results=sql_results)
            await db.commit()

    async def _log_query(self, user_id: str, sql: str, execution: SqlExecution) -> None:
        async with self._sessions() as db:
            await add_query_log(
                db,
                user_id=user_id,
                query=sql,
                results=execution.result,
                error=execution.error,
                execution_time=execution.duration_ms,
            )
            await db.commit()

    async def _best_effort(
        self,
        steps: Dict[str, StepOutcome],
        name: str,
        conv_id: str,
        op: Awaitable[Any],
        default: Any = None,
    ) -> Any:
        try:
            value = await op
        except Exception as e:
            logger.warning(f"[chat] {name} failed for conversation {conv_id} (non-fatal): {e}", exc_info=True)
            steps[name] = StepOutcome.DEGRADED
            return default
        steps[name] = StepOutcome.OK
        return value
