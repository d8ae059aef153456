from typing import Callable, Dict, List, Optional
import logging
from openai import AsyncOpenAI, OpenAIError
from core.utils.perf import profile_stage
from .errors import ModelCallError

logger = logging.getLogger(__name__)

EMPTY_COMPLETION_FALLBACK = "I apologize, but I could not generate a response."


class LLMClient:
    """Thin wrapper over the OpenAI chat-completions API."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        factory: Optional[Callable[[], AsyncOpenAI]] = None,
    ):
        self._client = client
        self._factory = factory

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if self._factory is None:
                raise ModelCallError("OpenAI client is not configured")
            self._client = self._factory()
        return self._client

    @profile_stage("llm_completion")
    async def complete(
        self,
        messages: List[Dict[str, str]],
        *,
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        """
        Single, non-streaming completion.

        Raises:
            ModelCallError: the provider call failed.
        """
        try:
            response = await self._get_client().chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
                stream=False,
            )
        except OpenAIError as e:
            logger.error(f"[llm] Completion failed for model {model}: {e}")
            raise ModelCallError("Failed to generate response from OpenAI") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            logger.warning(f"[llm] Empty completion from model {model}, using fallback text")
            return EMPTY_COMPLETION_FALLBACK
        return content
