import logging
from typing import Protocol

import openai

from chef.errors import CompletionError
import config


CONFIG = config.Config()
MAX_TOKENS = 3000
TIMEOUT = 60 * 2


logger = logging.getLogger(__name__)


class Completer(Protocol):
    async def complete(self, prompt: str) -> str:
        ...


def openai_client_factory(api_key: str | None = None) -> openai.AsyncClient:
    # Falls back to OPENAI_API_KEY from the environment.
    return openai.AsyncClient(api_key=api_key, timeout=TIMEOUT, max_retries=0)


async def quick_chat(
    msg: str,
    *,
    openai_client: openai.AsyncClient,
    model: str | None = None,
    max_tokens: int = MAX_TOKENS,
) -> str:
    model = CONFIG.core_model if model is None else model
    try:
        resp = await openai_client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": msg}],
            max_tokens=max_tokens,
        )
    except openai.OpenAIError as e:
        raise CompletionError(f"Problem creating completion. {e}") from e
    ans = resp.choices[0].message.content or ""
    return ans.strip()


class ChatLLM:
    """Single request, single reply. No conversation state is kept."""

    def __init__(
        self,
        openai_client: openai.AsyncClient | None = None,
        *,
        model: str | None = None,
        max_tokens: int = MAX_TOKENS,
    ) -> None:
        self.openai_client = (
            openai_client_factory() if openai_client is None else openai_client
        )
        self.model = CONFIG.core_model if model is None else model
        self.max_tokens = max_tokens

    async def complete(self, prompt: str) -> str:
        logger.info("Requesting completion from %s", self.model)
        return await quick_chat(
            prompt,
            openai_client=self.openai_client,
            model=self.model,
            max_tokens=self.max_tokens,
        )

    async def close(self) -> None:
        await self.openai_client.close()
