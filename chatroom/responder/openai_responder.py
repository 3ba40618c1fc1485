"""
OpenAI responder (Responses API edition).
"""
from __future__ import annotations

import logging
import os
from typing import Optional

from openai import AsyncOpenAI, AsyncAzureOpenAI

from .responder_base import Responder, ResponderFailure

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"


class OpenAIResponder(Responder):
    """
    Answers ``@bot`` prompts with a single-turn OpenAI completion.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        base_url: Optional[str] = None,
        api_type: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> None:
        super().__init__("openai", "OpenAI")
        self.model = model
        self.max_tokens = max_tokens

        # Fallback to environment variables if not set
        api_type = (api_type or os.environ.get("OPENAI_API_TYPE", "openai")).lower()
        api_key = api_key or os.environ.get("OPENAI_API_KEY")
        api_version = api_version or os.environ.get("OPENAI_API_VERSION")

        if not api_key:
            raise ValueError("OpenAI API key must be provided either as argument or OPENAI_API_KEY env var.")

        self.api_type = api_type
        self.api_version = api_version

        client_kwargs = {"api_key": api_key}
        if timeout is not None:
            client_kwargs["timeout"] = timeout

        # Azure support
        if api_type == "azure":
            base_url = base_url or os.environ.get("AZURE_OPENAI_ENDPOINT")
            if not base_url:
                raise ValueError("Azure OpenAI endpoint must be provided either as argument or AZURE_OPENAI_ENDPOINT env var.")
            self._aclient = AsyncAzureOpenAI(
                api_version=api_version,
                azure_endpoint=base_url,
                **client_kwargs,
            )
        else:
            base_url = base_url or os.environ.get("OPENAI_API_BASE")
            self._aclient = AsyncOpenAI(
                base_url=base_url,  # None → default api.openai.com
                **client_kwargs,
            )

    async def _complete_text(self, prompt: str) -> str:
        create_kwargs = dict(
            model=self.model,
            input=[{"role": "user", "content": prompt}],
            store=False,
        )
        if self.max_tokens:
            create_kwargs["max_output_tokens"] = self.max_tokens

        response = await self._aclient.responses.create(**create_kwargs)

        text = getattr(response, "output_text", None)
        if not isinstance(text, str):
            raise ResponderFailure("Malformed response: no output text")
        logger.debug(f"[BOT] {self.model} answered with {len(text)} characters")
        return text

    async def close(self) -> None:
        await self._aclient.close()
