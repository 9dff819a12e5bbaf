# =============================================
# File: magicommerce/services/gateway.py
# Purpose: The single integration point to the text-completion service (OpenAI / Azure OpenAI)
# =============================================
from __future__ import annotations
import asyncio
from typing import Dict, List, Optional

import openai
from loguru import logger
from openai import AsyncAzureOpenAI, AsyncOpenAI

from ..utils import metrics, slog
from ..utils.config import GatewayConfig

Message = Dict[str, str]


class UpstreamError(RuntimeError):
    """
    The completion service could not produce text.
    kind: "unconfigured" | "timeout" | "connection" | "http"
    """
    def __init__(self, kind: str, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.status = status


class CompletionGateway:
    """
    Thin async wrapper over the chat completions API.

    Every failure surfaces as UpstreamError so callers can apply their own
    fallback. No retries happen here (the SDK client is built with
    max_retries=0); each call is bounded by a timeout.
    """

    def __init__(self, config: GatewayConfig, client=None) -> None:
        self.config = config
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None or self.config.configured

    def _get_client(self):
        if self._client is not None:
            return self._client
        if not self.config.configured:
            raise UpstreamError("unconfigured", "completion service has no API key")
        if self.config.azure_endpoint:
            self._client = AsyncAzureOpenAI(
                api_key=self.config.api_key,
                azure_endpoint=self.config.azure_endpoint,
                api_version=self.config.api_version,
                max_retries=0,
            )
        else:
            self._client = AsyncOpenAI(api_key=self.config.api_key, max_retries=0)
        return self._client

    async def complete(
        self,
        messages: List[Message],
        max_tokens: int = 512,
        temperature: float = 0.4,
        timeout: Optional[float] = None,
    ) -> str:
        timeout_s = timeout if timeout is not None else self.config.timeout_s
        with slog.timer() as elapsed:
            try:
                client = self._get_client()
                resp = await asyncio.wait_for(
                    client.chat.completions.create(
                        model=self.config.model,
                        messages=messages,
                        max_tokens=max_tokens,
                        temperature=temperature,
                        timeout=timeout_s,
                    ),
                    timeout=timeout_s,
                )
            except UpstreamError as e:
                self._observe(e.kind, elapsed())
                raise
            except (asyncio.TimeoutError, openai.APITimeoutError) as e:
                self._observe("timeout", elapsed())
                raise UpstreamError("timeout", f"completion timed out after {timeout_s}s") from e
            except openai.APIConnectionError as e:
                self._observe("connection", elapsed())
                raise UpstreamError("connection", f"completion service unreachable: {e}") from e
            except openai.APIStatusError as e:
                self._observe("http", elapsed())
                raise UpstreamError("http", f"completion error: {e.status_code}", status=e.status_code) from e
            except openai.APIError as e:
                self._observe("http", elapsed())
                raise UpstreamError("http", f"completion error: {e}") from e

        self._observe("ok", elapsed())
        if not resp.choices:
            return ""
        return (resp.choices[0].message.content or "").strip()

    async def ping(self, timeout: Optional[float] = None) -> None:
        await self.complete(
            [{"role": "user", "content": "Health check ping"}],
            max_tokens=5,
            temperature=0.0,
            timeout=timeout,
        )

    def _observe(self, outcome: str, latency_ms: int) -> None:
        metrics.record_completion(outcome)
        slog.log_event(
            "completion.call",
            provider=self.config.provider,
            model=self.config.model,
            outcome=outcome,
            latency_ms=latency_ms,
        )
        if outcome not in ("ok", "unconfigured"):
            logger.warning(f"[gateway] completion failed outcome={outcome} latency_ms={latency_ms}")
