"""Model gateway: the only module that talks to the generation service.

Callers assemble the system instruction and prompt; the gateway passes them
through, optionally enabling the provider's web search tool, and returns raw
text. It never retries: retry policy belongs to the pipeline.
"""

import logging

import anthropic
import httpx

from .config import Settings
from .errors import EmptyResponse, GenerationFailed

logger = logging.getLogger(__name__)

WEB_SEARCH_TOOL = "web_search_20250305"


class Gateway:
    """Interface. Implementations raise GenerationFailed / EmptyResponse."""

    def generate(self, system: str, prompt: str, *, use_search: bool = False, temperature: float = 0.3) -> str:
        raise NotImplementedError

    def converse(self, system: str, messages: list[dict], *, temperature: float = 0.7) -> str:
        """`messages` are {"role": "user" | "assistant", "content": str} in turn order."""
        raise NotImplementedError


class AnthropicGateway(Gateway):
    def __init__(self, settings: Settings, client: anthropic.Anthropic | None = None):
        self.settings = settings
        self._client_instance = client

    def _client(self) -> anthropic.Anthropic:
        if self._client_instance is None:
            api_key = self.settings.require_api_key()
            self._client_instance = anthropic.Anthropic(
                api_key=api_key,
                timeout=httpx.Timeout(self.settings.timeout_seconds, connect=10.0),
                max_retries=0,
            )
        return self._client_instance

    def generate(self, system: str, prompt: str, *, use_search: bool = False, temperature: float = 0.3) -> str:
        kwargs = {}
        if use_search:
            kwargs["tools"] = [{
                "type": WEB_SEARCH_TOOL,
                "name": "web_search",
                "max_uses": self.settings.search_max_uses,
            }]
        return self._create(
            system=system,
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature,
            **kwargs,
        )

    def converse(self, system: str, messages: list[dict], *, temperature: float = 0.7) -> str:
        return self._create(system=system, messages=messages, temperature=temperature)

    def _create(self, **kwargs) -> str:
        client = self._client()
        logger.debug("messages.create model=%s tools=%s", self.settings.model, bool(kwargs.get("tools")))
        try:
            response = client.messages.create(
                model=self.settings.model,
                max_tokens=self.settings.max_tokens,
                **kwargs,
            )
        except anthropic.APIStatusError as e:
            raise GenerationFailed(f"{e.status_code}: {e.message}", status_code=e.status_code) from e
        except anthropic.APIError as e:
            # Connection errors and timeouts carry no status code.
            raise GenerationFailed(str(e)) from e

        text = response_text(response)
        if not text:
            raise EmptyResponse(f"No text in response (stop_reason={getattr(response, 'stop_reason', None)}).")
        return text


def response_text(response) -> str:
    """Join the text blocks of a Messages response. Search tool blocks are skipped."""
    parts = []
    for block in getattr(response, "content", None) or []:
        if getattr(block, "type", None) == "text" and getattr(block, "text", None):
            parts.append(block.text)
    return "".join(parts).strip()


