"""
generator.py

Responsibility: Request a generated artifact and report it as `Success` or `Failure`.

Provider-side fallback is expressed only through the order of `llm_providers`;
this module neither retries nor switches models on its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Union

from chronicles.notdiamond_client import NotDiamondClient, ProviderError

logger = logging.getLogger(__name__)

DEFAULT_PROMPT = """Create a simple, unique Go project with:
- A meaningful package structure.
- One interesting feature (e.g., API server, CLI tool, or data processing).
- A README with a brief description."""


@dataclass(frozen=True)
class ProviderPreference:
    provider: str
    model: str

    def as_payload(self) -> dict[str, str]:
        return {"provider": self.provider, "model": self.model}


DEFAULT_PROVIDERS: tuple[ProviderPreference, ...] = (
    ProviderPreference(provider="openai", model="gpt-4-turbo"),
    ProviderPreference(provider="anthropic", model="claude-3"),
)


@dataclass(frozen=True)
class GenerationRequest:
    """Prompt plus provider/model pairs in fallback priority order."""

    prompt: str = DEFAULT_PROMPT
    llm_providers: tuple[ProviderPreference, ...] = DEFAULT_PROVIDERS

    @classmethod
    def default(cls) -> GenerationRequest:
        return cls()


@dataclass(frozen=True)
class Success:
    text: str


@dataclass(frozen=True)
class Failure:
    reason: str


GenerationResult = Union[Success, Failure]


def _extract_text(payload: dict[str, Any]) -> str | None:
    for key in ("function_output", "content"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value

    choices = payload.get("choices")
    if isinstance(choices, list) and choices:
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if isinstance(message, dict) and isinstance(message.get("content"), str) and message["content"]:
            return message["content"]
    return None


class ArtifactGenerator:
    def __init__(self, client: NotDiamondClient) -> None:
        self._client = client

    def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Send `request` to the provider and return the raw generated text.

        Blocks for the duration of the HTTP call. Provider errors (rate limits,
        bad keys, unreachable service) come back as `Failure`, never as exceptions.
        """
        logger.info(
            "Requesting generation (preferences: %s)",
            ", ".join(f"{p.provider}/{p.model}" for p in request.llm_providers),
        )
        try:
            payload = self._client.create(
                messages=[{"content": request.prompt, "role": "user"}],
                llm_providers=[p.as_payload() for p in request.llm_providers],
            )
        except ProviderError as e:
            logger.error("Generation request failed: %s", e)
            return Failure(str(e))

        if "detail" in payload:
            reason = str(payload["detail"])
            logger.error("Provider reported an error: %s", reason)
            return Failure(reason)

        text = _extract_text(payload)
        if text is None:
            return Failure("provider returned no generated text")

        logger.info("Generation succeeded (%d characters)", len(text))
        return Success(text)
