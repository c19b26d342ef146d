"""
Reason strings stored alongside each suggestion.

TemplateExplainer builds them from shared tags and the shared developer.
OpenAIExplainer asks a chat model to phrase the same facts as one sentence
and falls back to the template text whenever the API call fails.
"""

from collections.abc import Sequence
from typing import Protocol

import openai
from openai import AsyncOpenAI

from gamefinder.config import settings
from gamefinder.features.suggestions.domain import Candidate, CandidateSource, GameDetails
from gamefinder.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

MAX_REASON_TAGS = 3
MAX_REASON_LENGTH = 280


def _join_tags(tags: Sequence[str]) -> str:
    if len(tags) == 1:
        return tags[0]
    return f"{', '.join(tags[:-1])} and {tags[-1]}"


class ExplanationGenerator(Protocol):
    async def explain(
        self, source: GameDetails, candidate: Candidate, shared: Sequence[str]
    ) -> str: ...


class TemplateExplainer:
    """Deterministic reasons, no network."""

    async def explain(self, source: GameDetails, candidate: Candidate, shared: Sequence[str]) -> str:
        tags = list(shared[:MAX_REASON_TAGS])
        title = source.name or "this game"

        if candidate.source is CandidateSource.SAME_DEVELOPER:
            developer = source.primary_developer
            base = f"Also made by {developer}" if developer else "From the same developer"
            if tags:
                return f"{base}, with the same {_join_tags(tags)} feel."
            return f"{base}."

        if tags:
            return f"Shares {_join_tags(tags)} with {title}."
        return f"Similar tag profile to {title}."


class OpenAIExplainer:
    """One-sentence reasons written by an OpenAI chat model."""

    SYSTEM_PROMPT = (
        "You write one short sentence (max 25 words) telling a player why they might "
        "enjoy a recommended indie game, based only on the facts given. "
        "No marketing language, no emojis, no quotes."
    )

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        model: str | None = None,
        fallback: ExplanationGenerator | None = None,
    ):
        self.client = client or AsyncOpenAI(api_key=settings.OPENAI_API_KEY, timeout=15)
        self.model = model or settings.OPENAI_MODEL
        self.fallback = fallback or TemplateExplainer()

    def _build_prompt(self, source: GameDetails, candidate: Candidate, shared: Sequence[str]) -> str:
        lines = [
            f"Source game: {source.name or source.app_id}",
            f"Recommended game: {candidate.name}",
            f"Shared tags: {', '.join(shared[:5]) or 'none'}",
        ]
        if candidate.source is CandidateSource.SAME_DEVELOPER and source.primary_developer:
            lines.append(f"Same developer: {source.primary_developer}")
        return "\n".join(lines)

    async def explain(self, source: GameDetails, candidate: Candidate, shared: Sequence[str]) -> str:
        fallback_text = await self.fallback.explain(source, candidate, shared)
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": self.SYSTEM_PROMPT},
                    {"role": "user", "content": self._build_prompt(source, candidate, shared)},
                ],
                max_tokens=60,
                temperature=0.4,
            )
        except openai.OpenAIError as e:
            logger.warning(
                "OpenAI explanation failed, using template",
                app_id=candidate.app_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return fallback_text

        text = (response.choices[0].message.content or "").strip() if response.choices else ""
        return text[:MAX_REASON_LENGTH] or fallback_text


def build_explainer() -> ExplanationGenerator:
    if settings.ai_explanations_enabled():
        logger.info("Using OpenAI suggestion explanations", model=settings.OPENAI_MODEL)
        return OpenAIExplainer()
    return TemplateExplainer()
