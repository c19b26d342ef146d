from types import SimpleNamespace
from unittest.mock import AsyncMock

import openai
import pytest

from gamefinder.config import settings
from gamefinder.features.suggestions.domain import Candidate, CandidateSource, GameDetails
from gamefinder.features.suggestions.pipeline.explanations import (
    OpenAIExplainer,
    TemplateExplainer,
    build_explainer,
)

SOURCE = GameDetails(1, "Hollow Knight", "Team Cherry, Other", "0 .. 20,000")


def _candidate(source=CandidateSource.TAG_SEARCH):
    return Candidate(
        app_id=2,
        name="Silksong",
        score=0.9,
        shared_tags=[],
        source=source,
        owners="0 .. 20,000",
        is_indie=True,
    )


def _fake_openai(content=None, error=None):
    create = AsyncMock()
    if error is not None:
        create.side_effect = error
    else:
        create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
        )
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


@pytest.mark.asyncio
async def test_template_tag_search_reason():
    reason = await TemplateExplainer().explain(
        SOURCE, _candidate(), ["Metroidvania", "Souls-like", "Indie", "2D"]
    )

    assert reason == "Shares Metroidvania, Souls-like and Indie with Hollow Knight."


@pytest.mark.asyncio
async def test_template_same_developer_reason():
    explainer = TemplateExplainer()
    candidate = _candidate(CandidateSource.SAME_DEVELOPER)

    assert await explainer.explain(SOURCE, candidate, ["Metroidvania"]) == (
        "Also made by Team Cherry, with the same Metroidvania feel."
    )
    assert await explainer.explain(SOURCE, candidate, []) == "Also made by Team Cherry."


@pytest.mark.asyncio
async def test_template_without_shared_tags():
    assert await TemplateExplainer().explain(SOURCE, _candidate(), []) == (
        "Similar tag profile to Hollow Knight."
    )


@pytest.mark.asyncio
async def test_openai_reason_is_used():
    client = _fake_openai("  A tense, hand-drawn descent you'll love.  ")
    explainer = OpenAIExplainer(client=client, model="test-model")

    reason = await explainer.explain(SOURCE, _candidate(), ["Metroidvania"])

    assert reason == "A tense, hand-drawn descent you'll love."
    kwargs = client.chat.completions.create.await_args.kwargs
    assert kwargs["model"] == "test-model"
    assert "Shared tags: Metroidvania" in kwargs["messages"][1]["content"]


@pytest.mark.asyncio
async def test_openai_failure_falls_back_to_template():
    explainer = OpenAIExplainer(client=_fake_openai(error=openai.OpenAIError("rate limited")), model="m")

    reason = await explainer.explain(SOURCE, _candidate(), ["Metroidvania"])

    assert reason == "Shares Metroidvania with Hollow Knight."


@pytest.mark.asyncio
async def test_openai_empty_reply_falls_back_to_template():
    explainer = OpenAIExplainer(client=_fake_openai(""), model="m")

    assert await explainer.explain(SOURCE, _candidate(), []) == "Similar tag profile to Hollow Knight."


def test_build_explainer_defaults_to_template(monkeypatch):
    monkeypatch.setattr(settings, "SUGGESTION_AI_EXPLANATIONS_ENABLED", True)
    monkeypatch.setattr(settings, "OPENAI_API_KEY", None)

    assert isinstance(build_explainer(), TemplateExplainer)


def test_build_explainer_uses_openai_when_configured(monkeypatch):
    monkeypatch.setattr(settings, "SUGGESTION_AI_EXPLANATIONS_ENABLED", True)
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "sk-test")

    assert isinstance(build_explainer(), OpenAIExplainer)
