import pytest
from conftest import make_game

from gamefinder.features.suggestions.domain import Candidate, CandidateSource
from gamefinder.features.suggestions.pipeline import SuggestionPipeline, SuggestionPipelineError
from gamefinder.features.suggestions.pipeline.service import (
    EMPTY_NO_CANDIDATES,
    EMPTY_NO_SOURCE_SIGNALS,
    EMPTY_NO_VERIFIED,
    EMPTY_SOURCE_NOT_FOUND,
    MAX_SUGGESTIONS,
    filter_adult_content,
    merge_candidates,
    rank_candidates,
)


def _candidate(app_id, score, source=CandidateSource.TAG_SEARCH, is_indie=True, descriptors=None):
    return Candidate(
        app_id=app_id,
        name=f"Game {app_id}",
        score=score,
        shared_tags=[],
        source=source,
        owners="0 .. 20,000",
        is_indie=is_indie,
        content_descriptors=list(descriptors or []),
    )


def test_merge_keeps_highest_score_per_app():
    low = _candidate(42, 0.4, source=CandidateSource.SAME_DEVELOPER)
    high = _candidate(42, 0.7)
    other = _candidate(7, 0.5)

    merged = merge_candidates([low, other], [high])

    assert sorted(c.app_id for c in merged) == [7, 42]
    kept = next(c for c in merged if c.app_id == 42)
    assert kept.score == 0.7
    assert kept.source is CandidateSource.TAG_SEARCH


def test_merge_first_candidate_wins_ties():
    first = _candidate(42, 0.5, source=CandidateSource.SAME_DEVELOPER)
    second = _candidate(42, 0.5)

    assert merge_candidates([first], [second]) == [first]


def test_rank_same_developer_then_indie_then_score():
    candidates = [
        _candidate(1, 0.99, is_indie=False),
        _candidate(2, 0.30),
        _candidate(3, 0.85, source=CandidateSource.SAME_DEVELOPER, is_indie=False),
        _candidate(4, 0.60),
        _candidate(5, 0.90, source=CandidateSource.SAME_DEVELOPER),
    ]

    ranked = rank_candidates(candidates)

    assert [c.app_id for c in ranked] == [5, 3, 4, 2, 1]


def test_rank_truncates_to_limit():
    candidates = [_candidate(i, i / 100) for i in range(1, 30)]

    ranked = rank_candidates(candidates)

    assert len(ranked) == MAX_SUGGESTIONS
    assert ranked[0].app_id == 29
    assert rank_candidates(candidates, limit=0) == []


def test_adult_candidates_removed_for_non_adult_source():
    adult = _candidate(1, 0.9, descriptors=[3])
    clean = _candidate(2, 0.8, descriptors=[1])

    kept = filter_adult_content(False, [adult, clean])

    assert kept == [clean]
    assert adult.is_adult is True
    assert clean.is_adult is False


def test_adult_candidates_kept_for_adult_source():
    adult = _candidate(1, 0.9, descriptors=[4])

    assert filter_adult_content(True, [adult]) == [adult]


ACME_TAGS = {"Metroidvania": 50, "Indie": 40, "Horror": 10}


@pytest.mark.asyncio
async def test_same_developer_game_reaches_final_list(game_store):
    game_store.add(make_game(100, "Acme One", developer="Acme", tags=ACME_TAGS))
    game_store.add(make_game(101, "Acme2", developer="Acme", tags={"Metroidvania": 30, "Indie": 20}))
    game_store.add(make_game(102, "Foo Soundtrack", developer="Acme", tags=ACME_TAGS))

    result = await SuggestionPipeline(game_store).run(100)

    assert [row.suggested_app_id for row in result.suggestions] == [101]
    assert result.empty_reason is None
    candidate = result.candidates[0]
    assert candidate.source is CandidateSource.SAME_DEVELOPER
    assert candidate.score >= 0.85
    row = result.suggestions[0]
    assert row.source_app_id == 100
    assert row.reason.startswith("Also made by Acme")


def _adult_scenario(store, source_descriptors):
    store.add(
        make_game(1, "Source", tags={"Visual Novel": 80, "Romance": 60}, descriptors=source_descriptors),
        listed_under=["Visual Novel"],
    )
    store.add(
        make_game(2, "Spicy", tags={"Visual Novel": 70, "Romance": 50}, descriptors=[3]),
        listed_under=["Visual Novel"],
    )
    store.add(
        make_game(3, "Sweet", tags={"Visual Novel": 60, "Romance": 40}),
        listed_under=["Romance"],
    )


@pytest.mark.asyncio
async def test_adult_tag_search_candidate_hidden_for_non_adult_source(game_store):
    _adult_scenario(game_store, source_descriptors=[])

    result = await SuggestionPipeline(game_store).run(1)

    suggested = [row.suggested_app_id for row in result.suggestions]
    assert 2 not in suggested
    assert suggested == [3]


@pytest.mark.asyncio
async def test_adult_tag_search_candidate_allowed_for_adult_source(game_store):
    _adult_scenario(game_store, source_descriptors=[4])

    result = await SuggestionPipeline(game_store).run(1)

    assert sorted(row.suggested_app_id for row in result.suggestions) == [2, 3]


@pytest.mark.asyncio
async def test_final_list_capped_with_same_developer_first(game_store):
    tags = {"Roguelike": 100, "Deckbuilder": 80, "Indie": 40}
    game_store.add(make_game(1, "Source", developer="Acme", tags=tags))
    for app_id in range(2, 9):
        game_store.add(make_game(app_id, developer="Acme", tags={"Puzzle": 10}))
    for app_id in range(100, 115):
        game_store.add(make_game(app_id, tags=tags), listed_under=["Roguelike"])

    result = await SuggestionPipeline(game_store).run(1)

    assert len(result.suggestions) == MAX_SUGGESTIONS
    sources = [c.source for c in result.candidates]
    assert sources[:5] == [CandidateSource.SAME_DEVELOPER] * 5
    assert set(sources[5:]) == {CandidateSource.TAG_SEARCH}
    suggested = [row.suggested_app_id for row in result.suggestions]
    assert len(suggested) == len(set(suggested))
    assert 1 not in suggested


@pytest.mark.asyncio
async def test_missing_source_is_empty_with_reason(game_store):
    result = await SuggestionPipeline(game_store).run(404)

    assert result.suggestions == []
    assert result.empty_reason == EMPTY_SOURCE_NOT_FOUND


@pytest.mark.asyncio
async def test_source_without_signals_is_empty_with_reason(game_store):
    game_store.add(make_game(1, "Bare"))

    result = await SuggestionPipeline(game_store).run(1)

    assert result.suggestions == []
    assert result.empty_reason == EMPTY_NO_SOURCE_SIGNALS


@pytest.mark.asyncio
async def test_no_candidates_is_empty_with_reason(game_store):
    game_store.add(make_game(1, "Lonely", developer="Solo", tags={"Indie": 10}))

    result = await SuggestionPipeline(game_store).run(1)

    assert result.suggestions == []
    assert result.empty_reason == EMPTY_NO_CANDIDATES


@pytest.mark.asyncio
async def test_all_candidates_filtered_is_empty_with_reason(game_store):
    game_store.add(make_game(1, "Clean", developer="Acme", tags={"Indie": 10}))
    game_store.add(make_game(2, "Adult", developer="Acme", tags={"Indie": 10}, descriptors=[3]))

    result = await SuggestionPipeline(game_store).run(1)

    assert result.suggestions == []
    assert result.empty_reason == EMPTY_NO_VERIFIED


@pytest.mark.asyncio
async def test_source_fetch_error_raises(game_store):
    game_store.failing.add(1)

    with pytest.raises(SuggestionPipelineError) as exc_info:
        await SuggestionPipeline(game_store).run(1)

    assert exc_info.value.source_app_id == 1
