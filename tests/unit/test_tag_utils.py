from gamefinder.features.suggestions.pipeline.tags import (
    has_indie_tag,
    is_niche,
    parse_owner_count,
    tags_from_ranked_list,
    top_tags,
)


def test_top_tags_orders_by_weight():
    tags = {"Indie": 40, "Metroidvania": 50, "Horror": 10}

    assert top_tags(tags, 2) == ["Metroidvania", "Indie"]
    assert top_tags(tags, 10) == ["Metroidvania", "Indie", "Horror"]


def test_top_tags_empty_inputs():
    assert top_tags({}, 3) == []
    assert top_tags({"Indie": 5}, 0) == []


def test_top_tags_ties_keep_insertion_order():
    assert top_tags({"B": 10, "A": 10, "C": 5}, 2) == ["B", "A"]


def test_parse_owner_count_uses_lower_bound():
    assert parse_owner_count("20,000 .. 50,000") == 20_000
    assert parse_owner_count("1,000,000 .. 2,000,000") == 1_000_000
    assert parse_owner_count("0 .. 20,000") == 0


def test_parse_owner_count_unparseable():
    assert parse_owner_count(None) == 0
    assert parse_owner_count("") == 0
    assert parse_owner_count("unknown") == 0


def test_is_niche_threshold_is_exclusive():
    assert is_niche("499,999 .. 1,000,000") is True
    assert is_niche("500,000 .. 1,000,000") is False
    assert is_niche("200,000 .. 500,000", threshold=100_000) is False


def test_has_indie_tag_is_case_insensitive_and_limited_to_top_tags():
    assert has_indie_tag({"indie": 5, "Action": 10}) is True

    crowded = {f"Tag {i}": 100 - i for i in range(20)}
    crowded["Indie"] = 1
    assert has_indie_tag(crowded) is False


def test_tags_from_ranked_list_decays_and_dedupes():
    weights = tags_from_ranked_list(["Roguelike", "Indie", "Roguelike", "Pixel Graphics"])

    assert weights == {"Roguelike": 1000, "Indie": 950, "Pixel Graphics": 850}


def test_tags_from_ranked_list_has_weight_floor():
    weights = tags_from_ranked_list([f"Tag {i}" for i in range(25)])

    assert weights["Tag 0"] == 1000
    assert weights["Tag 24"] == 100
