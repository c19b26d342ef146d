from gamefinder.features.suggestions.pipeline.content import (
    ADULT_CONTENT_DESCRIPTORS,
    is_adult_content,
)


def test_adult_descriptors_are_flagged():
    assert is_adult_content([3]) is True
    assert is_adult_content([4]) is True
    assert is_adult_content([1, 2, 4]) is True


def test_other_descriptors_are_not_adult():
    assert is_adult_content([1, 2, 5]) is False


def test_missing_descriptors_are_not_adult():
    assert is_adult_content([]) is False
    assert is_adult_content(None) is False


def test_adult_code_set_can_be_overridden():
    assert ADULT_CONTENT_DESCRIPTORS == frozenset({3, 4})
    assert is_adult_content([5], adult_codes=frozenset({5})) is True
    assert is_adult_content([3], adult_codes=frozenset({5})) is False
