"""
Tag and owner-count helpers used by the candidate generators.
"""

import re
from collections.abc import Mapping, Sequence

NICHE_OWNER_THRESHOLD = 500_000
SEED_TAG_COUNT = 2
VIBE_PROFILE_SIZE = 15

_OWNERS_LOWER_BOUND = re.compile(r"^\s*(\d[\d,]*)")


def top_tags(tag_weights: Mapping[str, int], n: int) -> list[str]:
    """
    Return the n tag names with the highest weight.

    Ties keep the mapping's insertion order (sorted() is stable).
    """
    if n <= 0 or not tag_weights:
        return []
    ranked = sorted(tag_weights.items(), key=lambda item: item[1], reverse=True)
    return [tag for tag, _ in ranked[:n]]


def parse_owner_count(owners_text: str | None) -> int:
    """
    Parse a SteamSpy owners range such as "20,000 .. 50,000" into its lower bound.

    Returns 0 for anything that doesn't start with a number.
    """
    if not owners_text:
        return 0
    match = _OWNERS_LOWER_BOUND.match(owners_text)
    if not match:
        return 0
    return int(match.group(1).replace(",", ""))


def is_niche(owners_text: str | None, threshold: int = NICHE_OWNER_THRESHOLD) -> bool:
    return parse_owner_count(owners_text) < threshold


def has_indie_tag(tag_weights: Mapping[str, int], top_n: int = VIBE_PROFILE_SIZE) -> bool:
    return any(tag.lower() == "indie" for tag in top_tags(tag_weights, top_n))


def tags_from_ranked_list(tags: Sequence[str]) -> dict[str, int]:
    """
    Turn an unweighted, ordered tag list (store page order) into weights.

    First tag gets 1000, each following tag 50 less, never below 100.
    """
    weights: dict[str, int] = {}
    for index, tag in enumerate(tags):
        if tag not in weights:
            weights[tag] = max(1000 - index * 50, 100)
    return weights
