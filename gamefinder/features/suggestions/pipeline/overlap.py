"""
Tag overlap scoring and vibe-conflict detection.

The overlap score is a weighted Jaccard index over normalized tag weights:
each game's weights are scaled to sum to 1, then

    score = sum(min(a[t], b[t])) / sum(max(a[t], b[t]))

over the union of (case-folded) tags. Normalizing first keeps a niche game
with a few hundred tag votes comparable to a hit with tens of thousands.
The result is symmetric, lies in [0, 1] and grows with shared weight.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

MIN_OVERLAP_SCORE = 0.25


@dataclass(slots=True, frozen=True)
class OverlapResult:
    score: float
    shared: list[str]


@dataclass(slots=True, frozen=True)
class VibeConflict:
    """Two tag groups that should not be matched against each other."""

    left: frozenset[str]
    right: frozenset[str]

    @classmethod
    def of(cls, left: Iterable[str], right: Iterable[str]) -> VibeConflict:
        return cls(
            left=frozenset(tag.lower() for tag in left),
            right=frozenset(tag.lower() for tag in right),
        )

    def matches(self, source: set[str], target: set[str]) -> bool:
        if source & self.left and target & self.right:
            return True
        return bool(source & self.right and target & self.left)


DEFAULT_VIBE_CONFLICTS: tuple[VibeConflict, ...] = (
    VibeConflict.of(
        ["horror", "psychological horror", "gore", "dark"],
        ["wholesome", "family friendly", "cute", "relaxing"],
    ),
    VibeConflict.of(
        ["sexual content", "adult only", "nudity"],
        ["family friendly", "wholesome", "cute"],
    ),
)


def _normalize(tags: Mapping[str, int]) -> tuple[dict[str, float], dict[str, str]]:
    weights: dict[str, float] = {}
    display: dict[str, str] = {}
    for tag, weight in tags.items():
        if not tag or weight is None or weight <= 0:
            continue
        key = tag.lower()
        weights[key] = weights.get(key, 0.0) + float(weight)
        display.setdefault(key, tag)

    total = sum(weights.values())
    if total <= 0:
        return {}, {}
    return {key: value / total for key, value in weights.items()}, display


def overlap(source_tags: Mapping[str, int], target_tags: Mapping[str, int]) -> OverlapResult:
    source, source_names = _normalize(source_tags)
    target, target_names = _normalize(target_tags)
    if not source or not target:
        return OverlapResult(score=0.0, shared=[])

    # Sorted iteration keeps the float sums identical for (a, b) and (b, a)
    union = sorted(source.keys() | target.keys())
    numerator = sum(min(source.get(key, 0.0), target.get(key, 0.0)) for key in union)
    denominator = sum(max(source.get(key, 0.0), target.get(key, 0.0)) for key in union)
    score = numerator / denominator if denominator else 0.0

    common = [key for key in union if key in source and key in target]
    common.sort(key=lambda key: source[key] + target[key], reverse=True)
    shared = [source_names.get(key) or target_names[key] for key in common]

    return OverlapResult(score=score, shared=shared)


def has_vibe_conflict(
    source_top_tags: Iterable[str],
    target_top_tags: Iterable[str],
    conflicts: Iterable[VibeConflict] = DEFAULT_VIBE_CONFLICTS,
) -> bool:
    source = {tag.lower() for tag in source_top_tags}
    target = {tag.lower() for tag in target_top_tags}
    return any(conflict.matches(source, target) for conflict in conflicts)
