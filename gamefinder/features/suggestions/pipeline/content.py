"""
Adult-content classification from Steam content descriptor ids.
"""

from collections.abc import Iterable

# Steam content descriptor ids
STEAM_DESCRIPTOR_SEXUAL_CONTENT = 3  # Adult Only Sexual Content
STEAM_DESCRIPTOR_NUDITY = 4  # Frequent Nudity or Sexual Content

ADULT_CONTENT_DESCRIPTORS = frozenset({STEAM_DESCRIPTOR_SEXUAL_CONTENT, STEAM_DESCRIPTOR_NUDITY})


def is_adult_content(
    descriptor_codes: Iterable[int] | None,
    adult_codes: frozenset[int] = ADULT_CONTENT_DESCRIPTORS,
) -> bool:
    if not descriptor_codes:
        return False
    return not adult_codes.isdisjoint(descriptor_codes)
