"""
SteamSpy API client.
Provides per-app details (owners, developer, weighted user tags) and tag listings.
"""

from typing import Any

import httpx

from gamefinder.config import settings
from gamefinder.features.suggestions.domain import GameDetails, TaggedGame
from gamefinder.infrastructure.observability.logging import get_logger
from gamefinder.services.steam.base import SteamHttpClient

logger = get_logger(__name__)


def _coerce_tags(raw: Any) -> dict[str, int]:
    # SteamSpy sends [] instead of {} for games without tags
    if not isinstance(raw, dict):
        return {}
    tags: dict[str, int] = {}
    for tag, weight in raw.items():
        try:
            tags[str(tag)] = int(weight)
        except (TypeError, ValueError):
            continue
    return tags


class SteamSpyClient(SteamHttpClient):
    """Client for https://steamspy.com/api.php."""

    source = "steamspy"

    def __init__(
        self,
        base_url: str | None = None,
        min_interval_seconds: float | None = None,
        **kwargs,
    ):
        super().__init__(
            base_url or settings.STEAMSPY_API_URL,
            (
                min_interval_seconds
                if min_interval_seconds is not None
                else settings.STEAMSPY_MIN_INTERVAL_MS / 1000
            ),
            **kwargs,
        )

    async def fetch_app_details(self, app_id: int) -> GameDetails | None:
        """
        Fetch SteamSpy details for one app.

        Returns None when SteamSpy doesn't know the app. Content descriptors
        are not part of SteamSpy data and are left empty.
        """
        response = await self._request_with_retry(
            "GET", self.base_url, params={"request": "appdetails", "appid": app_id}
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        self._raise_for_status(response, "appdetails")

        data = self._parse_json(response, "appdetails")
        if not isinstance(data, dict) or not data.get("appid"):
            return None

        name = data.get("name") or None
        developer = data.get("developer") or ""
        tags = _coerce_tags(data.get("tags"))
        if name is None and not developer and not tags:
            # Unknown apps come back as an all-empty record
            logger.debug("SteamSpy has no data for app", app_id=app_id)
            return None

        return GameDetails(
            app_id=int(data["appid"]),
            name=name,
            developer=developer,
            owners=data.get("owners") or "",
            tags=tags,
        )

    async def fetch_games_by_tag(self, tag: str) -> list[TaggedGame]:
        """List games SteamSpy files under a user tag."""
        response = await self._request_with_retry(
            "GET", self.base_url, params={"request": "tag", "tag": tag}
        )
        self._raise_for_status(response, "tag")

        data = self._parse_json(response, "tag")
        if not isinstance(data, dict):
            return []

        games: list[TaggedGame] = []
        for entry in data.values():
            if not isinstance(entry, dict) or not entry.get("appid"):
                continue
            games.append(
                TaggedGame(
                    app_id=int(entry["appid"]),
                    name=entry.get("name") or None,
                    owners=entry.get("owners") or "",
                )
            )

        logger.debug("SteamSpy tag listing fetched", tag=tag, game_count=len(games))
        return games
