"""
Steam store client.
Reads content descriptors from the appdetails API and scrapes the store
search and app pages for developer catalogues and user tags.
"""

import html
import re

import httpx

from gamefinder.config import settings
from gamefinder.infrastructure.observability.logging import get_logger
from gamefinder.services.steam.base import SteamHttpClient

logger = get_logger(__name__)

_SEARCH_APPID = re.compile(r'data-ds-appid="(\d+)')
_APP_TAG = re.compile(r'class="app_tag"[^>]*>([\s\S]*?)</a>')
MAX_STORE_TAGS = 20

# Skip the age gate so mature games still render their tags
AGE_GATE_COOKIE = "birthtime=0; wants_mature_content=1; lastagecheckage=1-0-1990"


class SteamStoreClient(SteamHttpClient):
    """Client for store.steampowered.com."""

    source = "steam_store"

    def __init__(
        self,
        base_url: str | None = None,
        min_interval_seconds: float | None = None,
        **kwargs,
    ):
        super().__init__(
            base_url or settings.STEAM_STORE_URL,
            (
                min_interval_seconds
                if min_interval_seconds is not None
                else settings.STEAM_STORE_MIN_INTERVAL_MS / 1000
            ),
            **kwargs,
        )

    async def fetch_content_descriptors(self, app_id: int) -> list[int]:
        """Content descriptor ids for an app, [] when the store has none."""
        response = await self._request_with_retry(
            "GET", f"{self.base_url}/api/appdetails", params={"appids": app_id}
        )
        self._raise_for_status(response, "appdetails")

        data = self._parse_json(response, "appdetails") or {}
        entry = data.get(str(app_id)) or {}
        if not entry.get("success"):
            return []

        descriptors = (entry.get("data") or {}).get("content_descriptors") or {}
        return [int(code) for code in descriptors.get("ids") or []]

    async def search_app_ids_by_developer(self, developer: str) -> list[int]:
        """App ids listed on the store search page for a developer, in page order."""
        response = await self._request_with_retry(
            "GET", f"{self.base_url}/search/", params={"developer": developer}
        )
        self._raise_for_status(response, "developer search")

        seen: set[int] = set()
        app_ids: list[int] = []
        for match in _SEARCH_APPID.finditer(response.text):
            app_id = int(match.group(1))
            if app_id > 0 and app_id not in seen:
                seen.add(app_id)
                app_ids.append(app_id)

        logger.debug("Developer search parsed", developer=developer, app_count=len(app_ids))
        return app_ids

    async def fetch_store_tags(self, app_id: int) -> list[str]:
        """User tags from the store page, most popular first."""
        response = await self._request_with_retry(
            "GET",
            f"{self.base_url}/app/{app_id}/",
            headers={"Accept-Language": "en-US,en;q=0.9", "Cookie": AGE_GATE_COOKIE},
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            return []
        self._raise_for_status(response, "app page")

        tags: list[str] = []
        for match in _APP_TAG.finditer(response.text):
            tag = html.unescape(match.group(1)).strip()
            if tag and tag not in tags:
                tags.append(tag)
        return tags[:MAX_STORE_TAGS]
