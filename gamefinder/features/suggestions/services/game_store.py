"""
Game store used by the suggestion pipeline.

`GameStore` is the read-only contract the pipeline depends on;
`SteamGameStore` fulfils it from SteamSpy (owners, developer, weighted
tags) and the Steam store (content descriptors, developer catalogue,
fallback tags).
"""

from typing import Protocol

from gamefinder.features.suggestions.domain import GameDetails, TaggedGame
from gamefinder.features.suggestions.pipeline.tags import tags_from_ranked_list
from gamefinder.infrastructure.observability.logging import get_logger
from gamefinder.services.steam import SteamSpyClient, SteamStoreClient

logger = get_logger(__name__)


class GameStore(Protocol):
    async def get_game_by_app_id(self, app_id: int) -> GameDetails | None: ...

    async def get_games_by_developer(self, developer: str) -> list[int]: ...

    async def get_games_by_tag(self, tag: str) -> list[TaggedGame]: ...


class SteamGameStore:
    """GameStore backed by the live Steam data sources."""

    def __init__(
        self,
        steamspy: SteamSpyClient | None = None,
        store: SteamStoreClient | None = None,
    ):
        self.steamspy = steamspy or SteamSpyClient()
        self.store = store or SteamStoreClient()

    async def get_game_by_app_id(self, app_id: int) -> GameDetails | None:
        game = await self.steamspy.fetch_app_details(app_id)
        if game is None:
            return None

        if not game.tags:
            # New and early-access games are often missing from SteamSpy's tag data
            store_tags = await self.store.fetch_store_tags(app_id)
            if store_tags:
                game.tags = tags_from_ranked_list(store_tags)
                logger.debug(
                    "Using store page tags", app_id=app_id, tag_count=len(game.tags)
                )

        game.content_descriptors = await self.store.fetch_content_descriptors(app_id)
        return game

    async def get_games_by_developer(self, developer: str) -> list[int]:
        return await self.store.search_app_ids_by_developer(developer)

    async def get_games_by_tag(self, tag: str) -> list[TaggedGame]:
        return await self.steamspy.fetch_games_by_tag(tag)

    async def close(self) -> None:
        await self.steamspy.close()
        await self.store.close()
