"""
Steam data source clients (SteamSpy and the Steam store).
"""

from .base import SteamApiError
from .steamspy_client import SteamSpyClient
from .store_client import SteamStoreClient

__all__ = ["SteamApiError", "SteamSpyClient", "SteamStoreClient"]
