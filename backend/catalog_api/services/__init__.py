"""External metadata provider clients."""

from .anilist_client import AniListClient, AniListMedia
from .tmdb_client import TmdbClient, TmdbDetails

__all__ = ["AniListClient", "AniListMedia", "TmdbClient", "TmdbDetails"]
