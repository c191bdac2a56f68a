"""anifunnel - Plex scrobbling to AniList."""

__version__ = "1.0.0"
