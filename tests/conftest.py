"""Shared pytest fixtures for anifunnel tests."""

import base64
import json
from unittest.mock import AsyncMock, Mock

import pytest

from anifunnel.config import Config, DatabaseConfig
from anifunnel.models.anilist import MediaList, MediaListGroup


def make_entry(id, title, progress=0, english=None, native=None, media_id=None):
    """Create a watch list entry as AniList would return it."""
    return MediaList.model_validate(
        {
            "id": id,
            "progress": progress,
            "media": {
                "id": media_id if media_id is not None else id + 1000,
                "title": {
                    "romaji": title,
                    "english": english,
                    "native": native,
                    "userPreferred": title,
                },
            },
        }
    )


def make_token(exp):
    """Create an unsigned JWT carrying an ``exp`` claim."""

    def segment(data):
        return base64.urlsafe_b64encode(json.dumps(data).encode()).rstrip(b"=").decode()

    return f"{segment({'typ': 'JWT', 'alg': 'none'})}.{segment({'exp': exp})}.signature"


def make_webhook_payload(
    event="media.scrobble",
    title="Sousou no Frieren",
    season=1,
    episode=2,
    media_type="episode",
    account="plexuser",
):
    """Create a Plex webhook payload dictionary."""
    return {
        "event": event,
        "user": True,
        "owner": True,
        "Account": {"id": 1, "thumb": "https://plex.tv/users/1/avatar", "title": account},
        "Server": {"title": "server", "uuid": "abc"},
        "Metadata": {
            "librarySectionType": "show",
            "type": media_type,
            "title": f"Episode {episode}",
            "grandparentTitle": title,
            "parentIndex": season,
            "index": episode,
        },
    }


@pytest.fixture
def watch_list():
    """Create a small watch list."""
    return MediaListGroup(
        entries=[
            make_entry(1, "Sousou no Frieren", progress=1, english="Frieren: Beyond Journey's End"),
            make_entry(2, "Kanojo, Okarishimasu 3rd Season", progress=4),
            make_entry(3, "Oshi no Ko", progress=10, native="【推しの子】"),
        ]
    )


@pytest.fixture
def anilist_client(watch_list):
    """Create a mocked AniList client returning the watch list."""
    client = Mock()
    client.get_watching_list = AsyncMock(return_value=watch_list)
    client.update_progress = AsyncMock(return_value=True)
    client.get_user = AsyncMock()
    client.close = AsyncMock()
    return client


@pytest.fixture
def config(tmp_path):
    """Create a configuration using a temporary database."""
    return Config(database=DatabaseConfig(path=str(tmp_path / "anifunnel.sqlite")))
