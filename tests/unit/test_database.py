"""Unit tests for the anifunnel database."""

import pytest

from anifunnel.core.database import AnifunnelDatabase, StoredUser

NOW = 1_700_000_000


@pytest.fixture
def db(tmp_path):
    """Create a test database."""
    return AnifunnelDatabase(tmp_path / "anifunnel.sqlite")


class TestAnifunnelDatabase:
    """Test AnifunnelDatabase class."""

    def test_database_initialization(self, tmp_path):
        """Test database is created and initialized."""
        db_path = tmp_path / "nested" / "anifunnel.sqlite"
        db = AnifunnelDatabase(db_path)

        assert db_path.exists()
        assert db.db_path == db_path

    def test_database_initialization_is_repeatable(self, tmp_path):
        db_path = tmp_path / "anifunnel.sqlite"
        AnifunnelDatabase(db_path).save_authentication("token", 1, "user", NOW + 100)

        db = AnifunnelDatabase(db_path)

        assert db.get_active_user(now=NOW) is not None

    def test_no_active_user(self, db):
        assert db.get_active_user(now=NOW) is None

    def test_save_and_get_user(self, db):
        db.save_authentication("token", 42, "anilist-user", NOW + 3600)

        user = db.get_active_user(now=NOW)

        assert user == StoredUser(
            token="token", user_id=42, username="anilist-user", expiry=NOW + 3600
        )

    def test_expired_user_not_active(self, db):
        db.save_authentication("token", 42, "anilist-user", NOW - 1)

        assert db.get_active_user(now=NOW) is None

    def test_token_expiring_now_not_active(self, db):
        db.save_authentication("token", 42, "anilist-user", NOW)

        assert db.get_active_user(now=NOW) is None

    def test_latest_user_wins(self, db):
        db.save_authentication("old-token", 1, "first", NOW + 3600)
        db.save_authentication("new-token", 2, "second", NOW + 3600)

        user = db.get_active_user(now=NOW)

        assert user.token == "new-token"
        assert user.username == "second"

    def test_resaving_token_replaces_row(self, db):
        db.save_authentication("token", 1, "old-name", NOW + 3600)
        db.save_authentication("other-token", 2, "other", NOW + 3600)
        db.save_authentication("token", 1, "new-name", NOW + 7200)

        user = db.get_active_user(now=NOW)

        assert user.token == "token"
        assert user.username == "new-name"

    def test_remove_expired_tokens(self, db):
        db.save_authentication("expired-1", 1, "user", NOW - 100)
        db.save_authentication("expired-2", 1, "user", NOW)
        db.save_authentication("valid", 1, "user", NOW + 100)

        removed = db.remove_expired_tokens(now=NOW)

        assert removed == 2
        assert db.get_active_user(now=NOW).token == "valid"
        assert db.remove_expired_tokens(now=NOW) == 0

    def test_overrides_share_database(self, db):
        db.overrides.set(1, "Oshi no Ko", 11)

        assert AnifunnelDatabase(db.db_path).overrides.get_by_id(1).title == "Oshi no Ko"
