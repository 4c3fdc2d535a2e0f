"""Unit tests for profiles and admin settings."""

import pytest

from errors import PersistenceError
from profiles import AdminSettings, ProfileStore


class TestProfileStore:
    def test_default_profile(self, profiles):
        p = profiles.get_profile("alice")
        assert (p.gold, p.wins, p.losses) == (0, 0, 0)
        assert p.board_theme == "default"
        assert profiles.has_profile("alice")

    def test_counters_increment(self, profiles):
        profiles.record_win("alice")
        profiles.record_win("alice")
        profiles.record_loss("alice")
        p = profiles.get_profile("alice")
        assert (p.wins, p.losses) == (2, 1)

    def test_add_gold_returns_balance(self, profiles):
        assert profiles.add_gold("alice", 30) == 30
        assert profiles.add_gold("alice", 10) == 40

    def test_update_profile(self, profiles):
        profiles.update_profile("alice", board_theme="wood")
        assert profiles.get_profile("alice").board_theme == "wood"

    def test_update_unknown_field(self, profiles):
        with pytest.raises(ValueError):
            profiles.update_profile("alice", rating=3000)

    def test_persisted(self, profiles, settings):
        profiles.add_gold("alice", 25)
        reloaded = ProfileStore(path=str(settings.profiles_path), use_firestore=False)
        assert reloaded.get_profile("alice").gold == 25

    def test_leaderboard(self, profiles):
        profiles.add_gold("alice", 10)
        profiles.add_gold("bob", 50)
        profiles.get_profile("carol")
        assert [p.player_id for p in profiles.leaderboard()] == ["bob", "alice"]
        assert [p.player_id for p in profiles.leaderboard(limit=1)] == ["bob"]

    def test_failed_save_rolls_back(self, profiles, monkeypatch):
        profiles.add_gold("alice", 10)

        def broken_save(*player_ids):
            raise PersistenceError("disk full")

        monkeypatch.setattr(profiles, "_save", broken_save)
        with pytest.raises(PersistenceError):
            profiles.add_gold("alice", 5)
        monkeypatch.undo()
        assert profiles.get_profile("alice").gold == 10


class TestAdminSettings:
    def test_owner_is_always_admin(self, admins):
        assert admins.is_admin("owner")
        assert not admins.is_admin("alice")

    def test_add_and_remove(self, admins):
        assert admins.add_admin("alice")
        assert not admins.add_admin("alice")
        assert admins.is_admin("alice")
        assert admins.list_admins() == ["alice"]
        assert admins.remove_admin("alice")
        assert not admins.remove_admin("alice")
        assert not admins.is_admin("alice")

    def test_persisted(self, admins, settings):
        admins.add_admin("alice")
        reloaded = AdminSettings(path=str(settings.admins_path), owner_id="owner", use_firestore=False)
        assert reloaded.is_admin("alice")
