"""
Player profile storage and persistence.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from errors import PersistenceError

logger = logging.getLogger(__name__)


class Profile(BaseModel):
    """A player's economy and cosmetic state."""
    player_id: str
    gold: int = 0
    wins: int = 0
    losses: int = 0
    board_theme: str = "default"
    piece_theme: str = "unicode"
    owned_board_themes: List[str] = Field(default_factory=lambda: ["default"])
    owned_piece_themes: List[str] = Field(default_factory=lambda: ["unicode"])
    last_daily_claim: Optional[str] = None

    def to_dict(self) -> dict:
        return self.model_dump()

    @classmethod
    def from_dict(cls, data: dict) -> "Profile":
        return cls(**data)


class ProfileStore:
    """
    Stores player profiles.

    Supports both local JSON file and Firestore backends. Profiles are
    created with defaults the first time they are looked up.
    """

    def __init__(self, path: str = "data/profiles.json", use_firestore: bool = None):
        """
        Initialize the profile store.

        Args:
            path: Path to the profiles JSON file (used for local storage)
            use_firestore: If True, use Firestore. If None, auto-detect.
        """
        self.path = Path(path)
        self._profiles: Dict[str, Profile] = {}

        if use_firestore is None:
            from firebase_client import firestore_enabled
            use_firestore = firestore_enabled()
        self._use_firestore = use_firestore

        if self._use_firestore:
            self._init_firestore()
        else:
            self._load()

    def _init_firestore(self) -> None:
        """Initialize Firestore connection and load profiles."""
        from firebase_client import get_firestore_client, PROFILES_COLLECTION
        self._db = get_firestore_client()
        self._collection = PROFILES_COLLECTION
        try:
            for doc in self._db.collection(self._collection).stream(timeout=10):
                data = doc.to_dict()
                self._profiles[doc.id] = Profile.from_dict(data)
        except Exception as e:
            raise PersistenceError(f"Could not load profiles from Firestore: {e}") from e
        logger.info(f"Loaded {len(self._profiles)} profiles from Firestore")

    def _load(self) -> None:
        """Load profiles from local file."""
        if not self.path.exists():
            return
        try:
            with open(self.path) as f:
                content = f.read()
            data = json.loads(content) if content.strip() else {}
            for player_id, profile_data in data.items():
                profile_data.setdefault("player_id", player_id)
                self._profiles[player_id] = Profile.from_dict(profile_data)
        except (OSError, json.JSONDecodeError, PydanticValidationError) as e:
            logger.error(f"Could not read profiles from {self.path}: {e}")
            raise PersistenceError(f"Could not read profiles: {e}") from e

    def _save(self, *player_ids: str) -> None:
        """Persist the given profiles (one Firestore batch) or the whole file (local)."""
        try:
            if self._use_firestore:
                batch = self._db.batch()
                for player_id in player_ids:
                    doc = self._db.collection(self._collection).document(player_id)
                    batch.set(doc, self._profiles[player_id].to_dict())
                batch.commit()
            else:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                data = {pid: p.to_dict() for pid, p in self._profiles.items()}
                with open(self.path, "w") as f:
                    json.dump(data, f, indent=2)
        except Exception as e:
            logger.error(f"Failed to save profiles {', '.join(player_ids)}: {e}")
            raise PersistenceError(f"Could not save profile: {e}") from e

    def _commit(self, *profiles: Profile) -> None:
        """Store changed profiles together, restoring all of them if saving fails."""
        previous = {p.player_id: self._profiles.get(p.player_id) for p in profiles}
        for profile in profiles:
            self._profiles[profile.player_id] = profile
        try:
            self._save(*previous)
        except PersistenceError:
            for player_id, old in previous.items():
                if old is None:
                    self._profiles.pop(player_id, None)
                else:
                    self._profiles[player_id] = old
            raise

    def get_profile(self, player_id: str) -> Profile:
        """
        Get a player's profile, creating a default one if needed.

        Returns:
            A copy of the stored profile
        """
        if player_id not in self._profiles:
            self._commit(Profile(player_id=player_id))
        return self._profiles[player_id].model_copy(deep=True)

    def has_profile(self, player_id: str) -> bool:
        return player_id in self._profiles

    def update_profile(self, player_id: str, **updates: Any) -> Profile:
        """
        Apply a partial update.

        Args:
            player_id: The player
            **updates: Profile fields to overwrite

        Returns:
            The updated profile
        """
        current = self.get_profile(player_id).to_dict()
        unknown = set(updates) - set(current)
        if unknown:
            raise ValueError(f"Unknown profile fields: {sorted(unknown)}")
        current.update(updates)
        updated = Profile.from_dict(current)
        self._commit(updated)
        return updated.model_copy(deep=True)

    def add_gold(self, player_id: str, amount: int) -> int:
        """Add (or with a negative amount, remove) gold. Returns the new balance."""
        profile = self.get_profile(player_id)
        profile.gold += amount
        self._commit(profile)
        return profile.gold

    def record_win(self, player_id: str) -> None:
        profile = self.get_profile(player_id)
        profile.wins += 1
        self._commit(profile)

    def record_loss(self, player_id: str) -> None:
        profile = self.get_profile(player_id)
        profile.losses += 1
        self._commit(profile)

    def apply_changes(
        self,
        gold: Dict[str, int],
        wins: Iterable[str] = (),
        losses: Iterable[str] = (),
    ) -> None:
        """
        Apply gold and win/loss changes for several players in one save.

        Either every change is stored or, if saving fails, none is.

        Args:
            gold: Gold delta per player
            wins: Players to credit with a win
            losses: Players to charge with a loss

        Raises:
            PersistenceError: The save failed; the store is unchanged
        """
        changed: Dict[str, Profile] = {}

        def staged(player_id: str) -> Profile:
            if player_id not in changed:
                current = self._profiles.get(player_id)
                changed[player_id] = (
                    current.model_copy(deep=True) if current else Profile(player_id=player_id)
                )
            return changed[player_id]

        for player_id, amount in gold.items():
            staged(player_id).gold += amount
        for player_id in wins:
            staged(player_id).wins += 1
        for player_id in losses:
            staged(player_id).losses += 1
        if changed:
            self._commit(*changed.values())

    def get_all(self) -> Dict[str, Profile]:
        """Get all profiles."""
        return {pid: p.model_copy(deep=True) for pid, p in self._profiles.items()}

    def leaderboard(self, limit: int = 10) -> List[Profile]:
        """
        Richest players first.

        Args:
            limit: Maximum number of entries

        Returns:
            Profiles with gold, sorted by gold (descending)
        """
        ranked = sorted(
            (p for p in self._profiles.values() if p.gold > 0),
            key=lambda p: p.gold,
            reverse=True,
        )
        return [p.model_copy(deep=True) for p in ranked[:limit]]
