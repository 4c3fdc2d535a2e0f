"""
Bot administrator list.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional

from errors import PersistenceError

logger = logging.getLogger(__name__)

ADMINS_DOCUMENT = "admins"


class AdminSettings:
    """
    Who may run privileged commands.

    The server owner is always an admin; additional admins are persisted
    in a JSON file (or a Firestore document).
    """

    def __init__(self, path: str = "data/admin_settings.json", owner_id: Optional[str] = None,
                 use_firestore: bool = None):
        """
        Args:
            path: Path to the admin settings JSON file (local storage)
            owner_id: Server owner id
            use_firestore: If True, use Firestore. If None, auto-detect.
        """
        self.path = Path(path)
        self.owner_id = owner_id
        self._admins: List[str] = []

        if use_firestore is None:
            from firebase_client import firestore_enabled
            use_firestore = firestore_enabled()
        self._use_firestore = use_firestore

        if self._use_firestore:
            from firebase_client import get_firestore_client, SETTINGS_COLLECTION
            self._doc = get_firestore_client().collection(SETTINGS_COLLECTION).document(ADMINS_DOCUMENT)
            snapshot = self._doc.get()
            if snapshot.exists:
                self._admins = list(snapshot.to_dict().get("admins", []))
        else:
            self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Could not read admin settings: {e}") from e
        self._admins = list(data.get("admins", []))

    def _save(self) -> None:
        try:
            if self._use_firestore:
                self._doc.set({"admins": self._admins})
            else:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, "w") as f:
                    json.dump({"admins": self._admins}, f, indent=2)
        except Exception as e:
            logger.error(f"Failed to save admin settings: {e}")
            raise PersistenceError(f"Could not save admin settings: {e}") from e

    def is_admin(self, user_id: str) -> bool:
        """Server owner or listed admin."""
        if self.owner_id is not None and user_id == self.owner_id:
            return True
        return user_id in self._admins

    def add_admin(self, user_id: str) -> bool:
        """Returns False if the user already was an admin."""
        if user_id in self._admins:
            return False
        self._admins.append(user_id)
        try:
            self._save()
        except PersistenceError:
            self._admins.remove(user_id)
            raise
        return True

    def remove_admin(self, user_id: str) -> bool:
        """Returns False if the user was not an admin."""
        if user_id not in self._admins:
            return False
        self._admins.remove(user_id)
        try:
            self._save()
        except PersistenceError:
            self._admins.append(user_id)
            raise
        return True

    def list_admins(self) -> List[str]:
        return list(self._admins)
