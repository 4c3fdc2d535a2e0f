"""
Tournament storage and persistence.
"""

import json
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from errors import PersistenceError, TournamentNotFoundError
from .models import Tournament

logger = logging.getLogger(__name__)


class TournamentStore:
    """
    Durable registry of tournaments keyed by id.

    Supports both local JSON file and Firestore backends. Saves are
    last-writer-wins; there is no optimistic concurrency check.
    """

    def __init__(self, path: str = "data/tournaments.json", use_firestore: bool = None):
        """
        Initialize the tournament store.

        Args:
            path: Path to the tournaments JSON file (used for local storage)
            use_firestore: If True, use Firestore. If None, auto-detect.
        """
        self.path = Path(path)
        self._tournaments: Dict[str, Tournament] = {}

        if use_firestore is None:
            from firebase_client import firestore_enabled
            use_firestore = firestore_enabled()
        self._use_firestore = use_firestore

        if self._use_firestore:
            self._init_firestore()
        else:
            self._load()

    def _init_firestore(self) -> None:
        """Initialize Firestore connection and load tournaments."""
        from firebase_client import get_firestore_client, TOURNAMENTS_COLLECTION
        self._db = get_firestore_client()
        self._collection = TOURNAMENTS_COLLECTION
        try:
            for doc in self._db.collection(self._collection).stream(timeout=10):
                self._tournaments[doc.id] = Tournament.model_validate(doc.to_dict())
        except Exception as e:
            raise PersistenceError(f"Could not load tournaments from Firestore: {e}") from e
        logger.info(f"Loaded {len(self._tournaments)} tournaments from Firestore")

    def _load(self) -> None:
        """Load tournaments from local file. A missing file means no tournaments."""
        if not self.path.exists():
            return
        try:
            with open(self.path) as f:
                content = f.read()
            data = json.loads(content) if content.strip() else {}
            for tournament_id, tournament_data in data.items():
                self._tournaments[tournament_id] = Tournament.model_validate(tournament_data)
        except (OSError, json.JSONDecodeError, PydanticValidationError) as e:
            # Refuse to start from an empty registry and overwrite the file later
            logger.error(f"Could not read tournaments from {self.path}: {e}")
            raise PersistenceError(f"Could not read tournaments: {e}") from e
        logger.info(f"Loaded {len(self._tournaments)} tournaments from {self.path}")

    def _save(self, tournament_id: str) -> None:
        """Save one tournament (Firestore) or the whole registry (local)."""
        try:
            if self._use_firestore:
                self._db.collection(self._collection).document(tournament_id).set(
                    self._tournaments[tournament_id].model_dump(mode="json")
                )
            else:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                data = {
                    tid: t.model_dump(mode="json")
                    for tid, t in self._tournaments.items()
                }
                tmp_path = self.path.with_suffix(".tmp")
                with open(tmp_path, "w") as f:
                    json.dump(data, f, indent=2)
                tmp_path.replace(self.path)
        except Exception as e:
            logger.error(f"Failed to save tournament {tournament_id}: {e}")
            raise PersistenceError(f"Could not save tournament {tournament_id}: {e}") from e

    def get(self, tournament_id: str) -> Tournament:
        """
        Get a copy of a tournament.

        Mutate the copy and hand it back to put(); the stored object only
        changes once the save succeeded.

        Raises:
            TournamentNotFoundError: Unknown id
        """
        tournament = self._tournaments.get(tournament_id)
        if tournament is None:
            raise TournamentNotFoundError("Tournament not found!")
        return tournament.model_copy(deep=True)

    def has(self, tournament_id: str) -> bool:
        return tournament_id in self._tournaments

    def put(self, tournament: Tournament) -> None:
        """
        Insert or replace a tournament and persist it.

        If saving fails the previous version is restored and
        PersistenceError is raised.
        """
        tournament_id = tournament.tournament_id
        previous = self._tournaments.get(tournament_id)
        self._tournaments[tournament_id] = tournament.model_copy(deep=True)
        try:
            self._save(tournament_id)
        except PersistenceError:
            if previous is None:
                del self._tournaments[tournament_id]
            else:
                self._tournaments[tournament_id] = previous
            raise

    def find(self, predicate: Callable[[Tournament], bool]) -> Optional[Tournament]:
        """First tournament (oldest id first) matching a predicate, as a copy."""
        for tournament in self.all():
            if predicate(tournament):
                return tournament
        return None

    def all(self) -> List[Tournament]:
        """Copies of all tournaments, oldest id first."""
        return [
            self._tournaments[tid].model_copy(deep=True)
            for tid in sorted(self._tournaments, key=_id_sort_key)
        ]

    def __len__(self) -> int:
        return len(self._tournaments)


def _id_sort_key(tournament_id: str):
    # Ids are millisecond timestamps; fall back to text order otherwise
    return (0, int(tournament_id), "") if tournament_id.isdigit() else (1, 0, tournament_id)
