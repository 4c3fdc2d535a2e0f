"""
Firestore access for the tournament, profile and admin stores.

Firestore is used when FIREBASE_ENABLED is set or a firebase-key.json is
found next to the code or in the working directory; otherwise the stores
keep local JSON files.
"""

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import List

import firebase_admin
from firebase_admin import credentials, firestore

from errors import PersistenceError

logger = logging.getLogger(__name__)

KEY_FILE_NAME = "firebase-key.json"

# Collection names
TOURNAMENTS_COLLECTION = "tournaments"
PROFILES_COLLECTION = "profiles"
SETTINGS_COLLECTION = "settings"


def _credential_paths() -> List[Path]:
    return [
        Path(__file__).parent / KEY_FILE_NAME,
        Path.cwd() / KEY_FILE_NAME,
        Path.home() / ".config" / KEY_FILE_NAME,
    ]


def _get_credentials():
    """
    Service account credentials, from FIREBASE_CREDENTIALS_JSON,
    GOOGLE_APPLICATION_CREDENTIALS or a key file.

    Raises:
        PersistenceError: No usable credentials
    """
    creds_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
    if creds_json:
        try:
            return credentials.Certificate(json.loads(creds_json))
        except json.JSONDecodeError as e:
            logger.warning(f"FIREBASE_CREDENTIALS_JSON is not valid JSON, ignoring it: {e}")

    env_path = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
    if env_path and Path(env_path).exists():
        return credentials.Certificate(env_path)

    for path in _credential_paths():
        if path.exists():
            return credentials.Certificate(str(path))

    raise PersistenceError(
        "Firebase credentials not found. Set FIREBASE_CREDENTIALS_JSON, "
        f"GOOGLE_APPLICATION_CREDENTIALS, or place {KEY_FILE_NAME} in the project root."
    )


def firestore_enabled() -> bool:
    """Whether stores built without an explicit backend should use Firestore."""
    flag = os.environ.get("FIREBASE_ENABLED", "").lower()
    if flag in ("1", "true", "yes"):
        return True
    if flag in ("0", "false", "no"):
        return False
    # Only key files that belong to this deployment, not the user-wide one
    return any(path.exists() for path in _credential_paths()[:2])


@lru_cache(maxsize=1)
def get_firestore_client():
    """
    Get a Firestore client instance (singleton).

    Returns:
        Firestore client
    """
    if not firebase_admin._apps:
        firebase_admin.initialize_app(_get_credentials())
        logger.info("Initialized Firebase app")
    return firestore.client()
