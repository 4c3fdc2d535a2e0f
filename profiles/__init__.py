# Player profiles and admin settings
from .profile_store import Profile, ProfileStore
from .admin_settings import AdminSettings

__all__ = ["Profile", "ProfileStore", "AdminSettings"]
