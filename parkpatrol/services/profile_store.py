"""Local key-value file holding the user's profile fields."""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import ValidationError

from parkpatrol.config import get_settings
from parkpatrol.schemas.profile import ProfileUpdate, UserProfile

logger = logging.getLogger(__name__)
settings = get_settings()


class ProfileStore:
    """
    Synchronous JSON-backed profile storage.

    Reads fall back to the default profile; writes happen only on an explicit
    change or reset.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def load(self) -> UserProfile:
        if not self.path.exists():
            return UserProfile()
        try:
            return UserProfile.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.warning(f"Unreadable profile at {self.path}, using defaults: {e}")
            return UserProfile()

    def save(self, profile: UserProfile) -> bool:
        try:
            self.path.write_text(profile.model_dump_json(indent=2), encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to save profile to {self.path}: {e}")
            return False
        return True

    def update(self, changes: ProfileUpdate) -> UserProfile | None:
        """Apply a partial update; returns None if it could not be saved."""
        profile = self.load().model_copy(update=changes.model_dump(exclude_none=True))
        return profile if self.save(profile) else None

    def reset(self) -> UserProfile:
        """Forget all stored fields (logout)."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to remove profile at {self.path}: {e}")
        logger.info("Profile reset to defaults")
        return UserProfile()


@lru_cache
def get_profile_store() -> ProfileStore:
    """Get the process-wide profile store."""
    return ProfileStore(settings.profile_path)
