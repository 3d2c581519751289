"""Per-user settings keyed by identity-provider subject."""

import logging

from agentbuilders.catalog.frameworks import coerce_enum
from agentbuilders.errors import NotFoundError
from agentbuilders.models.schemas import Theme, UserSettings
from agentbuilders.storage.base import DocumentStore

logger = logging.getLogger(__name__)

TABLE = "user_settings"


class UserSettingsService:
    """One settings record per subject, created on first write and patched after."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def get_user_settings(self, subject_id: str) -> UserSettings | None:
        doc = self.store.first(TABLE, "by_subject", eq={"subject_id": subject_id})
        return UserSettings.model_validate(doc) if doc else None

    def save_user_settings(
        self,
        subject_id: str,
        theme: Theme | str | None = None,
        favorite_framework_ids: list[str] | None = None,
    ) -> UserSettings:
        """Create or update a subject's settings.

        Fields left as None keep their stored value (or the default on creation).

        Raises:
            ValidationError: ``theme`` is not a known theme.
            NotFoundError: A favorite framework id does not exist.
        """
        fields: dict = {}
        if theme is not None:
            fields["theme"] = coerce_enum(Theme, theme, "theme").value
        if favorite_framework_ids is not None:
            for framework_id in favorite_framework_ids:
                if self.store.get("frameworks", framework_id) is None:
                    raise NotFoundError("framework", framework_id)
            fields["favorite_framework_ids"] = list(dict.fromkeys(favorite_framework_ids))

        existing = self.store.first(TABLE, "by_subject", eq={"subject_id": subject_id})
        if existing is not None:
            doc = self.store.patch(TABLE, existing["id"], fields) if fields else existing
        else:
            settings_id = self.store.insert(TABLE, {
                "subject_id": subject_id,
                "theme": Theme.SYSTEM.value,
                "favorite_framework_ids": [],
                **fields,
            })
            doc = self.store.get(TABLE, settings_id)
            logger.debug(f"Created settings {settings_id} for subject {subject_id}")
        return UserSettings.model_validate(doc)

    def add_favorite(self, subject_id: str, framework_id: str) -> UserSettings:
        current = self.get_user_settings(subject_id)
        favorites = list(current.favorite_framework_ids) if current else []
        if framework_id not in favorites:
            favorites.append(framework_id)
        return self.save_user_settings(subject_id, favorite_framework_ids=favorites)

    def remove_favorite(self, subject_id: str, framework_id: str) -> UserSettings:
        current = self.get_user_settings(subject_id)
        favorites = [f for f in (current.favorite_framework_ids if current else []) if f != framework_id]
        return self.save_user_settings(subject_id, favorite_framework_ids=favorites)
