"""
App permission catalog and per-user preference storage.

Preferences are rows in ``permission_preferences`` keyed by
(user_id, permission_id); a permission without a row falls back to the
catalog default.
"""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clipfeed.models import PermissionPreference, utcnow


@dataclass(frozen=True)
class AppPermission:
    id: str
    name: str
    description: str
    required: bool
    default_granted: bool


APP_PERMISSIONS = (
    AppPermission(
        "camera", "Camera",
        "Access to your device camera for taking photos and recording videos",
        required=True, default_granted=True,
    ),
    AppPermission(
        "microphone", "Microphone",
        "Access to your device microphone for recording audio",
        required=True, default_granted=True,
    ),
    AppPermission(
        "storage", "Storage",
        "Access to your device storage for saving videos and photos",
        required=True, default_granted=True,
    ),
    AppPermission(
        "location", "Location",
        "Access to your device location for geotagging content",
        required=False, default_granted=True,
    ),
    AppPermission(
        "contacts", "Contacts",
        "Access to your contacts for finding friends",
        required=False, default_granted=False,
    ),
    AppPermission(
        "notifications", "Notifications",
        "Permission to send you notifications",
        required=False, default_granted=True,
    ),
    AppPermission(
        "background_processing", "Background Processing",
        "Allow app to work in the background",
        required=False, default_granted=True,
    ),
)

_BY_ID = {permission.id: permission for permission in APP_PERMISSIONS}


def find_permission(permission_id: str) -> Optional[AppPermission]:
    return _BY_ID.get(permission_id)


class PermissionPreferenceRepository:
    """Reads and upserts a user's permission grants."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_preferences(self, user_id: str) -> dict[str, bool]:
        rows = await self._session.execute(
            select(PermissionPreference.permission_id, PermissionPreference.granted).where(
                PermissionPreference.user_id == user_id
            )
        )
        return {permission_id: granted for permission_id, granted in rows.all()}

    async def effective(self, user_id: str) -> list[tuple[AppPermission, bool]]:
        stored = await self.get_preferences(user_id)
        return [(p, stored.get(p.id, p.default_granted)) for p in APP_PERMISSIONS]

    async def set_preference(self, user_id: str, permission_id: str, granted: bool) -> None:
        pref = await self._session.get(PermissionPreference, (user_id, permission_id))
        if pref is None:
            self._session.add(
                PermissionPreference(
                    user_id=user_id, permission_id=permission_id, granted=granted
                )
            )
        else:
            pref.granted = granted
            pref.updated_at = utcnow()
        await self._session.flush()
