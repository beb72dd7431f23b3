"""
App permission endpoints (authentication required):
  GET /security/permissions — catalog with the caller's grant status
  PUT /security/permissions — grant or revoke one permission
"""
import logging

from fastapi import APIRouter, Depends, HTTPException
from opentelemetry import trace
from sqlalchemy.ext.asyncio import AsyncSession

from clipfeed.auth import AuthUser, require_user
from clipfeed.database import get_db
from clipfeed.permissions import (
    AppPermission,
    PermissionPreferenceRepository,
    find_permission,
)
from clipfeed.schemas import (
    PermissionStatus,
    PermissionsResponse,
    PermissionUpdate,
    PermissionUpdateResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


def _status(permission: AppPermission, granted: bool) -> PermissionStatus:
    return PermissionStatus(
        id=permission.id,
        name=permission.name,
        description=permission.description,
        required=permission.required,
        granted=granted,
    )


@router.get("/permissions", response_model=PermissionsResponse)
async def get_permissions(
    auth_user: AuthUser = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    repo = PermissionPreferenceRepository(db)
    permissions = await repo.effective(auth_user.user_id)
    return PermissionsResponse(
        permissions=[_status(p, granted) for p, granted in permissions]
    )


@router.put("/permissions", response_model=PermissionUpdateResponse)
async def update_permission(
    body: PermissionUpdate,
    auth_user: AuthUser = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    with tracer.start_as_current_span("update_permission"):
        permission = find_permission(body.permission_id)
        if permission is None:
            raise HTTPException(status_code=404, detail="Permission not found")
        if permission.required and not body.granted:
            raise HTTPException(
                status_code=400, detail="Required permission cannot be revoked"
            )

        await PermissionPreferenceRepository(db).set_preference(
            auth_user.user_id, permission.id, body.granted
        )
        logger.info(
            "User %s set permission %s granted=%s",
            auth_user.user_id, permission.id, body.granted,
        )
        return PermissionUpdateResponse(
            message="Permission updated successfully",
            permission=_status(permission, body.granted),
        )
