"""
Audit log endpoints for API v1.

Expose the audit trail to administrators.  Records capture account,
profile, conversation, service request and payment changes and can be
filtered by user, object type, action and date range.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from socialtend_api.app.core.security import require_admin
from socialtend_api.app.schemas.audit import AuditLogRead
from socialtend_api.app.services.audit_service import AuditService

router = APIRouter()


@router.get("/logs", response_model=List[AuditLogRead])
async def list_audit_logs(
    user_id: Optional[int] = Query(None, description="Filter by acting user ID"),
    object_type: Optional[str] = Query(None, description="Filter by object type (user, service_request, payment, etc.)"),
    action: Optional[str] = Query(None, description="Filter by action (create, update, status)"),
    start_date: Optional[str] = Query(
        None, description="ISO date or timestamp; a bare date starts at 00:00 UTC", examples=["2026-10-01"]
    ),
    end_date: Optional[str] = Query(
        None, description="ISO date or timestamp; a bare date includes the whole UTC day", examples=["2026-10-18"]
    ),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of logs to return"),
    offset: int = Query(0, ge=0, description="Number of logs to skip"),
    admin: dict = Depends(require_admin),
) -> List[AuditLogRead]:
    """Retrieve audit logs, newest first."""
    try:
        return await AuditService.list_logs(
            user_id=user_id,
            object_type=object_type,
            action=action,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
            offset=offset,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid date filter: {e}")
