from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from fastapi import HTTPException, Request

from app.security.audit import AuditEventType, AuditLog, RequestMeta
from app.security.context import StoreContext

UNAUTHORIZED_DETAIL = "Store context required"
FORBIDDEN_DETAIL = "Access denied"


class AccessGuard:
    """
    Ownership check applied at every tenant-scoped resource boundary.

    owner None                      -> allow (global resource)
    owner set, no context           -> 401 + unauthorized audit
    owner set, context of other store -> 403 + cross_tenant_attempt audit
    owner set, same store           -> allow
    """

    def __init__(self, request: Request, context: Optional[StoreContext], audit_log: AuditLog):
        self.request = request
        self.context = context
        self.audit_log = audit_log

    @property
    def store_id(self) -> Optional[UUID]:
        return self.context.store_id if self.context else None

    def _meta(self) -> RequestMeta:
        return RequestMeta.from_request(self.request, shop=self.context.shop if self.context else None)

    def require_context(self, resource: str = "store") -> StoreContext:
        if self.context is None:
            self.audit_log.record(
                AuditEventType.unauthorized,
                self._meta(),
                details={"reason": "store_context_required", "resource": resource},
            )
            raise HTTPException(status_code=401, detail=UNAUTHORIZED_DETAIL)
        return self.context

    def check(self, owner_store_id: Any, resource: str = "resource") -> None:
        if owner_store_id is None:
            return

        if self.context is None:
            self.audit_log.record(
                AuditEventType.unauthorized,
                self._meta(),
                attempted_store_id=owner_store_id,
                details={"reason": "store_context_required", "resource": resource},
            )
            raise HTTPException(status_code=401, detail=UNAUTHORIZED_DETAIL)

        if str(owner_store_id) != str(self.context.store_id):
            self.audit_log.record(
                AuditEventType.cross_tenant_attempt,
                self._meta(),
                store_id=self.context.store_id,
                attempted_store_id=owner_store_id,
                details={"reason": "cross_tenant_access_attempt", "resource": resource},
            )
            raise HTTPException(status_code=403, detail=FORBIDDEN_DETAIL)

    def owner_for_create(self) -> Optional[UUID]:
        """Owning store for new rows. Client-supplied store ids are never used."""
        return self.store_id
