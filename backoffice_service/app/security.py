"""Session context forwarded by the authenticating gateway.

Authentication itself happens upstream; requests arrive here with the
caller's organization and user in headers.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from .database import get_db
from .errors import UnauthorizedError
from .stores import GlobalStore, TenantScopedStore

TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class SessionContext:
    organization_id: Optional[str]
    user_id: Optional[str]
    is_super_admin: bool


def get_session_context(
    x_organization_id: Optional[str] = Header(None),
    x_user_id: Optional[str] = Header(None),
    x_super_admin: Optional[str] = Header(None),
) -> SessionContext:
    return SessionContext(
        organization_id=(x_organization_id or "").strip() or None,
        user_id=(x_user_id or "").strip() or None,
        is_super_admin=(x_super_admin or "").strip().lower() in TRUTHY,
    )


def require_organization(ctx: SessionContext = Depends(get_session_context)) -> SessionContext:
    if not ctx.organization_id:
        raise UnauthorizedError("Unauthorized")
    return ctx


def tenant_store(
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_organization),
) -> TenantScopedStore:
    return TenantScopedStore(db, ctx.organization_id)


def global_store(db: Session = Depends(get_db)) -> GlobalStore:
    return GlobalStore(db)


def listing_store(
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    """Super admins read across organizations; everyone else needs one."""
    if ctx.is_super_admin:
        return GlobalStore(db)
    if not ctx.organization_id:
        raise UnauthorizedError("Unauthorized or no organization")
    return TenantScopedStore(db, ctx.organization_id)
