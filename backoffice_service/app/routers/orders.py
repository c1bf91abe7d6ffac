from typing import List, Optional

from fastapi import APIRouter, Depends

from ..errors import ValidationError
from ..security import SessionContext, global_store, listing_store, require_organization, tenant_store
from ..serializers import assignment_view, order_view, paginated
from ..schemas import AssignmentAdd, AssignmentRemove, OrderCreate, OrderUpdate
from ..services import orders as service
from .bulk import bulk_delete_ids

router = APIRouter(prefix="/api/orders", tags=["orders"])

SINGLE_ORDER_ACTIVITY = 20


@router.get("")
def list_orders(
    search: str = "",
    status: str = "",
    priority: str = "",
    departmentId: str = "",
    page: int = 1,
    limit: Optional[int] = None,
    store=Depends(listing_store),
):
    """Paginated orders, newest first. Super admins see every organization."""
    orders, total, page, limit = service.list_orders(
        store,
        search=search,
        status=status,
        priority=priority,
        department_id=departmentId,
        page=page,
        limit=limit,
    )
    return paginated([order_view(order) for order in orders], page, limit, total)


@router.post("", status_code=201)
def create_order(body: OrderCreate, store=Depends(tenant_store), everywhere=Depends(global_store)):
    return order_view(service.create_order(store, everywhere, body))


@router.delete("")
def delete_orders(ids: Optional[List[str]] = Depends(bulk_delete_ids), store=Depends(tenant_store)):
    """Bulk delete; the body must carry a non-empty ``ids`` array."""
    if not ids:
        raise ValidationError("Invalid or empty IDs array")
    return service.delete_orders(store, ids)


@router.get("/{order_id}")
def get_order(order_id: str, store=Depends(listing_store)):
    return order_view(service.get_order(store, order_id), activity_limit=SINGLE_ORDER_ACTIVITY)


@router.put("/{order_id}")
def update_order(
    order_id: str,
    body: OrderUpdate,
    store=Depends(tenant_store),
    ctx: SessionContext = Depends(require_organization),
):
    if body.user_id is None and ctx.user_id:
        body.user_id = ctx.user_id
    order = service.update_order(store, order_id, body)
    return order_view(order, activity_limit=SINGLE_ORDER_ACTIVITY)


@router.delete("/{order_id}")
def delete_order(order_id: str, store=Depends(tenant_store)):
    return service.delete_order(store, order_id)


@router.post("/{order_id}/assignments")
def add_assignment(order_id: str, body: AssignmentAdd, store=Depends(tenant_store)):
    assignments = service.add_assignment(store, order_id, body.user_id, body.role)
    return {"success": True, "assignments": [assignment_view(a) for a in assignments]}


@router.delete("/{order_id}/assignments")
def remove_assignment(order_id: str, body: AssignmentRemove, store=Depends(tenant_store)):
    assignments = service.remove_assignment(store, order_id, body.user_id)
    return {"success": True, "assignments": [assignment_view(a) for a in assignments]}
