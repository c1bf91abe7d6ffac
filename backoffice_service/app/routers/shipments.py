from fastapi import APIRouter, Depends

from ..security import SessionContext, require_organization, tenant_store
from ..serializers import order_view
from ..schemas import ShipmentCreate
from ..services import shipments as service

router = APIRouter(prefix="/api/shipments", tags=["shipments"])


@router.get("")
def list_shipments(tab: str = "ready", search: str = "", store=Depends(tenant_store)):
    return [service.shipment_view(order) for order in service.list_shipments(store, tab, search)]


@router.post("", status_code=201)
def create_shipment(
    body: ShipmentCreate,
    store=Depends(tenant_store),
    ctx: SessionContext = Depends(require_organization),
):
    """Ship an order with a generated tracking number."""
    order = service.create_shipment(store, body.order_id, body.courier, user_id=ctx.user_id)
    return {"shipment": service.shipment_view(order), "order": order_view(order)}
