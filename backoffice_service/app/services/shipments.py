"""Shipment tracking carried on orders.

Besides the tracking columns, every shipment appends a line to the order
notes (``[Shipment] <courier> - <tracking>``). Orders whose tracking was only
ever recorded in the notes are still resolved from that line.
"""

import random
import re
from datetime import datetime, timezone

from sqlalchemy import or_

from ..database import transaction
from ..errors import ValidationError
from ..loggers import get_logger
from ..models import ActivityLog, Customer, Order
from .orders import get_order

logger = get_logger(__name__)

READY_STATUS = "ready-to-ship"
SHIPPED_STATUS = "shipped"
TAB_STATUSES = {"ready": READY_STATUS, "shipped": SHIPPED_STATUS}

SHIPMENT_NOTE_PATTERN = re.compile(r"\[Shipment\] (.*?) - (MY\d+PC)")
TRACKING_PATTERN = re.compile(r"MY\d+PC")


def generate_tracking_number(rng=random):
    return f"MY{rng.randint(0, 999_999_999)}PC"


def shipment_note(courier, tracking_number):
    return f"[Shipment] {courier} - {tracking_number}"


def parse_shipment_note(notes):
    """(courier, tracking) from the last shipment line in ``notes``, or (None, None)."""
    if not notes:
        return None, None
    matches = SHIPMENT_NOTE_PATTERN.findall(notes)
    if matches:
        courier, tracking = matches[-1]
        return courier, tracking
    loose = TRACKING_PATTERN.search(notes)
    return None, loose.group(0) if loose else None


def resolve_tracking(order):
    courier, tracking = order.courier, order.tracking_number
    if not tracking:
        parsed_courier, tracking = parse_shipment_note(order.notes)
        courier = courier or parsed_courier
    return courier, tracking


def shipment_view(order):
    courier, tracking = resolve_tracking(order)
    customer = order.customer
    return {
        "orderId": order.id,
        "orderNumber": order.order_number,
        "customerName": customer.full_name if customer else "",
        "status": order.status,
        "deliveryMethod": order.delivery_method,
        "courier": courier,
        "trackingNumber": tracking,
        "shippedAt": order.shipped_at.isoformat() if order.shipped_at else None,
    }


def list_shipments(store, tab="ready", search=""):
    status = TAB_STATUSES.get(tab)
    if status is None:
        raise ValidationError(f"Unknown shipment tab '{tab}'")
    query = (
        store.query(Order)
        .outerjoin(Customer, Order.customer_id == Customer.id)
        .filter(Order.status == status)
    )
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Order.order_number.ilike(pattern), Customer.full_name.ilike(pattern)))
    return query.order_by(Order.created_at.desc()).all()


def create_shipment(store, order_id, courier, user_id=None, rng=random):
    if not order_id:
        raise ValidationError("orderId is required")
    if not courier:
        raise ValidationError("courier is required")

    with transaction(store.db):
        order = get_order(store, order_id)
        tracking = generate_tracking_number(rng)
        previous_status = order.status

        order.status = SHIPPED_STATUS
        order.courier = courier
        order.tracking_number = tracking
        order.shipped_at = datetime.now(timezone.utc)
        note = shipment_note(courier, tracking)
        order.notes = f"{order.notes}\n{note}" if order.notes else note

        if previous_status != SHIPPED_STATUS:
            store.db.add(
                ActivityLog(
                    order_id=order.id,
                    action="Status Changed",
                    from_status=previous_status,
                    to_status=SHIPPED_STATUS,
                    user_id=user_id,
                    notes=note,
                )
            )
        store.flush()

    logger.info("Shipment %s created for order %s", tracking, order_id)
    store.db.expire_all()
    return get_order(store, order_id)
