import json
import time
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import or_, update
from sqlalchemy.orm import selectinload

from .. import config
from ..cascades import run_cascade
from ..database import transaction
from ..errors import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from ..loggers import get_logger
from ..models import (
    ActivityLog,
    Agent,
    Customer,
    Department,
    Invoice,
    LineItem,
    Order,
    OrderAssignment,
    OrderItem,
    Product,
    User,
)
from ..numbering import invoice_number_for_order, next_order_number
from ..validators import is_valid_uuid, truncate

logger = get_logger(__name__)

ORDER_PAYMENT_METHOD_LENGTH = 20
ORDER_ITEM_NAME_LENGTH = 200
DEFAULT_ROLE = "production"

_ORDER_RELATIONS = (
    selectinload(Order.customer),
    selectinload(Order.agent),
    selectinload(Order.department),
    selectinload(Order.assignee),
    selectinload(Order.items),
    selectinload(Order.assignments).selectinload(OrderAssignment.user),
    selectinload(Order.attachments),
    selectinload(Order.proofs),
    selectinload(Order.activity_logs),
)

# Request field -> order column for partial updates.
_SCALAR_FIELDS = (
    "status",
    "priority",
    "subtotal",
    "discount_amount",
    "tax_amount",
    "shipping_amount",
    "total_amount",
    "paid_amount",
    "payment_status",
    "delivery_method",
    "tracking_number",
    "courier",
    "notes",
    "internal_notes",
    "due_date",
    "shipped_at",
    "delivered_at",
)

_REFERENCE_FIELDS = (
    ("customer_id", Customer, "Customer"),
    ("agent_id", Agent, "Agent"),
    ("department_id", Department, "Department"),
    ("assigned_to", User, "Assignee"),
)


def get_order(store, order_id):
    order = store.query(Order).options(*_ORDER_RELATIONS).filter(Order.id == order_id).first()
    if order is None:
        raise NotFoundError("Order not found")
    return order


def list_orders(store, search="", status="", priority="", department_id="", page=1, limit=None):
    """One page of orders, newest first, and the total number of matches."""
    page = max(page or 1, 1)
    limit = limit if limit and limit > 0 else config.settings.default_page_size

    query = store.query(Order).outerjoin(Customer, Order.customer_id == Customer.id)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Order.order_number.ilike(pattern), Customer.full_name.ilike(pattern)))
    if status:
        query = query.filter(Order.status == status)
    if priority:
        query = query.filter(Order.priority == priority)
    if department_id:
        query = query.filter(Order.department_id == department_id)

    total = query.count()
    orders = (
        query.options(*_ORDER_RELATIONS)
        .order_by(Order.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return orders, total, page, limit


def _resolve_reference(store, model, raw_id, label):
    """Id of a row in this organization, or None when ``raw_id`` is not a UUID."""
    if not is_valid_uuid(raw_id):
        return None
    if store.get(model, raw_id) is None:
        raise ValidationError(f"{label} not found")
    return raw_id


def _reserve_stock(store, items):
    """Check and decrement stock for each item; returns the resolved product ids.

    Items whose product does not resolve in this organization are kept
    without a product link and do not touch stock.
    """
    resolved = []
    for item in items:
        if not is_valid_uuid(item.product_id):
            resolved.append(None)
            continue

        product = store.get(Product, item.product_id)
        if product is None:
            logger.warning("Order item references unknown product %s; skipping stock check", item.product_id)
            resolved.append(None)
            continue

        if product.track_stock:
            if product.stock < item.quantity:
                raise InsufficientStockError(product.name, product.stock, item.quantity)
            result = store.db.execute(
                update(Product)
                .where(Product.id == product.id, Product.stock >= item.quantity)
                .values(stock=Product.stock - item.quantity)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                store.db.refresh(product)
                raise InsufficientStockError(product.name, product.stock, item.quantity)
            store.db.expire(product, ["stock"])
        resolved.append(product.id)
    return resolved


def _resolve_customer(store, data):
    """Explicit id, then email match, then a new record (walk-ins get a placeholder email)."""
    if is_valid_uuid(data.customer_id):
        customer = store.get(Customer, data.customer_id)
        if customer is not None:
            return customer
        logger.warning("Customer %s not found in organization; matching by email", data.customer_id)

    if data.customer_email:
        customer = store.query(Customer).filter(Customer.email == data.customer_email).first()
        if customer is not None:
            return customer

    if not data.customer_name:
        return None

    customer = Customer(
        full_name=data.customer_name,
        email=data.customer_email or f"walkin-{time.time_ns() // 1000}@temp.local",
        phone=data.customer_phone,
        order_count=0,
        total_spent=Decimal("0"),
    )
    store.add(customer)
    store.flush()
    return customer


def _add_assignments(store, order, assignees, assigned_by):
    """Create assignment rows, capped at the configured maximum; duplicates are ignored."""
    limit = config.settings.max_order_assignees
    created = []
    seen = set()
    for assignee in assignees[:limit]:
        if assignee.user_id in seen:
            continue
        seen.add(assignee.user_id)
        if store.get(User, assignee.user_id) is None:
            raise ValidationError(f"Assignee {assignee.user_id} not found")
        assignment = OrderAssignment(
            order_id=order.id,
            user_id=assignee.user_id,
            role=assignee.role or DEFAULT_ROLE,
            assigned_by=assigned_by,
        )
        store.db.add(assignment)
        created.append(assignment)
    return created


def _draft_invoice_for(order, data, product_ids):
    return Invoice(
        invoice_number=invoice_number_for_order(order.order_number),
        customer_id=order.customer_id,
        order_id=order.id,
        status="Draft",
        subtotal=order.subtotal,
        discount_amount=order.discount_amount,
        tax_rate=data.tax_rate,
        tax_amount=order.tax_amount,
        total=order.total_amount,
        due_date=order.due_date.date() if order.due_date else None,
        notes=f"Auto-generated from Order {order.order_number}",
        payment_method=data.payment_method,
        line_items=[
            LineItem(
                position=position,
                product_id=product_ids[position],
                description=item.name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total=item.total_price,
                notes=json.dumps(item.specifications) if item.specifications else None,
            )
            for position, item in enumerate(data.items)
        ],
    )


def create_order(store, global_store, data):
    """Create an order with its stock, customer, assignment and invoice side effects.

    Everything happens in one transaction: an insufficient-stock error or any
    other failure leaves no order, invoice, customer or stock change behind.
    """
    with transaction(store.db):
        product_ids = _reserve_stock(store, data.items)
        customer = _resolve_customer(store, data)
        agent_id = _resolve_reference(store, Agent, data.agent_id, "Agent")

        order = Order(
            order_number=next_order_number(global_store),
            customer_id=customer.id if customer else None,
            agent_id=agent_id,
            department_id=_resolve_reference(store, Department, data.department_id, "Department"),
            assigned_to=_resolve_reference(store, User, data.assigned_to, "Assignee"),
            status=data.status or "new_order",
            priority=data.priority or "normal",
            subtotal=data.subtotal,
            discount_amount=data.discount_amount,
            tax_amount=data.tax_amount,
            shipping_amount=data.shipping_amount,
            total_amount=data.total_amount,
            delivery_method=data.delivery_method,
            notes=data.notes,
            due_date=data.due_date,
            items=[
                OrderItem(
                    product_id=product_ids[position],
                    name=(item.name or "")[:ORDER_ITEM_NAME_LENGTH],
                    quantity=item.quantity,
                    specifications=item.specifications,
                    width=item.width,
                    height=item.height,
                    unit_price=item.unit_price,
                    total_price=item.total_price,
                )
                for position, item in enumerate(data.items)
            ],
        )
        store.add(order)
        store.flush()

        _add_assignments(store, order, data.assignees, data.assigned_by)
        store.add(_draft_invoice_for(order, data, product_ids))

        if customer is not None:
            customer.order_count = (customer.order_count or 0) + 1
            customer.total_spent = (customer.total_spent or Decimal("0")) + data.total_amount
        if agent_id:
            agent = store.get(Agent, agent_id)
            agent.total_orders = (agent.total_orders or 0) + 1
        store.flush()
        order_id = order.id

    logger.info("Created order %s", order_id)
    return get_order(store, order_id)


def _log_activity(store, order_id, data, action, **fields):
    store.db.add(
        ActivityLog(
            order_id=order_id,
            action=action,
            user_id=data.user_id,
            user_name=data.user_name or "System",
            user_role=data.user_role or "system",
            **fields,
        )
    )


def mark_order_invoices_paid(store, order_id, payment_method):
    invoices = store.query(Invoice).filter(Invoice.order_id == order_id).all()
    paid_at = datetime.now(timezone.utc)
    for invoice in invoices:
        invoice.status = "Paid"
        invoice.paid_at = paid_at
        if payment_method:
            invoice.payment_method = payment_method
    store.flush()
    logger.info("[Order-Sync] Marked %d invoice(s) paid for order %s", len(invoices), order_id)
    return invoices


def update_order(store, order_id, data):
    """Apply a partial update and record what changed in the activity log."""
    with transaction(store.db):
        order = get_order(store, order_id)
        previous_status = order.status
        previous_assignee = order.assigned_to

        for field, model, label in _REFERENCE_FIELDS:
            if data.provided(field):
                value = getattr(data, field)
                setattr(order, field, _resolve_reference(store, model, value, label) if value else None)
        for field in _SCALAR_FIELDS:
            value = getattr(data, field)
            # An explicit null leaves NOT NULL columns untouched.
            if data.provided(field) and (value is not None or Order.__table__.c[field].nullable):
                setattr(order, field, value)
        if data.provided("payment_method"):
            order.payment_method = truncate(data.payment_method, ORDER_PAYMENT_METHOD_LENGTH)

        if data.status and previous_status != data.status:
            _log_activity(
                store, order.id, data, "Status Changed", from_status=previous_status, to_status=data.status
            )
        if data.provided("assigned_to") and previous_assignee != order.assigned_to:
            _log_activity(
                store,
                order.id,
                data,
                "Assignee Changed",
                notes=f"Assigned to user ID: {order.assigned_to or 'Unassigned'}",
            )
        if data.history_entry is not None:
            _log_activity(
                store, order.id, data, data.history_entry.action or "Update", notes=data.history_entry.notes
            )

        if data.assignees is not None:
            order.assignments = []
            store.flush()
            created = _add_assignments(store, order, data.assignees, data.user_id)
            if created:
                _log_activity(
                    store, order.id, data, "Assignments Updated", notes=f"Updated to {len(created)} assignee(s)"
                )

        store.flush()
        if data.payment_status == "paid":
            run_cascade(store.db, "Order-Sync", mark_order_invoices_paid, store, order.id, data.payment_method)

    store.db.expire_all()
    return get_order(store, order_id)


def delete_order(store, order_id):
    """Delete one order; stock and customer counters are not restored."""
    with transaction(store.db):
        order = get_order(store, order_id)
        store.delete(order)
    return {"success": True}


def delete_orders(store, ids):
    if not ids:
        raise ValidationError("Invalid or empty IDs array")
    with transaction(store.db):
        count = store.delete_many(Order, ids)
    return {"success": True, "count": count}


def list_assignments(store, order_id):
    return (
        store.db.query(OrderAssignment)
        .options(selectinload(OrderAssignment.user))
        .filter(OrderAssignment.order_id == order_id)
        .order_by(OrderAssignment.assigned_at)
        .all()
    )


def add_assignment(store, order_id, user_id, role=DEFAULT_ROLE):
    if not user_id:
        raise ValidationError("userId is required")
    with transaction(store.db):
        order = get_order(store, order_id)
        if any(a.user_id == user_id for a in order.assignments):
            raise ConflictError("User already assigned")
        if len(order.assignments) >= config.settings.max_order_assignees:
            raise ValidationError(
                f"An order can have at most {config.settings.max_order_assignees} assignees"
            )
        if store.get(User, user_id) is None:
            raise ValidationError("User not found")
        store.db.add(OrderAssignment(order_id=order.id, user_id=user_id, role=role or DEFAULT_ROLE))
    return list_assignments(store, order_id)


def remove_assignment(store, order_id, user_id):
    if not user_id:
        raise ValidationError("userId is required")
    with transaction(store.db):
        order = get_order(store, order_id)
        removed = (
            store.db.query(OrderAssignment)
            .filter(OrderAssignment.order_id == order.id, OrderAssignment.user_id == user_id)
            .delete(synchronize_session=False)
        )
        if not removed:
            raise NotFoundError("Assignment not found")
    store.db.expire_all()
    return list_assignments(store, order_id)
