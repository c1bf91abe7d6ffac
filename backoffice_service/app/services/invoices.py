from datetime import datetime, timezone

from sqlalchemy.orm import selectinload

from ..cascades import run_cascade
from ..database import transaction
from ..errors import CascadeError, NotFoundError, ValidationError
from ..line_items import apply_line_item, sync_line_items
from ..loggers import get_logger
from ..models import Invoice, LineItem, Order, OrderItem
from ..numbering import next_order_number
from ..validators import INVOICE_STATUSES, require_choice, truncate
from .documents import delete_documents, require_customer, scope_line_products, search_documents

logger = get_logger(__name__)

PAID = "Paid"
# Column widths on the order side.
ORDER_PAYMENT_METHOD_LENGTH = 20
ORDER_ITEM_NAME_LENGTH = 200

_UPDATABLE_FIELDS = (
    "subtotal",
    "discount_amount",
    "tax_rate",
    "tax_amount",
    "total",
    "notes",
    "payment_method",
    "payment_terms",
    "due_date",
)


def get_invoice(store, invoice_id):
    invoice = (
        store.query(Invoice)
        .options(selectinload(Invoice.line_items))
        .filter(Invoice.id == invoice_id)
        .first()
    )
    if invoice is None:
        raise NotFoundError("Invoice not found")
    return invoice


def list_invoices(store, search=""):
    return search_documents(store, Invoice, Invoice.invoice_number, search)


def create_invoice(store, data):
    require_choice(data.status, INVOICE_STATUSES, "invoice status")
    with transaction(store.db):
        require_customer(store, data.customer_id)
        invoice = Invoice(
            invoice_number=data.invoice_number,
            customer_id=data.customer_id,
            due_date=data.due_date,
            status=data.status or "Draft",
            notes=data.notes,
            subtotal=data.subtotal,
            discount_amount=data.discount_amount,
            tax_rate=data.tax_rate,
            tax_amount=data.tax_amount,
            total=data.total,
            payment_method=data.payment_method,
            payment_terms=data.payment_terms,
        )
        if invoice.status == PAID:
            invoice.paid_at = datetime.now(timezone.utc)
        for position, line in enumerate(scope_line_products(store, data.line_items)):
            item = LineItem()
            apply_line_item(item, line, position)
            invoice.line_items.append(item)
        store.add(invoice)
        store.flush()
        invoice_id = invoice.id
    return get_invoice(store, invoice_id)


def update_invoice(store, global_store, data):
    """Edit an invoice; marking it Paid settles or creates its order.

    The invoice edit and the order side effect share one transaction, subject
    to the cascade policy.
    """
    if not data.id:
        raise ValidationError("Invoice ID is required")
    require_choice(data.status, INVOICE_STATUSES, "invoice status")

    with transaction(store.db):
        invoice = get_invoice(store, data.id)

        if data.provided("customer_id") and data.customer_id:
            require_customer(store, data.customer_id)
            invoice.customer_id = data.customer_id
        for field in _UPDATABLE_FIELDS:
            value = getattr(data, field)
            if data.provided(field) and (value is not None or Invoice.__table__.c[field].nullable):
                setattr(invoice, field, value)
        if data.line_items is not None:
            sync_line_items(invoice, scope_line_products(store, data.line_items))
        if data.status is not None:
            if data.status == PAID and invoice.paid_at is None:
                invoice.paid_at = datetime.now(timezone.utc)
            invoice.status = data.status
        store.flush()

        if data.status == PAID and invoice.status == PAID:
            run_cascade(store.db, "Invoice-Sync", settle_invoice_order, store, global_store, invoice)
        invoice_id = invoice.id

    return get_invoice(store, invoice_id)


def settle_invoice_order(store, global_store, invoice):
    """Mark the invoice's order as paid, creating the order when there is none."""
    if invoice.order_id:
        order = store.get(Order, invoice.order_id)
        if order is None:
            raise CascadeError(f"Linked order {invoice.order_id} not found for invoice {invoice.invoice_number}")
        order.payment_status = "paid"
        order.paid_amount = invoice.total or 0
        order.payment_method = truncate(invoice.payment_method, ORDER_PAYMENT_METHOD_LENGTH)
        store.flush()
        logger.info("[Invoice-Sync] Updated Order %s to Paid", order.order_number)
        return order

    order_number = next_order_number(global_store)
    order = Order(
        order_number=order_number,
        customer_id=invoice.customer_id,
        status="new_order",
        payment_status="paid",
        paid_amount=invoice.total or 0,
        payment_method=truncate(invoice.payment_method, ORDER_PAYMENT_METHOD_LENGTH),
        total_amount=invoice.total,
        subtotal=invoice.subtotal,
        discount_amount=invoice.discount_amount,
        tax_amount=invoice.tax_amount,
        notes=f"Auto-generated from Invoice {invoice.invoice_number}. {invoice.notes or ''}".strip(),
        items=[
            OrderItem(
                name=(item.description or "")[:ORDER_ITEM_NAME_LENGTH],
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.total,
                product_id=item.product_id,
            )
            for item in invoice.line_items
        ],
    )
    store.add(order)
    store.flush()
    invoice.order_id = order.id
    store.flush()
    logger.info("[Invoice-Sync] Created Order %s for Invoice %s", order_number, invoice.invoice_number)
    return order


def delete_invoices(store, ids=None, single_id=None):
    with transaction(store.db):
        return delete_documents(store, Invoice, "Invoice", ids=ids, single_id=single_id)
