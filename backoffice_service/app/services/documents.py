"""Helpers shared by the quote and invoice services."""

from sqlalchemy import or_

from ..errors import NotFoundError, ValidationError
from ..loggers import get_logger
from ..models import Customer, Product

logger = get_logger(__name__)


def require_customer(store, customer_id):
    if not customer_id:
        raise ValidationError("Customer ID is required")
    customer = store.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer


def search_documents(store, model, number_column, search):
    """Documents of ``model`` whose number or customer name contains ``search``."""
    query = store.query(model).outerjoin(Customer, model.customer_id == Customer.id)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(number_column.ilike(pattern), Customer.full_name.ilike(pattern)))
    return query.order_by(model.created_at.desc()).all()


def delete_documents(store, model, label, ids=None, single_id=None):
    """Bulk delete when ``ids`` is a list, otherwise delete ``single_id``."""
    if ids is not None:
        count = store.delete_many(model, ids)
        return {"success": True, "count": count}

    if not single_id:
        raise ValidationError(f"{label} ID or IDs required")

    document = store.get(model, single_id)
    if document is None:
        raise NotFoundError(f"{label} not found")
    store.delete(document)
    return {"success": True}


def scope_line_products(store, lines):
    """Drop product links that do not resolve in this organization."""
    for line in lines:
        if line.product_id and store.get(Product, line.product_id) is None:
            logger.warning("Line item references unknown product %s; dropping the link", line.product_id)
            line.product_id = None
    return lines
