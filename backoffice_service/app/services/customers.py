from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from .. import config
from ..database import transaction
from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import Customer

_FIELDS = ("full_name", "email", "phone", "company_name", "tax_id", "marketing_opt_in")


def list_customers(store, search="", page=1, limit=None):
    page = max(page or 1, 1)
    limit = limit if limit and limit > 0 else config.settings.default_page_size
    query = store.query(Customer)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                Customer.full_name.ilike(pattern),
                Customer.email.ilike(pattern),
                Customer.company_name.ilike(pattern),
            )
        )
    total = query.count()
    customers = query.order_by(Customer.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    return customers, total, page, limit


def get_customer(store, customer_id):
    customer = store.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer


def _save(store):
    try:
        store.flush()
    except IntegrityError as exc:
        raise ConflictError("A customer with this email already exists") from exc


def create_customer(store, data):
    if not data.full_name:
        raise ValidationError("fullName is required")
    if not data.email:
        raise ValidationError("email is required")
    with transaction(store.db):
        customer = store.add(
            Customer(
                full_name=data.full_name,
                email=data.email,
                phone=data.phone,
                company_name=data.company_name,
                tax_id=data.tax_id,
                marketing_opt_in=data.marketing_opt_in,
            )
        )
        _save(store)
    return customer


def update_customer(store, customer_id, data):
    with transaction(store.db):
        customer = get_customer(store, customer_id)
        for field in _FIELDS:
            if data.provided(field) and getattr(data, field) is not None:
                setattr(customer, field, getattr(data, field))
        _save(store)
    return customer


def delete_customer(store, customer_id):
    with transaction(store.db):
        store.delete(get_customer(store, customer_id))
    return {"success": True}
