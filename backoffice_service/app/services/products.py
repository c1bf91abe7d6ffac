from sqlalchemy import or_

from .. import config
from ..database import transaction
from ..errors import NotFoundError, ValidationError
from ..models import Product

_FIELDS = ("name", "sku", "description", "base_price", "stock", "track_stock", "is_active")


def list_products(store, search="", page=1, limit=None):
    page = max(page or 1, 1)
    limit = limit if limit and limit > 0 else config.settings.default_page_size
    query = store.query(Product)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Product.name.ilike(pattern), Product.sku.ilike(pattern)))
    total = query.count()
    products = query.order_by(Product.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    return products, total, page, limit


def get_product(store, product_id):
    product = store.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def create_product(store, data):
    if not data.name:
        raise ValidationError("name is required")
    if data.stock < 0:
        raise ValidationError("stock cannot be negative")
    with transaction(store.db):
        product = store.add(Product(**{field: getattr(data, field) for field in _FIELDS}))
        store.flush()
    return product


def update_product(store, product_id, data):
    if data.stock is not None and data.stock < 0:
        raise ValidationError("stock cannot be negative")
    with transaction(store.db):
        product = get_product(store, product_id)
        for field in _FIELDS:
            if data.provided(field) and getattr(data, field) is not None:
                setattr(product, field, getattr(data, field))
        store.flush()
    return product


def delete_product(store, product_id):
    with transaction(store.db):
        store.delete(get_product(store, product_id))
    return {"success": True}
