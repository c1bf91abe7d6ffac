from typing import Optional

from fastapi import APIRouter, Depends

from ..security import tenant_store
from ..serializers import paginated, product_view
from ..schemas import ProductCreate, ProductUpdate
from ..services import products as service

router = APIRouter(prefix="/api/products", tags=["products"])


@router.get("")
def list_products(search: str = "", page: int = 1, limit: Optional[int] = None, store=Depends(tenant_store)):
    products, total, page, limit = service.list_products(store, search=search, page=page, limit=limit)
    return paginated([product_view(p) for p in products], page, limit, total)


@router.post("", status_code=201)
def create_product(body: ProductCreate, store=Depends(tenant_store)):
    return product_view(service.create_product(store, body))


@router.get("/{product_id}")
def get_product(product_id: str, store=Depends(tenant_store)):
    return product_view(service.get_product(store, product_id))


@router.put("/{product_id}")
def update_product(product_id: str, body: ProductUpdate, store=Depends(tenant_store)):
    return product_view(service.update_product(store, product_id, body))


@router.delete("/{product_id}")
def delete_product(product_id: str, store=Depends(tenant_store)):
    return service.delete_product(store, product_id)
