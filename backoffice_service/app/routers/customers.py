from typing import Optional

from fastapi import APIRouter, Depends

from ..security import listing_store, tenant_store
from ..serializers import customer_view, paginated
from ..schemas import CustomerCreate, CustomerUpdate
from ..services import customers as service

router = APIRouter(prefix="/api/customers", tags=["customers"])


@router.get("")
def list_customers(search: str = "", page: int = 1, limit: Optional[int] = None, store=Depends(listing_store)):
    customers, total, page, limit = service.list_customers(store, search=search, page=page, limit=limit)
    return paginated([customer_view(c) for c in customers], page, limit, total)


@router.post("", status_code=201)
def create_customer(body: CustomerCreate, store=Depends(tenant_store)):
    return customer_view(service.create_customer(store, body))


@router.get("/{customer_id}")
def get_customer(customer_id: str, store=Depends(tenant_store)):
    return customer_view(service.get_customer(store, customer_id))


@router.put("/{customer_id}")
def update_customer(customer_id: str, body: CustomerUpdate, store=Depends(tenant_store)):
    return customer_view(service.update_customer(store, customer_id, body))


@router.delete("/{customer_id}")
def delete_customer(customer_id: str, store=Depends(tenant_store)):
    return service.delete_customer(store, customer_id)
