from typing import List, Optional

from fastapi import APIRouter, Depends

from ..security import global_store, tenant_store
from ..serializers import invoice_view
from ..schemas import InvoiceCreate, InvoiceUpdate
from ..services import invoices as service
from .bulk import bulk_delete_ids

router = APIRouter(prefix="/api/documents/invoices", tags=["invoices"])


@router.get("")
def get_invoices(id: Optional[str] = None, search: str = "", store=Depends(tenant_store)):
    if id:
        return invoice_view(service.get_invoice(store, id))
    return [invoice_view(invoice) for invoice in service.list_invoices(store, search)]


@router.post("")
def create_invoice(body: InvoiceCreate, store=Depends(tenant_store)):
    return invoice_view(service.create_invoice(store, body))


@router.put("")
def update_invoice(body: InvoiceUpdate, store=Depends(tenant_store), everywhere=Depends(global_store)):
    """Update an invoice; marking it Paid settles the linked order or creates one."""
    return invoice_view(service.update_invoice(store, everywhere, body))


@router.delete("")
def delete_invoices(
    id: Optional[str] = None,
    ids: Optional[List[str]] = Depends(bulk_delete_ids),
    store=Depends(tenant_store),
):
    return service.delete_invoices(store, ids=ids, single_id=id)
