from typing import List, Optional

from fastapi import APIRouter, Depends

from ..security import global_store, tenant_store
from ..serializers import quote_view
from ..schemas import QuoteCreate, QuoteUpdate
from ..services import quotes as service
from .bulk import bulk_delete_ids

router = APIRouter(prefix="/api/documents/quotes", tags=["quotes"])


@router.get("")
def get_quotes(id: Optional[str] = None, search: str = "", store=Depends(tenant_store)):
    """One quote when ``id`` is given, otherwise all quotes matching ``search``."""
    if id:
        return quote_view(service.get_quote(store, id))
    return [quote_view(quote) for quote in service.list_quotes(store, search)]


@router.post("")
def create_quote(body: QuoteCreate, store=Depends(tenant_store)):
    return quote_view(service.create_quote(store, body))


@router.put("")
def update_quote(body: QuoteUpdate, store=Depends(tenant_store), everywhere=Depends(global_store)):
    """Update a quote; accepting it converts it into a draft invoice."""
    return quote_view(service.update_quote(store, everywhere, body))


@router.delete("")
def delete_quotes(
    id: Optional[str] = None,
    ids: Optional[List[str]] = Depends(bulk_delete_ids),
    store=Depends(tenant_store),
):
    """Bulk delete with a JSON ``{"ids": [...]}`` body, or one quote with ``?id=``."""
    return service.delete_quotes(store, ids=ids, single_id=id)
