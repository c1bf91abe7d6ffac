from sqlalchemy.orm import selectinload

from ..cascades import run_cascade
from ..database import transaction
from ..errors import NotFoundError, ValidationError
from ..line_items import apply_line_item, copy_line_items, sync_line_items
from ..loggers import get_logger
from ..models import Invoice, LineItem, Quote
from ..numbering import next_quote_invoice_number
from ..validators import QUOTE_STATUSES, require_choice
from .documents import delete_documents, require_customer, scope_line_products, search_documents

logger = get_logger(__name__)

ACCEPTED = "Accepted"


def get_quote(store, quote_id):
    quote = (
        store.query(Quote)
        .options(selectinload(Quote.line_items))
        .filter(Quote.id == quote_id)
        .first()
    )
    if quote is None:
        raise NotFoundError("Quote not found")
    return quote


def list_quotes(store, search=""):
    return search_documents(store, Quote, Quote.quote_number, search)


def create_quote(store, data):
    require_choice(data.status, QUOTE_STATUSES, "quote status")
    with transaction(store.db):
        require_customer(store, data.customer_id)
        quote = Quote(
            quote_number=data.quote_number,
            customer_id=data.customer_id,
            valid_until=data.valid_until,
            status=data.status or "Draft",
            notes=data.notes,
            terms=data.terms,
            subtotal=data.subtotal,
            tax_rate=data.tax_rate,
            tax_amount=data.tax_amount,
            total=data.total,
        )
        for position, line in enumerate(scope_line_products(store, data.line_items)):
            item = LineItem()
            apply_line_item(item, line, position)
            quote.line_items.append(item)
        store.add(quote)
        store.flush()
        quote_id = quote.id
    return get_quote(store, quote_id)


def update_quote(store, global_store, data):
    """Edit a quote; moving it to Accepted converts it into a draft invoice.

    With ``lineItems`` in the payload this is a full edit of the quote and its
    lines. Without them only status, notes, terms and validity are patched.
    """
    if not data.id:
        raise ValidationError("Quote ID is required")
    require_choice(data.status, QUOTE_STATUSES, "quote status")

    with transaction(store.db):
        quote = get_quote(store, data.id)

        if data.line_items is not None:
            if data.provided("customer_id") and data.customer_id:
                require_customer(store, data.customer_id)
                quote.customer_id = data.customer_id
            for field in ("subtotal", "tax_rate", "tax_amount", "total"):
                if getattr(data, field) is not None:
                    setattr(quote, field, getattr(data, field))
            sync_line_items(quote, scope_line_products(store, data.line_items))

        if data.status is not None:
            quote.status = data.status
        if data.provided("notes"):
            quote.notes = data.notes
        if data.provided("terms"):
            quote.terms = data.terms
        if data.valid_until is not None:
            quote.valid_until = data.valid_until
        store.flush()

        if data.status == ACCEPTED and quote.status == ACCEPTED:
            run_cascade(
                store.db, "Auto-Create", create_invoice_from_quote, store, global_store, quote
            )
        quote_id = quote.id

    return get_quote(store, quote_id)


def create_invoice_from_quote(store, global_store, quote):
    """Create the draft invoice for an accepted quote unless one already exists."""
    existing = store.query(Invoice).filter(Invoice.quote_id == quote.id).first()
    if existing is not None:
        return existing

    invoice_number = next_quote_invoice_number(global_store)
    invoice = Invoice(
        invoice_number=invoice_number,
        customer_id=quote.customer_id,
        quote_id=quote.id,
        status="Draft",
        subtotal=quote.subtotal,
        tax_rate=quote.tax_rate,
        tax_amount=quote.tax_amount,
        total=quote.total,
        notes=f"Converted from Quote {quote.quote_number}. {quote.notes or ''}".strip(),
        payment_terms=quote.terms,
        due_date=quote.valid_until,
        line_items=copy_line_items(quote.line_items),
    )
    store.add(invoice)
    store.flush()
    logger.info("[Auto-Create] Invoice %s created for Quote %s", invoice_number, quote.quote_number)
    return invoice


def delete_quotes(store, ids=None, single_id=None):
    with transaction(store.db):
        return delete_documents(store, Quote, "Quote", ids=ids, single_id=single_id)
