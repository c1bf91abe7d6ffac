"""Human-readable document numbers backed by atomic counters."""

import re
from datetime import datetime, timezone

from .models import Order

ORDER_PREFIX = "ORD-"
ORDER_NUMBER_PATTERN = re.compile(r"ORD-(\d+)")
ORDER_COUNTER = "order"


def parse_order_sequence(order_number):
    """Numeric suffix of an ``ORD-<n>`` number, or None when it does not match."""
    if not order_number:
        return None
    match = ORDER_NUMBER_PATTERN.search(order_number)
    if not match:
        return None
    return int(match.group(1))


def format_order_number(sequence):
    return f"{ORDER_PREFIX}{sequence:06d}"


def _last_order_sequence(global_store):
    latest = (
        global_store.query(Order.order_number)
        .order_by(Order.created_at.desc())
        .first()
    )
    if latest is None:
        return 0
    return parse_order_sequence(latest.order_number) or 0


def next_order_number(global_store):
    """Next order number, unique across every organization."""
    sequence = global_store.next_counter_value(
        ORDER_COUNTER, seed=lambda: _last_order_sequence(global_store)
    )
    return format_order_number(sequence)


def invoice_number_for_order(order_number):
    """``ORD-000042`` becomes ``INV-000042``."""
    return "INV-" + order_number.replace(ORDER_PREFIX, "", 1)


def next_quote_invoice_number(global_store, now=None):
    """Number for an invoice converted from a quote: ``INV-<year>-<seq>``."""
    year = (now or datetime.now(timezone.utc)).year
    sequence = global_store.next_counter_value(f"invoice-{year}")
    return f"INV-{year}-{sequence:04d}"
