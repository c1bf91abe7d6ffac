from .models import LineItem


def sync_line_items(document, incoming):
    """Reconcile ``document.line_items`` with the submitted lines.

    Lines whose id matches an existing row are updated in place, the rest are
    inserted, and rows missing from ``incoming`` are removed as orphans.
    """
    existing = {item.id: item for item in document.line_items}
    kept = []
    for position, data in enumerate(incoming):
        item = existing.pop(data.id, None) if data.id else None
        if item is None:
            item = LineItem()
        apply_line_item(item, data, position)
        kept.append(item)
    document.line_items = kept
    return kept


def apply_line_item(item, data, position):
    item.position = position
    item.description = data.description
    item.quantity = data.quantity
    item.unit_price = data.unit_price
    item.total = data.total
    item.product_id = data.product_id
    item.notes = data.notes


def copy_line_items(source_items):
    """Fresh, unsaved copies of another document's lines."""
    return [
        LineItem(
            position=position,
            description=item.description,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total=item.total,
            product_id=item.product_id,
            notes=item.notes,
        )
        for position, item in enumerate(source_items)
    ]
