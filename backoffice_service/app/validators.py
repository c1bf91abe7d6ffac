import re

from .errors import ValidationError

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

QUOTE_STATUSES = {"Draft", "Sent", "Accepted", "Rejected"}
INVOICE_STATUSES = {"Draft", "Sent", "Paid", "Overdue"}


def is_valid_uuid(value):
    return isinstance(value, str) and bool(UUID_PATTERN.match(value))


def truncate(value, length):
    if value is None:
        return None
    return value[:length]


def require_choice(value, choices, label):
    """Return ``value`` when it is one of ``choices``; None passes through."""
    if value is None or value in choices:
        return value
    allowed = ", ".join(sorted(choices))
    raise ValidationError(f"Invalid {label} '{value}'. Expected one of: {allowed}")


def clean_ids(ids):
    """Normalize a bulk-delete ``ids`` array to a list of non-empty strings."""
    return [str(value) for value in ids if value not in (None, "")]
