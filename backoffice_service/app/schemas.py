from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Request models accept camelCase keys on the wire and snake_case in code."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def provided(self, name):
        """True when the caller sent this field, even if it was null."""
        return name in self.model_fields_set


def _blank_to_none(value):
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


def _date_only(value):
    value = _blank_to_none(value)
    if isinstance(value, str) and len(value) > 10:
        # Accept full ISO timestamps, keep the calendar date.
        return value[:10]
    if isinstance(value, datetime):
        return value.date()
    return value


# --- Documents (quotes and invoices) ---

class LineItemIn(CamelModel):
    """One line of a quote or invoice."""
    id: Optional[str] = None
    description: str = ""
    quantity: int = 1
    unit_price: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    product_id: Optional[str] = None
    notes: Optional[str] = None

    check_blank_ids = field_validator("id", "product_id", mode="before")(_blank_to_none)


class QuoteCreate(CamelModel):
    customer_id: Optional[str] = None
    quote_number: Optional[str] = None
    line_items: List[LineItemIn] = Field(default_factory=list)
    subtotal: Decimal = Decimal("0")
    tax_rate: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    status: Optional[str] = None
    notes: Optional[str] = None
    terms: Optional[str] = None
    valid_until: Optional[date] = None

    check_blank_customer = field_validator("customer_id", mode="before")(_blank_to_none)
    check_valid_until = field_validator("valid_until", mode="before")(_date_only)


class QuoteUpdate(CamelModel):
    """Full edit when ``lineItems`` is present, otherwise a status/notes/date patch."""
    id: Optional[str] = None
    customer_id: Optional[str] = None
    line_items: Optional[List[LineItemIn]] = None
    subtotal: Optional[Decimal] = None
    tax_rate: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    total: Optional[Decimal] = None
    status: Optional[str] = None
    notes: Optional[str] = None
    terms: Optional[str] = None
    valid_until: Optional[date] = None

    check_valid_until = field_validator("valid_until", mode="before")(_date_only)


class InvoiceCreate(CamelModel):
    customer_id: Optional[str] = None
    invoice_number: Optional[str] = None
    line_items: List[LineItemIn] = Field(default_factory=list)
    subtotal: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    tax_rate: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    status: Optional[str] = None
    notes: Optional[str] = None
    payment_method: Optional[str] = None
    payment_terms: Optional[str] = None
    due_date: Optional[date] = None

    check_blank_customer = field_validator("customer_id", mode="before")(_blank_to_none)
    check_due_date = field_validator("due_date", mode="before")(_date_only)


class InvoiceUpdate(CamelModel):
    id: Optional[str] = None
    customer_id: Optional[str] = None
    line_items: Optional[List[LineItemIn]] = None
    subtotal: Optional[Decimal] = None
    discount_amount: Optional[Decimal] = None
    tax_rate: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    total: Optional[Decimal] = None
    status: Optional[str] = None
    notes: Optional[str] = None
    payment_method: Optional[str] = None
    payment_terms: Optional[str] = None
    due_date: Optional[date] = None

    check_due_date = field_validator("due_date", mode="before")(_date_only)


# --- Orders ---

class OrderItemIn(CamelModel):
    product_id: Optional[str] = None
    name: str = ""
    quantity: int = 1
    specifications: Optional[Dict[str, Any]] = None
    width: Optional[Decimal] = None
    height: Optional[Decimal] = None
    unit_price: Decimal = Decimal("0")
    total_price: Decimal = Decimal("0")

    check_blank_product = field_validator("product_id", mode="before")(_blank_to_none)


class AssigneeIn(CamelModel):
    user_id: str
    role: Optional[str] = None


class OrderCreate(CamelModel):
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    agent_id: Optional[str] = None
    department_id: Optional[str] = None
    assigned_to: Optional[str] = None
    assigned_by: Optional[str] = None
    assignees: List[AssigneeIn] = Field(default_factory=list)
    items: List[OrderItemIn] = Field(default_factory=list)
    status: Optional[str] = None
    priority: Optional[str] = None
    subtotal: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    tax_rate: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    shipping_amount: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    payment_method: Optional[str] = None
    delivery_method: Optional[str] = None
    notes: Optional[str] = None
    due_date: Optional[datetime] = None

    check_blank_due = field_validator("due_date", mode="before")(_blank_to_none)
    check_blank_email = field_validator("customer_email", "customer_name", mode="before")(_blank_to_none)


class HistoryEntryIn(CamelModel):
    action: Optional[str] = None
    notes: Optional[str] = None


class OrderUpdate(CamelModel):
    """Partial order edit; only fields present in the payload are written."""
    customer_id: Optional[str] = None
    agent_id: Optional[str] = None
    department_id: Optional[str] = None
    assigned_to: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    subtotal: Optional[Decimal] = None
    discount_amount: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    shipping_amount: Optional[Decimal] = None
    total_amount: Optional[Decimal] = None
    paid_amount: Optional[Decimal] = None
    payment_status: Optional[str] = None
    payment_method: Optional[str] = None
    delivery_method: Optional[str] = None
    tracking_number: Optional[str] = None
    courier: Optional[str] = None
    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    due_date: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    assignees: Optional[List[AssigneeIn]] = None
    history_entry: Optional[HistoryEntryIn] = None
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    user_role: Optional[str] = None

    check_blank_dates = field_validator("due_date", "shipped_at", "delivered_at", mode="before")(_blank_to_none)


class AssignmentAdd(CamelModel):
    user_id: Optional[str] = None
    role: str = "production"


class AssignmentRemove(CamelModel):
    user_id: Optional[str] = None


class ShipmentCreate(CamelModel):
    order_id: Optional[str] = None
    courier: Optional[str] = None


# --- Catalog and customers ---

class CustomerCreate(CamelModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company_name: Optional[str] = None
    tax_id: Optional[str] = None
    marketing_opt_in: bool = False


class CustomerUpdate(CamelModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company_name: Optional[str] = None
    tax_id: Optional[str] = None
    marketing_opt_in: Optional[bool] = None


class ProductCreate(CamelModel):
    name: Optional[str] = None
    sku: Optional[str] = None
    description: Optional[str] = None
    base_price: Decimal = Decimal("0")
    stock: int = 0
    track_stock: bool = False
    is_active: bool = True


class ProductUpdate(CamelModel):
    name: Optional[str] = None
    sku: Optional[str] = None
    description: Optional[str] = None
    base_price: Optional[Decimal] = None
    stock: Optional[int] = None
    track_stock: Optional[bool] = None
    is_active: Optional[bool] = None
