import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base  # Import the Base class from our database setup

MONEY = Numeric(12, 2)
ZERO = Decimal("0")


def new_id():
    return str(uuid.uuid4())


def utcnow():
    return datetime.now(timezone.utc)


# Monotonic counters behind globally unique document numbers.
class DocumentCounter(Base):
    __tablename__ = "document_counters"

    name = Column(String(50), primary_key=True)  # e.g. "order", "invoice-2026"
    value = Column(Integer, nullable=False, default=0)  # Last number handed out.


class Customer(Base):
    __tablename__ = "customers"
    __table_args__ = (UniqueConstraint("organization_id", "email", name="uq_customer_org_email"),)

    id = Column(String(36), primary_key=True, default=new_id)
    organization_id = Column(String(36), nullable=False, index=True)
    full_name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50))
    company_name = Column(String(200))
    tax_id = Column(String(50))
    marketing_opt_in = Column(Boolean, nullable=False, default=False)
    order_count = Column(Integer, nullable=False, default=0)
    total_spent = Column(MONEY, nullable=False, default=ZERO)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=new_id)
    organization_id = Column(String(36), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    sku = Column(String(100))
    description = Column(Text)
    base_price = Column(MONEY, nullable=False, default=ZERO)
    stock = Column(Integer, nullable=False, default=0)  # Units on hand.
    track_stock = Column(Boolean, nullable=False, default=False)  # Orders enforce and decrement stock.
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Agent(Base):
    __tablename__ = "agents"

    id = Column(String(36), primary_key=True, default=new_id)
    organization_id = Column(String(36), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255))
    total_orders = Column(Integer, nullable=False, default=0)


class Department(Base):
    __tablename__ = "departments"

    id = Column(String(36), primary_key=True, default=new_id)
    organization_id = Column(String(36), nullable=False, index=True)
    name = Column(String(100), nullable=False)


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    organization_id = Column(String(36), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255))
    avatar_url = Column(String(500))
    workflow_role = Column(String(50))


class Quote(Base):
    __tablename__ = "quotes"

    id = Column(String(36), primary_key=True, default=new_id)
    organization_id = Column(String(36), nullable=False, index=True)
    quote_number = Column(String(50))  # Business-assigned, not unique.
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=False)
    status = Column(String(20), nullable=False, default="Draft")  # Draft, Sent, Accepted, Rejected
    subtotal = Column(MONEY, nullable=False, default=ZERO)
    tax_rate = Column(MONEY, nullable=False, default=ZERO)
    tax_amount = Column(MONEY, nullable=False, default=ZERO)
    total = Column(MONEY, nullable=False, default=ZERO)
    notes = Column(Text)
    terms = Column(Text)
    valid_until = Column(Date)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    customer = relationship("Customer")
    line_items = relationship(
        "LineItem", back_populates="quote", cascade="all, delete-orphan", order_by="LineItem.position"
    )


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(String(36), primary_key=True, default=new_id)
    organization_id = Column(String(36), nullable=False, index=True)
    invoice_number = Column(String(50))
    customer_id = Column(String(36), ForeignKey("customers.id"))
    # At most one invoice may be converted from a given quote.
    quote_id = Column(String(36), ForeignKey("quotes.id", ondelete="SET NULL"), unique=True)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="SET NULL"), index=True)
    status = Column(String(20), nullable=False, default="Draft")  # Draft, Sent, Paid, Overdue
    subtotal = Column(MONEY, nullable=False, default=ZERO)
    discount_amount = Column(MONEY, nullable=False, default=ZERO)
    tax_rate = Column(MONEY, nullable=False, default=ZERO)
    tax_amount = Column(MONEY, nullable=False, default=ZERO)
    total = Column(MONEY, nullable=False, default=ZERO)
    notes = Column(Text)
    payment_method = Column(String(50))
    payment_terms = Column(Text)
    due_date = Column(Date)
    paid_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    customer = relationship("Customer")
    quote = relationship("Quote")
    order = relationship("Order", back_populates="invoices")
    line_items = relationship(
        "LineItem", back_populates="invoice", cascade="all, delete-orphan", order_by="LineItem.position"
    )


# Shared child row of quotes and invoices; exactly one parent is set.
class LineItem(Base):
    __tablename__ = "line_items"

    id = Column(String(36), primary_key=True, default=new_id)
    quote_id = Column(String(36), ForeignKey("quotes.id", ondelete="CASCADE"), index=True)
    invoice_id = Column(String(36), ForeignKey("invoices.id", ondelete="CASCADE"), index=True)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="SET NULL"))
    position = Column(Integer, nullable=False, default=0)  # Order within the document.
    description = Column(Text, nullable=False, default="")
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(MONEY, nullable=False, default=ZERO)
    total = Column(MONEY, nullable=False, default=ZERO)
    notes = Column(Text)

    quote = relationship("Quote", back_populates="line_items")
    invoice = relationship("Invoice", back_populates="line_items")


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_id)
    organization_id = Column(String(36), nullable=False, index=True)
    order_number = Column(String(20), nullable=False, unique=True)  # ORD-000001
    customer_id = Column(String(36), ForeignKey("customers.id", ondelete="SET NULL"))
    agent_id = Column(String(36), ForeignKey("agents.id", ondelete="SET NULL"))
    department_id = Column(String(36), ForeignKey("departments.id", ondelete="SET NULL"))
    assigned_to = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"))
    status = Column(String(50), nullable=False, default="new_order")  # Free-form production stage.
    priority = Column(String(20), nullable=False, default="normal")
    subtotal = Column(MONEY, nullable=False, default=ZERO)
    discount_amount = Column(MONEY, nullable=False, default=ZERO)
    tax_amount = Column(MONEY, nullable=False, default=ZERO)
    shipping_amount = Column(MONEY, nullable=False, default=ZERO)
    total_amount = Column(MONEY, nullable=False, default=ZERO)
    paid_amount = Column(MONEY, nullable=False, default=ZERO)
    payment_status = Column(String(20), nullable=False, default="unpaid")
    payment_method = Column(String(20))
    delivery_method = Column(String(50))
    tracking_number = Column(String(100))
    courier = Column(String(100))
    notes = Column(Text)
    internal_notes = Column(Text)
    due_date = Column(DateTime(timezone=True))
    shipped_at = Column(DateTime(timezone=True))
    delivered_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    customer = relationship("Customer")
    agent = relationship("Agent")
    department = relationship("Department")
    assignee = relationship("User")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    assignments = relationship(
        "OrderAssignment",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderAssignment.assigned_at",
    )
    activity_logs = relationship(
        "ActivityLog",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="ActivityLog.timestamp.desc()",
    )
    attachments = relationship(
        "Attachment",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="Attachment.uploaded_at.desc()",
    )
    proofs = relationship(
        "Proof", back_populates="order", cascade="all, delete-orphan", order_by="Proof.version.desc()"
    )
    invoices = relationship("Invoice", back_populates="order", passive_deletes=True)


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="SET NULL"))
    name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    specifications = Column(JSON)
    width = Column(Numeric(10, 2))
    height = Column(Numeric(10, 2))
    unit_price = Column(MONEY, nullable=False, default=ZERO)
    total_price = Column(MONEY, nullable=False, default=ZERO)

    order = relationship("Order", back_populates="items")


class OrderAssignment(Base):
    __tablename__ = "order_assignments"
    __table_args__ = (UniqueConstraint("order_id", "user_id", name="uq_assignment_order_user"),)

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(String(50), nullable=False, default="production")
    assigned_by = Column(String(36))
    assigned_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    order = relationship("Order", back_populates="assignments")
    user = relationship("User")


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    action = Column(String(100), nullable=False)
    from_status = Column(String(50))
    to_status = Column(String(50))
    user_id = Column(String(36))
    user_name = Column(String(200), nullable=False, default="System")
    user_role = Column(String(50), nullable=False, default="system")
    notes = Column(Text)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    order = relationship("Order", back_populates="activity_logs")


# Artwork files and proofs are uploaded elsewhere; only their metadata lives here.
class Attachment(Base):
    __tablename__ = "attachments"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    file_url = Column(String(1000), nullable=False)
    uploaded_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    order = relationship("Order", back_populates="attachments")


class Proof(Base):
    __tablename__ = "proofs"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    version = Column(Integer, nullable=False, default=1)
    file_url = Column(String(1000), nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    order = relationship("Order", back_populates="proofs")
