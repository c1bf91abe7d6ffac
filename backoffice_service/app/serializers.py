"""Shape ORM rows into the JSON views returned by the API.

Quotes and invoices use a flat view with ``YYYY-MM-DD`` dates; orders,
customers and products are returned with ISO timestamps and nested relations.
Money is always a JSON number.
"""

from decimal import Decimal


def money(value):
    if value is None:
        return 0.0
    return float(value)


def optional_number(value):
    if value is None:
        return None
    return float(value) if isinstance(value, Decimal) else value


def day(value):
    """Calendar date as ``YYYY-MM-DD``, or an empty string."""
    if value is None:
        return ""
    return value.strftime("%Y-%m-%d")


def timestamp(value):
    if value is None:
        return None
    return value.isoformat()


def line_item_view(item):
    return {
        "id": item.id,
        "description": item.description,
        "quantity": item.quantity,
        "unitPrice": money(item.unit_price),
        "total": money(item.total),
        "productId": item.product_id,
    }


def quote_view(quote):
    customer = quote.customer
    return {
        "id": quote.id,
        "quoteNumber": quote.quote_number,
        "customerId": quote.customer_id,
        "customerName": customer.full_name if customer else "Unknown Customer",
        "customerEmail": customer.email if customer else "",
        "lineItems": [line_item_view(item) for item in quote.line_items],
        "subtotal": money(quote.subtotal),
        "taxRate": money(quote.tax_rate),
        "taxAmount": money(quote.tax_amount),
        "total": money(quote.total),
        "status": quote.status,
        "createdDate": day(quote.created_at),
        "validUntil": day(quote.valid_until),
        "notes": quote.notes,
        "terms": quote.terms,
    }


def invoice_view(invoice):
    customer = invoice.customer
    return {
        "id": invoice.id,
        "invoiceNumber": invoice.invoice_number,
        "customerId": invoice.customer_id,
        "customerName": customer.full_name if customer else "Unknown",
        "customerEmail": customer.email if customer else "",
        "quoteId": invoice.quote_id,
        "orderId": invoice.order_id,
        "lineItems": [line_item_view(item) for item in invoice.line_items],
        "subtotal": money(invoice.subtotal),
        "discountAmount": money(invoice.discount_amount),
        "taxRate": money(invoice.tax_rate),
        "taxAmount": money(invoice.tax_amount),
        "total": money(invoice.total),
        "status": invoice.status,
        "dueDate": day(invoice.due_date),
        "createdDate": day(invoice.created_at),
        "paidAt": timestamp(invoice.paid_at),
        "notes": invoice.notes,
        "paymentMethod": invoice.payment_method,
        "paymentTerms": invoice.payment_terms,
    }


def customer_view(customer):
    if customer is None:
        return None
    return {
        "id": customer.id,
        "organizationId": customer.organization_id,
        "fullName": customer.full_name,
        "email": customer.email,
        "phone": customer.phone,
        "companyName": customer.company_name,
        "taxId": customer.tax_id,
        "marketingOptIn": customer.marketing_opt_in,
        "orderCount": customer.order_count,
        "totalSpent": money(customer.total_spent),
        "createdAt": timestamp(customer.created_at),
    }


def product_view(product):
    return {
        "id": product.id,
        "organizationId": product.organization_id,
        "name": product.name,
        "sku": product.sku,
        "description": product.description,
        "basePrice": money(product.base_price),
        "stock": product.stock,
        "trackStock": product.track_stock,
        "isActive": product.is_active,
        "createdAt": timestamp(product.created_at),
    }


def _agent_view(agent):
    if agent is None:
        return None
    return {"id": agent.id, "name": agent.name, "email": agent.email, "totalOrders": agent.total_orders}


def _department_view(department):
    if department is None:
        return None
    return {"id": department.id, "name": department.name}


def user_summary(user):
    if user is None:
        return None
    return {
        "id": user.id,
        "name": user.name,
        "avatarUrl": user.avatar_url,
        "workflowRole": user.workflow_role,
    }


def assignment_view(assignment):
    return {
        "id": assignment.id,
        "orderId": assignment.order_id,
        "userId": assignment.user_id,
        "role": assignment.role,
        "assignedBy": assignment.assigned_by,
        "assignedAt": timestamp(assignment.assigned_at),
        "user": user_summary(assignment.user),
    }


def order_item_view(item):
    return {
        "id": item.id,
        "productId": item.product_id,
        "name": item.name,
        "quantity": item.quantity,
        "specifications": item.specifications,
        "width": optional_number(item.width),
        "height": optional_number(item.height),
        "unitPrice": money(item.unit_price),
        "totalPrice": money(item.total_price),
    }


def activity_view(entry):
    return {
        "id": entry.id,
        "action": entry.action,
        "fromStatus": entry.from_status,
        "toStatus": entry.to_status,
        "userId": entry.user_id,
        "userName": entry.user_name,
        "userRole": entry.user_role,
        "notes": entry.notes,
        "timestamp": timestamp(entry.timestamp),
    }


def order_summary(order):
    """Order columns without relations."""
    return {
        "id": order.id,
        "organizationId": order.organization_id,
        "orderNumber": order.order_number,
        "customerId": order.customer_id,
        "agentId": order.agent_id,
        "departmentId": order.department_id,
        "assignedTo": order.assigned_to,
        "status": order.status,
        "priority": order.priority,
        "subtotal": money(order.subtotal),
        "discountAmount": money(order.discount_amount),
        "taxAmount": money(order.tax_amount),
        "shippingAmount": money(order.shipping_amount),
        "totalAmount": money(order.total_amount),
        "paidAmount": money(order.paid_amount),
        "paymentStatus": order.payment_status,
        "paymentMethod": order.payment_method,
        "deliveryMethod": order.delivery_method,
        "trackingNumber": order.tracking_number,
        "courier": order.courier,
        "notes": order.notes,
        "internalNotes": order.internal_notes,
        "dueDate": timestamp(order.due_date),
        "shippedAt": timestamp(order.shipped_at),
        "deliveredAt": timestamp(order.delivered_at),
        "createdAt": timestamp(order.created_at),
        "updatedAt": timestamp(order.updated_at),
    }


def order_view(order, activity_limit=10):
    view = order_summary(order)
    view.update(
        {
            "customer": customer_view(order.customer),
            "agent": _agent_view(order.agent),
            "department": _department_view(order.department),
            "assignee": user_summary(order.assignee),
            "assignments": [assignment_view(a) for a in order.assignments],
            "items": [order_item_view(item) for item in order.items],
            "attachments": [
                {
                    "id": a.id,
                    "fileName": a.file_name,
                    "fileUrl": a.file_url,
                    "uploadedAt": timestamp(a.uploaded_at),
                }
                for a in order.attachments
            ],
            "proofs": [
                {
                    "id": p.id,
                    "version": p.version,
                    "fileUrl": p.file_url,
                    "status": p.status,
                    "createdAt": timestamp(p.created_at),
                }
                for p in order.proofs
            ],
            "activityLogs": [activity_view(entry) for entry in order.activity_logs[:activity_limit]],
        }
    )
    return view


def paginated(data, page, limit, total):
    return {
        "data": data,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": -(-total // limit) if limit > 0 else 0,
        },
    }
