from dataclasses import replace

from app import config
from app.models import Customer, Invoice, Order, OrderAssignment, OrderItem, Product

from conftest import ORG_B


def order_payload(**overrides):
    payload = {
        "customerName": "Walk-in Client",
        "items": [],
        "subtotal": 100.0,
        "taxRate": 6.0,
        "taxAmount": 6.0,
        "totalAmount": 106.0,
        "paymentMethod": "cash",
    }
    payload.update(overrides)
    return payload


def item(product_id=None, quantity=1, name="Business Cards", **extra):
    line = {"productId": product_id, "name": name, "quantity": quantity, "unitPrice": 10.0, "totalPrice": 10.0 * quantity}
    line.update(extra)
    return line


def test_create_order_runs_every_intake_step(client, make_product, make_agent, read):
    product_id = make_product(stock=10)
    agent_id = make_agent()

    response = client.post(
        "/api/orders",
        json=order_payload(
            agentId=agent_id,
            items=[item(product_id, quantity=4, specifications={"paper": "350gsm", "finish": "matte"})],
        ),
    )
    assert response.status_code == 201
    order = response.json()
    assert order["orderNumber"] == "ORD-000001"
    assert order["status"] == "new_order"
    assert order["items"][0]["productId"] == product_id
    assert order["agent"]["totalOrders"] == 1

    customer = order["customer"]
    assert customer["fullName"] == "Walk-in Client"
    assert customer["email"].startswith("walkin-") and customer["email"].endswith("@temp.local")
    assert customer["orderCount"] == 1
    assert customer["totalSpent"] == 106.0

    assert read(lambda s: s.get(Product, product_id).stock) == 6

    invoice = read(lambda s: s.query(Invoice).one())
    assert invoice.invoice_number == "INV-000001"
    assert invoice.status == "Draft"
    assert invoice.order_id == order["id"]
    assert invoice.total == 106
    line = read(lambda s: s.query(Invoice).one().line_items[0])
    assert line.description == "Business Cards"
    assert line.quantity == 4
    assert '"paper": "350gsm"' in line.notes


def test_existing_customer_is_matched_by_email(client, make_customer, read):
    customer_id = make_customer(email="ada@example.com", order_count=2)

    order = client.post(
        "/api/orders", json=order_payload(customerName="Ada L.", customerEmail="ada@example.com")
    ).json()

    assert order["customerId"] == customer_id
    assert read(lambda s: s.query(Customer).count()) == 1
    assert read(lambda s: s.get(Customer, customer_id).order_count) == 3


def test_insufficient_stock_leaves_nothing_behind(client, make_product, read):
    product_id = make_product(name="Canvas Print", stock=3)

    response = client.post("/api/orders", json=order_payload(items=[item(product_id, quantity=5, name="Canvas")]))

    assert response.status_code == 500
    assert response.json() == {"error": 'Insufficient stock for product "Canvas Print". Available: 3, Requested: 5'}
    assert read(lambda s: s.get(Product, product_id).stock) == 3
    assert read(lambda s: s.query(Order).count()) == 0
    assert read(lambda s: s.query(Invoice).count()) == 0
    assert read(lambda s: s.query(Customer).count()) == 0


def test_second_item_short_on_stock_restores_the_first(client, make_product, read):
    plenty = make_product(name="Flyers", stock=50)
    scarce = make_product(name="Banners", stock=1)

    response = client.post("/api/orders", json=order_payload(items=[item(plenty, 10), item(scarce, 2)]))

    assert response.status_code == 500
    assert read(lambda s: s.get(Product, plenty).stock) == 50


def test_untracked_stock_is_not_decremented(client, make_product, read):
    product_id = make_product(stock=0, track_stock=False)

    response = client.post("/api/orders", json=order_payload(items=[item(product_id, quantity=3)]))

    assert response.status_code == 201
    assert read(lambda s: s.get(Product, product_id).stock) == 0


def test_unknown_product_is_kept_without_a_link(client, make_product, read):
    foreign = make_product(organization_id=ORG_B, stock=1)

    response = client.post(
        "/api/orders",
        json=order_payload(items=[item(foreign, quantity=5), item("not-a-uuid", name="Custom sign")]),
    )

    assert response.status_code == 201
    assert [i["productId"] for i in response.json()["items"]] == [None, None]
    assert read(lambda s: s.get(Product, foreign).stock) == 1


def test_unknown_agent_is_rejected(client):
    response = client.post(
        "/api/orders", json=order_payload(agentId="3f2b8c1e-4d5a-4b6c-8d7e-9f0a1b2c3d4e")
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Agent not found"}


def test_assignees_are_capped(client, make_user, read):
    users = [make_user(name=f"Operator {n}") for n in range(12)]

    order = client.post(
        "/api/orders",
        json=order_payload(assignees=[{"userId": u} for u in users], assignedBy=users[0]),
    ).json()

    assert len(order["assignments"]) == 10
    assert {a["userId"] for a in order["assignments"]} == set(users[:10])
    assert all(a["role"] == "production" for a in order["assignments"])
    assert read(lambda s: s.query(OrderAssignment).count()) == 10


def test_order_numbers_increase(client):
    numbers = [client.post("/api/orders", json=order_payload()).json()["orderNumber"] for _ in range(3)]
    assert numbers == ["ORD-000001", "ORD-000002", "ORD-000003"]


def test_list_is_paginated_and_filtered(client, make_department):
    department_id = make_department()
    for n in range(3):
        client.post("/api/orders", json=order_payload(customerName=f"Client {n}", priority="normal"))
    client.post(
        "/api/orders", json=order_payload(customerName="Urgent Client", priority="urgent", departmentId=department_id)
    )

    page = client.get("/api/orders", params={"page": 2, "limit": 3}).json()
    assert page["pagination"] == {"page": 2, "limit": 3, "total": 4, "totalPages": 2}
    assert len(page["data"]) == 1

    urgent = client.get("/api/orders", params={"priority": "urgent"}).json()
    assert [o["customer"]["fullName"] for o in urgent["data"]] == ["Urgent Client"]
    by_department = client.get("/api/orders", params={"departmentId": department_id}).json()
    assert by_department["pagination"]["total"] == 1
    by_search = client.get("/api/orders", params={"search": "client 1"}).json()
    assert [o["customer"]["fullName"] for o in by_search["data"]] == ["Client 1"]


def test_list_without_organization_is_unauthorized(client):
    response = client.get("/api/orders", headers={"X-Organization-Id": ""})
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized or no organization"}


def test_super_admin_lists_every_organization(client):
    client.post("/api/orders", json=order_payload())
    client.post("/api/orders", json=order_payload(), headers={"X-Organization-Id": ORG_B})

    own = client.get("/api/orders").json()
    everything = client.get("/api/orders", headers={"X-Super-Admin": "true"}).json()

    assert own["pagination"]["total"] == 1
    assert everything["pagination"]["total"] == 2


def test_bulk_delete_removes_exactly_the_given_orders(client, read):
    ids = [client.post("/api/orders", json=order_payload()).json()["id"] for _ in range(3)]

    response = client.request("DELETE", "/api/orders", json={"ids": ids[:2]})

    assert response.json() == {"success": True, "count": 2}
    assert read(lambda s: [o.id for o in s.query(Order).all()]) == [ids[2]]
    assert read(lambda s: s.query(OrderItem).filter(OrderItem.order_id.in_(ids[:2])).count()) == 0
    # Invoices outlive their order.
    assert read(lambda s: s.query(Invoice).filter(Invoice.order_id.is_(None)).count()) == 2


def test_bulk_delete_requires_ids(client):
    empty = client.request("DELETE", "/api/orders", json={"ids": []})
    missing = client.delete("/api/orders")
    for response in (empty, missing):
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid or empty IDs array"}


def test_bulk_delete_ignores_other_organizations(client, read):
    theirs = client.post("/api/orders", json=order_payload(), headers={"X-Organization-Id": ORG_B}).json()

    response = client.request("DELETE", "/api/orders", json={"ids": [theirs["id"]]})

    assert response.json() == {"success": True, "count": 0}
    assert read(lambda s: s.query(Order).count()) == 1


def test_get_single_order(client):
    created = client.post("/api/orders", json=order_payload()).json()

    assert client.get(f"/api/orders/{created['id']}").json()["orderNumber"] == created["orderNumber"]
    assert client.get("/api/orders/missing").status_code == 404
    assert client.get(f"/api/orders/{created['id']}", headers={"X-Organization-Id": ORG_B}).status_code == 404


def test_update_records_activity(client, make_user):
    user_id = make_user()
    order = client.post("/api/orders", json=order_payload()).json()

    updated = client.put(
        f"/api/orders/{order['id']}",
        json={
            "status": "in_production",
            "assignedTo": user_id,
            "historyEntry": {"action": "Proof Approved", "notes": "Customer signed off"},
            "userName": "Sam",
            "userRole": "manager",
        },
    ).json()

    assert updated["status"] == "in_production"
    assert updated["assignee"]["id"] == user_id
    actions = {entry["action"]: entry for entry in updated["activityLogs"]}
    assert actions["Status Changed"]["fromStatus"] == "new_order"
    assert actions["Status Changed"]["toStatus"] == "in_production"
    assert actions["Assignee Changed"]["notes"] == f"Assigned to user ID: {user_id}"
    assert actions["Proof Approved"]["userName"] == "Sam"


def test_update_truncates_payment_method(client):
    order = client.post("/api/orders", json=order_payload()).json()

    updated = client.put(
        f"/api/orders/{order['id']}", json={"paymentMethod": "International wire transfer (SWIFT)"}
    ).json()

    assert updated["paymentMethod"] == "International wire t"


def test_marking_order_paid_pays_its_invoices(client, read):
    order = client.post("/api/orders", json=order_payload()).json()

    response = client.put(f"/api/orders/{order['id']}", json={"paymentStatus": "paid", "paymentMethod": "card"})

    assert response.status_code == 200
    assert response.json()["paymentStatus"] == "paid"
    invoice = read(lambda s: s.query(Invoice).filter(Invoice.order_id == order["id"]).one())
    assert invoice.status == "Paid"
    assert invoice.paid_at is not None
    assert invoice.payment_method == "card"


def test_replacing_assignees(client, make_user):
    first, second, third = (make_user(name=name) for name in ("A", "B", "C"))
    order = client.post(
        "/api/orders", json=order_payload(assignees=[{"userId": first}, {"userId": second}])
    ).json()

    updated = client.put(
        f"/api/orders/{order['id']}",
        json={"assignees": [{"userId": second}, {"userId": third, "role": "design"}]},
    ).json()

    roles = {a["userId"]: a["role"] for a in updated["assignments"]}
    assert roles == {second: "production", third: "design"}
    assert any(entry["action"] == "Assignments Updated" for entry in updated["activityLogs"])


def test_assignment_endpoints(client, make_user):
    user_id = make_user()
    order = client.post("/api/orders", json=order_payload()).json()
    url = f"/api/orders/{order['id']}/assignments"

    added = client.post(url, json={"userId": user_id, "role": "finishing"})
    assert added.status_code == 200
    assert [(a["userId"], a["role"]) for a in added.json()["assignments"]] == [(user_id, "finishing")]

    duplicate = client.post(url, json={"userId": user_id})
    assert duplicate.status_code == 409
    assert duplicate.json() == {"error": "User already assigned"}

    assert client.post(url, json={}).status_code == 400
    assert client.post(url, json={"userId": "nobody"}).status_code == 400

    removed = client.request("DELETE", url, json={"userId": user_id})
    assert removed.json() == {"success": True, "assignments": []}
    again = client.request("DELETE", url, json={"userId": user_id})
    assert again.status_code == 404


def test_assignment_limit(client, make_user, monkeypatch):
    monkeypatch.setattr(config, "settings", replace(config.settings, max_order_assignees=1))
    first, second = make_user(name="One"), make_user(name="Two")
    order = client.post("/api/orders", json=order_payload(assignees=[{"userId": first}])).json()

    response = client.post(f"/api/orders/{order['id']}/assignments", json={"userId": second})

    assert response.status_code == 400
    assert response.json() == {"error": "An order can have at most 1 assignees"}


def test_delete_single_order(client, read):
    order = client.post("/api/orders", json=order_payload()).json()

    assert client.delete(f"/api/orders/{order['id']}").json() == {"success": True}
    assert client.delete(f"/api/orders/{order['id']}").status_code == 404
    assert read(lambda s: s.query(Order).count()) == 0


def test_explicit_null_leaves_required_columns_alone(client):
    order = client.post("/api/orders", json=order_payload(notes="Call first")).json()

    response = client.put(
        f"/api/orders/{order['id']}", json={"status": None, "totalAmount": None, "notes": None}
    )

    assert response.status_code == 200
    body = response.json()
    assert (body["status"], body["totalAmount"], body["notes"]) == ("new_order", 106.0, None)
