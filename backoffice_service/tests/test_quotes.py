from app.models import Invoice, LineItem, Quote

from conftest import ORG_B, session_scope

LINES = [
    {"description": "Flyers A5, 500 pcs", "quantity": 2, "unitPrice": 50.0, "total": 100.0},
    {"description": "Roll-up banner", "quantity": 1, "unitPrice": 100.0, "total": 100.0},
]


def quote_payload(customer_id, **overrides):
    payload = {
        "customerId": customer_id,
        "quoteNumber": "Q-1001",
        "lineItems": LINES,
        "subtotal": 200.0,
        "taxRate": 6.0,
        "taxAmount": 12.0,
        "total": 212.0,
        "notes": "Rush job",
        "validUntil": "2026-11-30",
    }
    payload.update(overrides)
    return payload


def test_requests_without_organization_are_unauthorized(client):
    response = client.get("/api/documents/quotes", headers={"X-Organization-Id": ""})
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_create_requires_customer(client):
    response = client.post("/api/documents/quotes", json={"quoteNumber": "Q-1", "lineItems": []})
    assert response.status_code == 400
    assert response.json() == {"error": "Customer ID is required"}


def test_create_and_fetch_flat_view(client, make_customer):
    customer_id = make_customer()
    created = client.post("/api/documents/quotes", json=quote_payload(customer_id))
    assert created.status_code == 200
    body = created.json()
    assert body["status"] == "Draft"
    assert body["customerName"] == "Ada Lovelace"
    assert body["validUntil"] == "2026-11-30"
    assert len(body["createdDate"]) == 10
    assert body["total"] == 212.0
    assert [item["description"] for item in body["lineItems"]] == ["Flyers A5, 500 pcs", "Roll-up banner"]

    fetched = client.get("/api/documents/quotes", params={"id": body["id"]}).json()
    assert fetched == body


def test_accepting_a_quote_creates_a_matching_draft_invoice(client, make_customer):
    customer_id = make_customer()
    quote = client.post("/api/documents/quotes", json=quote_payload(customer_id)).json()

    response = client.put("/api/documents/quotes", json={"id": quote["id"], "status": "Accepted"})
    assert response.status_code == 200
    assert response.json()["status"] == "Accepted"

    invoices = client.get("/api/documents/invoices").json()
    assert len(invoices) == 1
    invoice = invoices[0]
    assert invoice["quoteId"] == quote["id"]
    assert invoice["status"] == "Draft"
    assert invoice["total"] == 212.0
    assert invoice["customerId"] == customer_id
    assert invoice["dueDate"] == "2026-11-30"
    assert invoice["invoiceNumber"].startswith("INV-")
    assert invoice["notes"] == "Converted from Quote Q-1001. Rush job"
    strip = lambda items: [(i["description"], i["quantity"], i["unitPrice"], i["total"]) for i in items]
    assert strip(invoice["lineItems"]) == strip(quote["lineItems"])


def test_accepting_twice_does_not_duplicate_the_invoice(client, make_customer, read):
    customer_id = make_customer()
    quote = client.post("/api/documents/quotes", json=quote_payload(customer_id)).json()

    client.put("/api/documents/quotes", json={"id": quote["id"], "status": "Accepted"})
    client.put("/api/documents/quotes", json={"id": quote["id"], "status": "Accepted"})

    count = read(lambda s: s.query(Invoice).filter(Invoice.quote_id == quote["id"]).count())
    assert count == 1


def test_status_patch_keeps_line_items(client, make_customer):
    customer_id = make_customer()
    quote = client.post("/api/documents/quotes", json=quote_payload(customer_id)).json()

    updated = client.put("/api/documents/quotes", json={"id": quote["id"], "status": "Sent"}).json()
    assert updated["status"] == "Sent"
    assert updated["notes"] == "Rush job"
    assert [i["id"] for i in updated["lineItems"]] == [i["id"] for i in quote["lineItems"]]


def test_line_item_edit_keeps_ids_of_retained_lines(client, make_customer, read):
    customer_id = make_customer()
    quote = client.post("/api/documents/quotes", json=quote_payload(customer_id)).json()
    kept, dropped = quote["lineItems"]

    edited = client.put(
        "/api/documents/quotes",
        json={
            "id": quote["id"],
            "lineItems": [
                dict(kept, quantity=3, total=150.0),
                {"description": "Lamination", "quantity": 1, "unitPrice": 20.0, "total": 20.0},
            ],
            "subtotal": 170.0,
            "taxAmount": 10.2,
            "total": 180.2,
        },
    ).json()

    assert edited["total"] == 180.2
    first, second = edited["lineItems"]
    assert first["id"] == kept["id"]
    assert first["quantity"] == 3
    assert second["description"] == "Lamination"
    assert second["id"] not in (kept["id"], dropped["id"])
    remaining = read(lambda s: s.query(LineItem).filter(LineItem.id == dropped["id"]).count())
    assert remaining == 0


def test_invalid_status_is_rejected(client, make_customer):
    quote = client.post("/api/documents/quotes", json=quote_payload(make_customer())).json()
    response = client.put("/api/documents/quotes", json={"id": quote["id"], "status": "Approved"})
    assert response.status_code == 400


def test_update_unknown_quote_is_not_found(client):
    response = client.put("/api/documents/quotes", json={"id": "missing", "status": "Sent"})
    assert response.status_code == 404
    assert response.json() == {"error": "Quote not found"}


def test_search_matches_number_and_customer_name(client, make_customer):
    ada = make_customer()
    grace = make_customer(full_name="Grace Hopper", email="grace@example.com")
    client.post("/api/documents/quotes", json=quote_payload(ada, quoteNumber="Q-ALPHA"))
    client.post("/api/documents/quotes", json=quote_payload(grace, quoteNumber="Q-BETA"))

    by_number = client.get("/api/documents/quotes", params={"search": "alpha"}).json()
    by_customer = client.get("/api/documents/quotes", params={"search": "hopper"}).json()
    assert [q["quoteNumber"] for q in by_number] == ["Q-ALPHA"]
    assert [q["quoteNumber"] for q in by_customer] == ["Q-BETA"]


def test_quotes_are_scoped_to_the_organization(client, make_customer):
    quote = client.post("/api/documents/quotes", json=quote_payload(make_customer())).json()
    other = {"X-Organization-Id": ORG_B}

    assert client.get("/api/documents/quotes", headers=other).json() == []
    assert client.get("/api/documents/quotes", params={"id": quote["id"]}, headers=other).status_code == 404


def test_delete_single_and_bulk(client, make_customer, read):
    customer_id = make_customer()
    ids = [
        client.post("/api/documents/quotes", json=quote_payload(customer_id, quoteNumber=f"Q-{n}")).json()["id"]
        for n in range(3)
    ]

    single = client.delete("/api/documents/quotes", params={"id": ids[0]})
    assert single.json() == {"success": True}

    bulk = client.request("DELETE", "/api/documents/quotes", json={"ids": ids[1:]})
    assert bulk.json() == {"success": True, "count": 2}
    assert read(lambda s: s.query(Quote).count()) == 0
    assert read(lambda s: s.query(LineItem).count()) == 0


def test_delete_without_id_is_rejected(client):
    response = client.delete("/api/documents/quotes")
    assert response.status_code == 400
    assert response.json() == {"error": "Quote ID or IDs required"}


def test_strict_policy_rolls_back_acceptance_when_conversion_fails(client, make_customer, monkeypatch):
    from app.errors import CascadeError
    from app.services import quotes as quote_service

    def broken(*args, **kwargs):
        raise CascadeError("numbering unavailable")

    monkeypatch.setattr(quote_service, "next_quote_invoice_number", broken)
    quote = client.post("/api/documents/quotes", json=quote_payload(make_customer())).json()

    response = client.put("/api/documents/quotes", json={"id": quote["id"], "status": "Accepted"})
    assert response.status_code == 500
    current = client.get("/api/documents/quotes", params={"id": quote["id"]}).json()
    assert current["status"] == "Draft"


def test_best_effort_policy_keeps_acceptance_when_conversion_fails(
    client, make_customer, monkeypatch, set_policy
):
    from app.errors import CascadeError
    from app.services import quotes as quote_service

    def broken(*args, **kwargs):
        raise CascadeError("numbering unavailable")

    set_policy("best_effort")
    monkeypatch.setattr(quote_service, "next_quote_invoice_number", broken)
    quote = client.post("/api/documents/quotes", json=quote_payload(make_customer())).json()

    response = client.put("/api/documents/quotes", json={"id": quote["id"], "status": "Accepted"})
    assert response.status_code == 200
    assert response.json()["status"] == "Accepted"
    assert client.get("/api/documents/invoices").json() == []


def test_best_effort_policy_keeps_acceptance_on_unexpected_errors(
    client, make_customer, monkeypatch, set_policy
):
    from app.services import quotes as quote_service

    def broken(*args, **kwargs):
        raise ValueError("counter backend unavailable")

    set_policy("best_effort")
    monkeypatch.setattr(quote_service, "next_quote_invoice_number", broken)
    quote = client.post("/api/documents/quotes", json=quote_payload(make_customer())).json()

    response = client.put("/api/documents/quotes", json={"id": quote["id"], "status": "Accepted"})
    assert response.status_code == 200
    current = client.get("/api/documents/quotes", params={"id": quote["id"]}).json()
    assert current["status"] == "Accepted"


def test_second_invoice_for_a_quote_is_a_conflict(client, make_customer, read):
    quote = client.post("/api/documents/quotes", json=quote_payload(make_customer())).json()
    with session_scope() as session:
        # Invisible to the tenant-scoped existence check, still bound by the unique quote_id.
        session.add(Invoice(organization_id=ORG_B, invoice_number="INV-CLASH", quote_id=quote["id"]))

    response = client.put("/api/documents/quotes", json={"id": quote["id"], "status": "Accepted"})

    assert response.status_code == 409
    assert read(lambda s: s.get(Quote, quote["id"]).status) == "Draft"
    assert read(lambda s: s.query(Invoice).count()) == 1


def test_line_products_from_other_organizations_are_not_linked(client, make_customer, make_product):
    own = make_product(name="Flyers")
    foreign = make_product(name="Foreign Flyers", organization_id=ORG_B)
    lines = [dict(LINES[0], productId=own), dict(LINES[1], productId=foreign)]

    quote = client.post("/api/documents/quotes", json=quote_payload(make_customer(), lineItems=lines))

    assert quote.status_code == 200
    assert [line["productId"] for line in quote.json()["lineItems"]] == [own, None]
