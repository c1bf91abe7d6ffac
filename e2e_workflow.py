#!/usr/bin/env python3
"""
Back-office E2E workflow checks against a running service

Run:
  uvicorn app.main:app --app-dir backoffice_service --port 8000
  python e2e_workflow.py

Optional env:
  BACKOFFICE_BASE=http://localhost:8000
  ORGANIZATION_ID=e2e-org-<random>
  DEBUG=1
"""

from __future__ import annotations

import os
import sys
import time
import uuid
from dataclasses import dataclass
from typing import Optional, List, Dict, Any, Tuple

import requests


# =========================
# Simple CLI UI (ANSI)
# =========================

class Style:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"
    GRAY = "\033[90m"

    BOX_LINE = "─"
    BOX_VERT = "│"
    BOX_TL = "┌"
    BOX_TR = "┐"
    BOX_BL = "└"
    BOX_BR = "┘"


def banner():
    title = " Print Shop Back-Office - E2E Workflow Checks "
    line = Style.BOX_LINE * len(title)
    print()
    print(f"{Style.CYAN}{Style.BOX_TL}{line}{Style.BOX_TR}{Style.RESET}")
    print(
        f"{Style.CYAN}{Style.BOX_VERT}{Style.RESET}"
        f"{Style.BOLD}{title}{Style.RESET}"
        f"{Style.CYAN}{Style.BOX_VERT}{Style.RESET}"
    )
    print(f"{Style.CYAN}{Style.BOX_BL}{line}{Style.BOX_BR}{Style.RESET}")
    print()


def section_title(text: str):
    line = Style.BOX_LINE * (len(text) + 2)
    print(f"\n{Style.BLUE}{Style.BOX_TL}{line}{Style.BOX_TR}{Style.RESET}")
    print(
        f"{Style.BLUE}{Style.BOX_VERT} "
        f"{Style.BOLD}{text}{Style.RESET}"
        f"{Style.BLUE} {Style.BOX_VERT}{Style.RESET}"
    )
    print(f"{Style.BLUE}{Style.BOX_BL}{line}{Style.BOX_BR}{Style.RESET}")


def info(msg: str):
    print(f"{Style.CYAN}ℹ {msg}{Style.RESET}")


def ok(msg: str):
    print(f"{Style.GREEN}✔ {msg}{Style.RESET}")


def fail(msg: str):
    print(f"{Style.RED}✘ {msg}{Style.RESET}")


# =========================
# Config
# =========================

BACKOFFICE_BASE = os.getenv("BACKOFFICE_BASE", "http://localhost:8000")
# A fresh organization per run keeps reruns independent of earlier data.
ORGANIZATION_ID = os.getenv("ORGANIZATION_ID", f"e2e-org-{uuid.uuid4().hex[:8]}")
DEBUG = os.getenv("DEBUG", "0").strip() in {"1", "true", "True", "YES", "yes"}

HEADERS = {"X-Organization-Id": ORGANIZATION_ID, "X-User-Id": "e2e-runner"}

CUSTOMERS_PATH = "/api/customers"
PRODUCTS_PATH = "/api/products"
QUOTES_PATH = "/api/documents/quotes"
INVOICES_PATH = "/api/documents/invoices"
ORDERS_PATH = "/api/orders"
ORDER_PATH = "/api/orders/{order_id}"

# Test data
INITIAL_STOCK = 10
QUOTE_LINES = [
    {"description": "Flyers A5, 500 pcs", "quantity": 2, "unitPrice": 50.0, "total": 100.0},
    {"description": "Roll-up banner", "quantity": 1, "unitPrice": 100.0, "total": 100.0},
]
QUOTE_TOTAL = 212.0


def debug(msg: str):
    if DEBUG:
        print(f"{Style.GRAY}… {msg}{Style.RESET}")


# =========================
# Models
# =========================

@dataclass
class TestResult:
    name: str
    success: bool
    details: str = ""
    scenario: str = ""


# =========================
# HTTP helpers
# =========================

def http(method: str, path: str, **kwargs) -> requests.Response:
    kwargs.setdefault("timeout", 8)
    kwargs.setdefault("headers", HEADERS)
    url = BACKOFFICE_BASE + path
    debug(f"{method} {url} json={kwargs.get('json')} params={kwargs.get('params')}")
    return requests.request(method, url, **kwargs)


def wait_for_health(base_url: str, service_name: str, timeout: int = 30) -> bool:
    url = f"{base_url}/health"
    start = time.time()
    while time.time() - start < timeout:
        try:
            resp = requests.get(url, timeout=8)
            if resp.status_code == 200:
                ok(f"{service_name} is healthy.")
                return True
        except requests.RequestException as e:
            debug(f"{service_name} not ready: {e}")
        time.sleep(1)
    fail(f"{service_name} did not become healthy in {timeout} seconds.")
    return False


def assert_status(resp: requests.Response, expected: int, ctx: str):
    if resp.status_code != expected:
        raise AssertionError(f"{ctx}: expected HTTP {expected}, got {resp.status_code}, body={resp.text}")


def check(name: str, success: bool, msg: str, scenario: str) -> TestResult:
    (ok if success else fail)(msg)
    return TestResult(name, success, msg, scenario)


# =========================
# API calls
# =========================

def create_customer(tag: str) -> Dict[str, Any]:
    payload = {"fullName": f"E2E Customer {tag}", "email": f"{tag.lower()}-{uuid.uuid4().hex[:6]}@e2e.test"}
    resp = http("POST", CUSTOMERS_PATH, json=payload)
    assert_status(resp, 201, "POST customer")
    return resp.json()


def create_product(stock: int) -> Dict[str, Any]:
    payload = {"name": "E2E Canvas Print", "basePrice": 30.0, "stock": stock, "trackStock": True}
    resp = http("POST", PRODUCTS_PATH, json=payload)
    assert_status(resp, 201, "POST product")
    return resp.json()


def get_product(product_id: str) -> Dict[str, Any]:
    resp = http("GET", f"{PRODUCTS_PATH}/{product_id}")
    assert_status(resp, 200, f"GET product {product_id}")
    return resp.json()


def invoices_for_quote(quote_id: str) -> List[Dict[str, Any]]:
    resp = http("GET", INVOICES_PATH)
    assert_status(resp, 200, "GET invoices")
    return [inv for inv in resp.json() if inv.get("quoteId") == quote_id]


def get_order(order_id: str) -> Dict[str, Any]:
    resp = http("GET", ORDER_PATH.format(order_id=order_id))
    assert_status(resp, 200, f"GET order {order_id}")
    return resp.json()


def order_count() -> int:
    resp = http("GET", ORDERS_PATH, params={"limit": 1})
    assert_status(resp, 200, "GET orders")
    return resp.json()["pagination"]["total"]


# =========================
# Scenarios
# =========================

def scenario_quote_acceptance() -> Tuple[List[TestResult], Optional[str]]:
    scenario = "Scenario 1 - Quote Acceptance Creates Invoice"
    section_title(scenario)
    results: List[TestResult] = []

    try:
        customer = create_customer("Q1")
        payload = {
            "customerId": customer["id"],
            "quoteNumber": "Q-E2E-1",
            "lineItems": QUOTE_LINES,
            "subtotal": 200.0,
            "taxRate": 6.0,
            "taxAmount": 12.0,
            "total": QUOTE_TOTAL,
        }
        info(f"POST {QUOTES_PATH} with {len(QUOTE_LINES)} lines, total={QUOTE_TOTAL}")
        resp = http("POST", QUOTES_PATH, json=payload)
        assert_status(resp, 200, "POST quote")
        quote = resp.json()
        results.append(TestResult("Create Quote", True, f"Quote id={quote['id']}", scenario))

        info("PUT status=Accepted")
        resp = http("PUT", QUOTES_PATH, json={"id": quote["id"], "status": "Accepted"})
        assert_status(resp, 200, "PUT quote Accepted")

        invoices = invoices_for_quote(quote["id"])
        results.append(check("One Invoice Per Quote", len(invoices) == 1, f"Expected 1 invoice, got {len(invoices)}", scenario))
        if len(invoices) != 1:
            return results, None

        invoice = invoices[0]
        lines = [(i["description"], i["quantity"], i["total"]) for i in invoice["lineItems"]]
        expected = [(i["description"], i["quantity"], i["total"]) for i in QUOTE_LINES]
        success = invoice["status"] == "Draft" and invoice["total"] == QUOTE_TOTAL and lines == expected
        results.append(check(
            "Invoice Matches Quote",
            success,
            f"status={invoice['status']}, total={invoice['total']}, lines={lines}",
            scenario,
        ))

        info("PUT status=Accepted again")
        http("PUT", QUOTES_PATH, json={"id": quote["id"], "status": "Accepted"})
        again = invoices_for_quote(quote["id"])
        results.append(check("Re-Accept Is Idempotent", len(again) == 1, f"Invoices after second accept: {len(again)}", scenario))
        return results, invoice["id"]

    except Exception as e:
        fail(f"Exception in quote scenario: {e}")
        results.append(TestResult("Quote Acceptance", False, str(e), scenario))
        return results, None


def scenario_invoice_payment(invoice_id: Optional[str]) -> List[TestResult]:
    scenario = "Scenario 2 - Paid Invoice Creates Order"
    section_title(scenario)
    if invoice_id is None:
        return [TestResult("Invoice Payment Skipped", False, "No invoice from scenario 1.", scenario)]

    results: List[TestResult] = []
    try:
        info(f"PUT {INVOICES_PATH} status=Paid")
        resp = http("PUT", INVOICES_PATH, json={"id": invoice_id, "status": "Paid", "paymentMethod": "card"})
        assert_status(resp, 200, "PUT invoice Paid")
        invoice = resp.json()

        order_id = invoice.get("orderId")
        results.append(check("Invoice Linked To Order", bool(order_id), f"orderId={order_id}", scenario))
        if not order_id:
            return results

        order = get_order(order_id)
        success = order["paymentStatus"] == "paid" and order["paidAmount"] == invoice["total"]
        results.append(check(
            "Order Marked Paid",
            success,
            f"order={order['orderNumber']}, paymentStatus={order['paymentStatus']}, paidAmount={order['paidAmount']}",
            scenario,
        ))
    except Exception as e:
        fail(f"Exception in invoice scenario: {e}")
        results.append(TestResult("Invoice Payment", False, str(e), scenario))
    return results


def scenario_insufficient_stock() -> List[TestResult]:
    scenario = "Scenario 3 - Insufficient Stock"
    section_title(scenario)
    results: List[TestResult] = []

    try:
        product = create_product(INITIAL_STOCK)
        before = order_count()
        payload = {
            "customerName": "E2E Walk-in",
            "items": [{"productId": product["id"], "name": product["name"], "quantity": INITIAL_STOCK + 5}],
            "totalAmount": 450.0,
        }
        info(f"POST {ORDERS_PATH} with quantity={INITIAL_STOCK + 5} against stock={INITIAL_STOCK}")
        resp = http("POST", ORDERS_PATH, json=payload)
        error = resp.json().get("error", "") if resp.headers.get("content-type", "").startswith("application/json") else ""
        results.append(check(
            "Order Rejected",
            resp.status_code == 500 and "Insufficient stock" in error,
            f"HTTP {resp.status_code}: {error or resp.text}",
            scenario,
        ))

        stock = get_product(product["id"])["stock"]
        results.append(check("Stock Unchanged", stock == INITIAL_STOCK, f"Expected stock {INITIAL_STOCK}, got {stock}", scenario))
        after = order_count()
        results.append(check("No Order Created", after == before, f"Orders before={before}, after={after}", scenario))
    except Exception as e:
        fail(f"Exception in stock scenario: {e}")
        results.append(TestResult("Insufficient Stock", False, str(e), scenario))
    return results


# =========================
# Summary
# =========================

def print_results(results: List[TestResult]):
    print(f"\n{Style.BOLD}================ TEST RESULTS ================ {Style.RESET}")
    passed = 0
    per_scenario: Dict[str, Dict[str, int]] = {}

    for r in results:
        icon = "✅" if r.success else "❌"
        color = Style.GREEN if r.success else Style.RED
        print(f"{color}{icon} {r.name}{Style.RESET}")
        if r.details:
            print(f"    {Style.DIM}{r.details}{Style.RESET}")

        if r.success:
            passed += 1

        if r.scenario:
            per_scenario.setdefault(r.scenario, {"total": 0, "passed": 0})
            per_scenario[r.scenario]["total"] += 1
            if r.success:
                per_scenario[r.scenario]["passed"] += 1

    total = len(results)
    failed = total - passed
    print(f"{Style.BOLD}==============================================={Style.RESET}")
    print(f"Total tests: {total}  |  Passed: {Style.GREEN}{passed}{Style.RESET}  |  Failed: {Style.RED}{failed}{Style.RESET}")
    print(f"{Style.BOLD}===============================================\n{Style.RESET}")

    if per_scenario:
        print(f"{Style.BOLD}Scenario breakdown:{Style.RESET}")
        for scen, agg in per_scenario.items():
            t = agg["total"]
            p = agg["passed"]
            f = t - p
            color = Style.GREEN if f == 0 else (Style.YELLOW if p > 0 else Style.RED)
            print(f"  {color}- {scen}: {p}/{t} passed{Style.RESET}")

    if failed > 0:
        print(f"\n{Style.YELLOW}{Style.BOLD}Troubleshooting hints:{Style.RESET}")
        print(f"{Style.YELLOW}- No invoice after accepting: check CASCADE_POLICY and the service log for [Auto-Create].{Style.RESET}")
        print(f"{Style.YELLOW}- No order after payment: look for [Invoice-Sync] errors in the service log.{Style.RESET}")
        print()

    return failed


def main():
    banner()
    info(f"Using organization {ORGANIZATION_ID}")

    if not wait_for_health(BACKOFFICE_BASE, "backoffice_service"):
        sys.exit(1)

    all_results: List[TestResult] = []
    quote_results, invoice_id = scenario_quote_acceptance()
    all_results.extend(quote_results)
    all_results.extend(scenario_invoice_payment(invoice_id))
    all_results.extend(scenario_insufficient_stock())

    failed = print_results(all_results)
    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
