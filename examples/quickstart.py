#!/usr/bin/env python3
"""
StockSync Quickstart — stock, sale, correction in one script.

Seeds the catalogue → adds a product → rings up a sale → edits stock.
Run `stocksync watch --role owner` in another shell to see every step
arrive live.

Run with: python examples/quickstart.py
Server must be running: stocksync serve
"""

import uuid

from _common import create_client, ensure_catalogue


def main():
    run_id = uuid.uuid4().hex[:4]
    client = create_client()

    # ── Catalogue ─────────────────────────────────────────────────
    print("\n1. Loading catalogue...")
    inventory = ensure_catalogue(client)
    print(f"   {len(inventory)} products in stock")

    # ── Add a product (broadcasts inventory:updated add) ─────────
    print("\n2. Adding a product...")
    resp = client.post("/inventory", json={
        "name": f"Binding Wire {run_id}",
        "unit": "roll",
        "quantity": 40,
        "minStock": 10,
        "price": 120.0,
        "gst": 18,
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"
    wire = resp.json()
    print(f"   {wire['name']} (id {wire['id']}, {wire['quantity']} {wire['unit']})")

    # ── Ring up a sale (bill:created, then inventory:refresh) ─────
    print("\n3. Creating a bill for 3 rolls...")
    subtotal = 3 * wire["price"]
    gst = round(subtotal * 0.18, 2)
    resp = client.post("/bills", json={
        "customer": {"name": "Ravi", "phone": "98450 00000"},
        "items": [{"id": wire["id"], "name": wire["name"], "quantity": 3, "price": wire["price"]}],
        "subtotal": subtotal,
        "gstBreakdown": {"18": gst},
        "totalGST": gst,
        "total": subtotal + gst,
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"
    bill = resp.json()
    print(f"   Bill #{bill['id']} for ₹{bill['total']:.2f}")

    stock = client.get(f"/inventory/{wire['id']}").json()["quantity"]
    print(f"   {wire['name']} now has {stock} left")

    # ── Overselling is refused ───────────────────────────────────
    print("\n4. Trying to sell 1000 rolls...")
    resp = client.post("/bills", json={
        "customer": {"name": "Bulk Buyer"},
        "items": [{"id": wire["id"], "quantity": 1000}],
        "total": 0,
    })
    print(f"   {resp.status_code}: {resp.json()['detail']}")

    # ── Stock correction (inventory:updated update) ──────────────
    print("\n5. Restocking...")
    resp = client.put(f"/inventory/{wire['id']}", json={"quantity": stock + 50})
    print(f"   {wire['name']}: {resp.json()['quantity']} in stock")

    # ── Clean up (inventory:updated delete) ──────────────────────
    client.delete(f"/inventory/{wire['id']}")
    print("\nDone.")


if __name__ == "__main__":
    main()
