#!/usr/bin/env python
import os
from rich import print

from sdk.client import StoreClient


def main():
    c = StoreClient(base_url=os.getenv("STOREFRONT_URL", "http://127.0.0.1:10000"))

    # -----------------------------
    # Health
    # -----------------------------
    print("Checking server health...")
    print(c.health())

    # -----------------------------
    # Browse catalog
    # -----------------------------
    print("\nListing products...")
    products = c.list_products()
    print(products)

    print("\nListing products in category 'Men' (2 per page)...")
    print(c.list_products(category="Men", limit=2))

    if not products:
        print("[red]Catalog is empty; start the server with SEED_ON_STARTUP=true[/red]")
        return

    first = products[0]
    print(f"\nFetching product {first['id']}...")
    print(c.get_product(first["id"]))

    # -----------------------------
    # Place order (client prices are ignored by the server)
    # -----------------------------
    print("\nPlacing order...")
    created = c.place_order(
        "Asha Verma",
        "12 MG Road, Bengaluru",
        [{"productId": first["id"], "quantity": 2, "price": 1}],
        email="asha@example.com",
    )
    print(created)

    print("\nFetching order back...")
    print(c.get_order(created["orderId"]))

    # -----------------------------
    # Rejections
    # -----------------------------
    print("\nOrdering an unknown product...")
    print(c.place_order("Asha Verma", "12 MG Road", [{"productId": 999, "quantity": 1}]))

    print("\nOrdering with no items...")
    print(c.place_order("Asha Verma", "12 MG Road", []))


if __name__ == "__main__":
    main()
