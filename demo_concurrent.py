import asyncio
import os

from sdk.client import StoreClient


async def simulate_purchase(client, name, product_id, qty):
    r = await client.place_order_async(name, "Demo address", [{"productId": product_id, "quantity": qty}])
    body = r.json()
    if r.status_code == 200 and body.get("success"):
        print(f"✅ {name} placed order #{body['orderId']} for {qty} units")
    else:
        print(f"❌ {name} order failed ({r.status_code}): {body.get('error')}")


async def main():
    c = StoreClient(base_url=os.getenv("STOREFRONT_URL", "http://127.0.0.1:10000"))

    products = c.list_products(limit=1)
    if not products:
        print("Catalog is empty; nothing to order.")
        return
    product = products[0]
    print(f"\n🖥️  Ordering product: {product['name']} (stock {product['stock']})")

    # Each buyer asks for the whole stock. Stock is never decremented by the
    # order service, so every order succeeds: overselling is possible.
    qty = product["stock"]
    print("\n⚡ Simulating concurrent purchases...")
    await asyncio.gather(*[
        simulate_purchase(c, f"buyer-{n}", product["id"], qty) for n in range(1, 4)
    ])

    print("\n📦 Product after orders:", c.get_product(product["id"]))


if __name__ == "__main__":
    asyncio.run(main())
