# tests/test_concurrency.py
import asyncio

import httpx

from storefront.main import create_app
from conftest import make_settings


async def _order_task(ac, name):
    return await ac.post("/api/orders", json={
        "customerName": name,
        "address": "X",
        "items": [{"productId": 3, "quantity": 100}],
    })


def test_concurrent_orders_for_same_product(tmp_path, mailer):
    # seeded catalog: product 3 is the shirt with stock 100
    app = create_app(make_settings(tmp_path, SEED_ON_STARTUP=True), mailer)

    async def scenario():
        async with app.router.lifespan_context(app):
            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
                results = await asyncio.gather(*[_order_task(ac, f"buyer-{n}") for n in range(5)])
                product = (await ac.get("/api/products/3")).json()
                orders = [(await ac.get(f"/api/orders/{r.json()['orderId']}")).json() for r in results]
        return results, product, orders

    results, product, orders = asyncio.run(scenario())

    # every order commits independently; stock is never decremented, so the
    # product is oversold five times over
    assert [r.status_code for r in results] == [200] * 5
    assert len({r.json()["orderId"] for r in results}) == 5
    assert product["stock"] == 100
    assert all(o["total"] == 89900 for o in orders)
