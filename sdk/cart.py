# sdk/cart.py
import json
from pathlib import Path
from typing import Any, Dict, List, Union

CART_KEY = "ecom_cart_v1"


class LocalCart:
    """Cart kept on the client in a small JSON key/value file.

    Prices stored here are for display only; the server reprices every order.
    """

    def __init__(self, path: Union[str, Path] = ".storefront_cart.json"):
        self.path = Path(path)

    def _read_store(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            return json.loads(self.path.read_text(encoding="utf-8")) or {}
        except json.JSONDecodeError:
            return {}

    def load(self) -> List[Dict[str, Any]]:
        return list(self._read_store().get(CART_KEY, []))

    def save(self, cart: List[Dict[str, Any]]) -> None:
        store = self._read_store()
        store[CART_KEY] = cart
        self.path.write_text(json.dumps(store, indent=2), encoding="utf-8")

    def add(self, product_id: int, name: str, price: float, qty: int = 1) -> List[Dict[str, Any]]:
        cart = self.load()
        for item in cart:
            if item["productId"] == product_id:
                item["quantity"] += qty
                break
        else:
            cart.append({"productId": product_id, "name": name, "price": price, "quantity": qty})
        self.save(cart)
        return cart

    def remove(self, product_id: int) -> List[Dict[str, Any]]:
        cart = [i for i in self.load() if i["productId"] != product_id]
        self.save(cart)
        return cart

    def clear(self) -> None:
        store = self._read_store()
        store.pop(CART_KEY, None)
        self.path.write_text(json.dumps(store, indent=2), encoding="utf-8")

    def count(self) -> int:
        return sum(i["quantity"] for i in self.load())

    def total(self) -> float:
        return sum(i["price"] * i["quantity"] for i in self.load())

    def order_items(self) -> List[Dict[str, int]]:
        return [{"productId": i["productId"], "quantity": i["quantity"]} for i in self.load()]
