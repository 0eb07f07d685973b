# sdk/client.py
import requests
import httpx
from typing import Any, Dict, List, Optional


class StoreClient:
    def __init__(self, base_url: str = "http://localhost:10000", timeout: int = 10):
        self.base_url = base_url.rstrip("/")
        self.session = requests.Session()
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self.base_url}/api{path}"

    def health(self):
        r = self.session.get(self._url("/health"), timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    # Products
    def list_products(self, category: Optional[str] = None, limit: Optional[int] = None, offset: Optional[int] = None):
        params = {}
        if category:
            params["category"] = category
        if limit is not None:
            params["limit"] = limit
        if offset is not None:
            params["offset"] = offset
        r = self.session.get(self._url("/products"), params=params, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def get_product(self, product_id: int):
        r = self.session.get(self._url(f"/products/{product_id}"), timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    # Orders
    @staticmethod
    def _order_payload(customer_name: str, address: str, items: List[Dict[str, Any]],
                       email: Optional[str] = None, phone: Optional[str] = None) -> Dict[str, Any]:
        payload = {"customerName": customer_name, "address": address, "items": items}
        if email:
            payload["customerEmail"] = email
        if phone:
            payload["customerPhone"] = phone
        return payload

    def place_order(self, customer_name: str, address: str, items: List[Dict[str, Any]],
                    email: Optional[str] = None, phone: Optional[str] = None):
        payload = self._order_payload(customer_name, address, items, email, phone)
        r = self.session.post(self._url("/orders"), json=payload, timeout=self.timeout)
        # 400 carries {"error": ...}; hand it back so callers can show it
        if r.status_code == 400:
            return r.json()
        r.raise_for_status()
        return r.json()

    async def place_order_async(self, customer_name: str, address: str, items: List[Dict[str, Any]],
                                email: Optional[str] = None, phone: Optional[str] = None):
        payload = self._order_payload(customer_name, address, items, email, phone)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.post(self._url("/orders"), json=payload)
            return r

    def get_order(self, order_id: int):
        r = self.session.get(self._url(f"/orders/{order_id}"), timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def test_email(self):
        r = self.session.get(self._url("/test-email"), timeout=self.timeout)
        return r.json()
