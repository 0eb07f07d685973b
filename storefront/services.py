from typing import Any, Dict, List, Optional

import structlog
from fastapi import BackgroundTasks
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from .core import (
    LineItem, OrderIn, OrderOut, ProductOut,
    coerce_quantity, dump_items, money, order_to_out, parse_id, product_to_out,
)
from .database import Database
from .errors import InvalidPayload, NotFound, ProductNotFound, StorageError
from .models import Order, Product
from .notifications import Mailer

# This file holds the catalog and order logic behind the API endpoints.

logger = structlog.get_logger(__name__)

DEFAULT_PAGE_SIZE = 12


def _to_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class CatalogService:
    def __init__(self, db: Database):
        self.db = db

    async def list_products(self, category: Optional[str] = None, limit: Any = None,
                            offset: Any = None) -> List[ProductOut]:
        limit = max(1, _to_int(limit, DEFAULT_PAGE_SIZE) or DEFAULT_PAGE_SIZE)
        offset = max(0, _to_int(offset, 0))

        stmt = select(Product).order_by(Product.id).limit(limit).offset(offset)
        if category:
            stmt = stmt.where(Product.category == category)
        async with self.db.session() as session:
            rows = (await session.scalars(stmt)).all()
        logger.debug("Listed products", category=category, limit=limit, offset=offset, found=len(rows))
        return [product_to_out(p) for p in rows]

    async def get_product(self, product_id: Any) -> ProductOut:
        pid = parse_id(product_id)
        p = None
        if pid is not None:
            async with self.db.session() as session:
                p = await session.get(Product, pid)
        if p is None:
            raise NotFound("Not found")
        return product_to_out(p)

    async def count_products(self) -> int:
        async with self.db.session() as session:
            return await session.scalar(select(func.count()).select_from(Product)) or 0


class OrderService:
    def __init__(self, db: Database, mailer: Mailer):
        self.db = db
        self.mailer = mailer

    @staticmethod
    def _validate(payload: OrderIn) -> List[Dict[str, Any]]:
        name = (payload.customer_name or "").strip()
        address = (payload.address or "").strip()
        items = payload.items
        if not name or not address or not items or not all(isinstance(i, dict) for i in items):
            raise InvalidPayload("Invalid order payload")
        return items

    async def create_order(self, payload: OrderIn, tasks: Optional[BackgroundTasks] = None) -> OrderOut:
        """Validate, price from the catalog, persist atomically, then notify.

        Notifications run after the response when `tasks` is given, inline
        otherwise; in both cases their failures never reach the caller.
        """
        items = self._validate(payload)

        try:
            async with self.db.session() as session:
                async with session.begin():
                    ids = [parse_id(i.get("productId", i.get("product_id"))) for i in items]
                    wanted = {pid for pid in ids if pid is not None}
                    found = {}
                    if wanted:
                        rows = await session.scalars(select(Product).where(Product.id.in_(wanted)))
                        found = {p.id: p for p in rows}

                    line_items = []
                    total = money(0)
                    for raw, pid in zip(items, ids):
                        product = found.get(pid)
                        if product is None:
                            raise ProductNotFound(raw.get("productId", raw.get("product_id")))
                        qty = coerce_quantity(raw.get("quantity"))
                        unit_price = money(product.price)
                        line_total = money(unit_price * qty)
                        total += line_total
                        line_items.append(LineItem(
                            product_id=product.id,
                            name=product.name,
                            unit_price=float(unit_price),
                            quantity=qty,
                            line_total=float(line_total),
                        ))

                    order = Order(
                        customer_name=payload.customer_name.strip(),
                        customer_email=(payload.customer_email or "").strip() or None,
                        customer_phone=(payload.customer_phone or "").strip() or None,
                        address=payload.address.strip(),
                        items=dump_items(line_items),
                        total=total,
                        status="pending",
                    )
                    session.add(order)
                    await session.flush()
                created = order_to_out(order)
        except SQLAlchemyError as e:
            logger.exception("Order transaction failed")
            raise StorageError("Server error") from e

        # Stock is not decremented here; concurrent orders can oversell.
        logger.info("Order created", order_id=created.id, total=created.total, items=len(created.items))

        if tasks is not None:
            tasks.add_task(self.mailer.notify_order_placed, created)
        else:
            await self.mailer.notify_order_placed(created)
        return created

    async def get_order(self, order_id: Any) -> OrderOut:
        oid = parse_id(order_id)
        order = None
        if oid is not None:
            async with self.db.session() as session:
                order = await session.get(Order, oid)
        if order is None:
            raise NotFound("Order not found")
        return order_to_out(order)
