import json
import math
import re
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .models import Order, Product

CENT = Decimal("0.01")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_IMAGE_SPLIT = re.compile(r"[|,]")
# ids are 32-bit INTEGER primary keys
MAX_ID = 2**31 - 1


class CamelModel(BaseModel):
    # snake_case in Python, camelCase on the wire
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------
# Request schemas
# ---------------------------
class OrderIn(CamelModel):
    # Deliberately loose: OrderService decides what is missing or malformed
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    address: Optional[str] = None
    items: Optional[List[Any]] = None


# ---------------------------
# Response schemas
# ---------------------------
class ProductOut(CamelModel):
    id: int
    name: str
    description: str
    price: float
    original_price: Optional[float] = None
    category: str
    image: str
    images: List[str]
    stock: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LineItem(CamelModel):
    product_id: int
    name: str
    unit_price: float
    quantity: int
    line_total: float


class OrderOut(CamelModel):
    id: int
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    address: str
    items: List[LineItem]
    total: float
    status: str
    created_at: Optional[datetime] = None


class OrderCreated(CamelModel):
    success: bool = True
    order_id: int


class HealthOut(CamelModel):
    status: str
    message: str
    timestamp: datetime
    version: str
    uptime: float
    email_configured: bool
    email_provider: Optional[str] = None


# ---------------------------
# Helpers
# ---------------------------
def money(value: Any) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def coerce_quantity(value: Any) -> int:
    """Best-effort positive quantity; anything unusable counts as 1."""
    if isinstance(value, bool) or value is None:
        return 1
    if isinstance(value, int):
        qty = value
    elif isinstance(value, float):
        qty = int(value) if math.isfinite(value) else 0
    elif isinstance(value, str):
        m = _LEADING_INT.match(value)
        qty = int(m.group(1)) if m else 0
    else:
        qty = 0
    return qty if qty > 0 else 1


def parse_id(value: Any) -> Optional[int]:
    """Integer id from a path segment or payload field, None when it cannot be one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, int) and 1 <= value <= MAX_ID:
        return value
    return None


def split_images(image: Optional[str]) -> List[str]:
    if not image:
        return []
    return [part.strip() for part in _IMAGE_SPLIT.split(image) if part.strip()]


def dump_items(items: List[LineItem]) -> str:
    return json.dumps([item.model_dump(by_alias=True) for item in items])


def load_items(raw: str) -> List[LineItem]:
    return [LineItem.model_validate(item) for item in json.loads(raw)]


def product_to_out(p: Product) -> ProductOut:
    return ProductOut(
        id=p.id,
        name=p.name,
        description=p.description,
        price=float(p.price),
        original_price=float(p.original_price) if p.original_price is not None else None,
        category=p.category,
        image=p.image,
        images=split_images(p.image),
        stock=p.stock,
        created_at=p.created_at,
        updated_at=p.updated_at,
    )


def order_to_out(o: Order) -> OrderOut:
    return OrderOut(
        id=o.id,
        customer_name=o.customer_name,
        customer_email=o.customer_email,
        customer_phone=o.customer_phone,
        address=o.address,
        items=load_items(o.items),
        total=float(o.total),
        status=o.status,
        created_at=o.created_at,
    )
