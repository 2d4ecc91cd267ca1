from typing import Dict, List, Optional
from utils.dates import parse_timestamp
from utils.file_manager import read_json, write_json

STATUSES = ("pending", "confirmed", "shipped", "delivered", "cancelled")

def _orders() -> List[Dict]:
    return read_json("orders.json")

def _save_orders(o):
    write_json("orders.json", o)

def list_orders() -> List[Dict]:
    return _orders()

def get_order(order_id: str) -> Optional[Dict]:
    for o in _orders():
        if o.get("id") == order_id:
            return o
    return None

def validate_order(order: Dict):
    if not order.get("id"):
        raise ValueError("Order id is required")
    if order.get("status") not in STATUSES:
        raise ValueError(f"Unknown status: {order.get('status')}")
    try:
        parse_timestamp(order.get("created_at"))
    except ValueError as e:
        raise ValueError(f"Invalid created_at: {order.get('created_at')!r}") from e
    items = order.get("items")
    if not isinstance(items, list):
        raise ValueError("Order items must be a list")
    for item in items:
        product = item.get("product") or {}
        if not product.get("id"):
            raise ValueError("Every order item needs a product id")
        qty = item.get("quantity")
        if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
            raise ValueError(f"Quantity must be a positive integer, got {qty!r}")
        price = product.get("price_in_paise", 0)
        if isinstance(price, bool) or not isinstance(price, int):
            raise ValueError(f"price_in_paise must be an integer, got {price!r}")

def add_order(order: Dict) -> Dict:
    validate_order(order)
    orders = _orders()
    if any(o.get("id") == order["id"] for o in orders):
        raise ValueError(f"Duplicate order id: {order['id']}")
    record = dict(order)
    record.setdefault("total_in_paise", sum(
        int(i["product"].get("price_in_paise", 0)) * i["quantity"] for i in order["items"]
    ))
    orders.append(record)
    _save_orders(orders)
    return record

def set_order_status(order_id: str, status: str) -> Dict:
    if status not in STATUSES:
        raise ValueError(f"Unknown status: {status}")
    orders = _orders()
    for o in orders:
        if o.get("id") == order_id:
            o["status"] = status
            _save_orders(orders)
            return o
    raise ValueError(f"Unknown order: {order_id}")
