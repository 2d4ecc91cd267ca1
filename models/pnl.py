"""
Profit & loss aggregation over the order history.

The aggregator is a pure function of four inputs: orders, the live product
catalog, and the shipping and fee override maps. It keeps no state between
calls; callers recompute whenever any input changes (see reporting.py for the
memoized wrapper).

All money is integer paise. Override maps are the one exception: they hold
whole rupees and are converted in override_to_paise() when merged.
"""
import math
from numbers import Real
from typing import Dict, Iterable, List, Optional
from utils.dates import calendar_date_of
from utils.money import rupees_to_paise

PLATFORM_FEE_RATE = 0.02
EXCLUDED_STATUSES = ("cancelled", "pending")
MONEY_FIELDS = ("revenue", "cogs", "fees", "shipping", "net_profit")


class InvalidOrderError(ValueError):
    """An order that cannot be bucketed (bad timestamp, quantity or amount)."""


def is_qualifying(order: Dict) -> bool:
    return order.get("status") not in EXCLUDED_STATUSES

def margin(net_profit: int, revenue: int) -> float:
    return (net_profit / revenue) * 100 if revenue > 0 else 0.0

def override_to_paise(amount_in_rupees) -> int:
    # Override maps store rupees; the ledger is paise.
    return rupees_to_paise(amount_in_rupees)

def _whole_paise(value) -> Optional[int]:
    """An int, or a float with no fractional part, as int paise; None otherwise."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None

def _order_amount(order: Dict, value, field: str) -> int:
    if value is None:
        return 0
    paise = _whole_paise(value)
    if paise is None:
        raise InvalidOrderError(f"Order {order.get('id')!r} has a non-integer {field}: {value!r}")
    return paise

def cost_lookup(products: Iterable[Dict]) -> Dict[str, int]:
    """
    Current unit cost per product id. Duplicate ids: last one wins. A cost
    that is not a finite number counts as missing (0).
    """
    costs = {}
    for p in products:
        cost = p.get("cost_price_in_paise")
        if isinstance(cost, bool) or not isinstance(cost, Real) or not math.isfinite(cost):
            cost = 0
        costs[p.get("id")] = int(round(cost))
    return costs

def _order_date(order: Dict) -> str:
    try:
        return calendar_date_of(order.get("created_at"))
    except ValueError as e:
        raise InvalidOrderError(
            f"Order {order.get('id')!r} has an unusable created_at: {order.get('created_at')!r}"
        ) from e

def _quantity(order: Dict, item: Dict) -> int:
    qty = item.get("quantity")
    if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
        raise InvalidOrderError(
            f"Order {order.get('id')!r} has an invalid quantity {qty!r} "
            f"for product {(item.get('product') or {}).get('id')!r}"
        )
    return qty

def _snapshot_image(snapshot: Dict) -> str:
    return snapshot.get("image") or (snapshot.get("images") or [""])[0]

def _empty_bucket(day: str) -> Dict:
    return {"date": day, "revenue": 0, "cogs": 0, "fees": 0, "items": {}}

def bucket_orders(orders: Iterable[Dict], costs: Dict[str, int], fee_rate: float = PLATFORM_FEE_RATE) -> Dict[str, Dict]:
    """
    Fold qualifying orders into per-day buckets.

    Each bucket carries revenue, cogs, the provisional per-order fee sum and
    one item row per product keyed by product id. Costs are always taken from
    `costs`, never from the order snapshot, so editing a product's cost
    changes every past day that sold it.
    """
    buckets: Dict[str, Dict] = {}
    for order in orders:
        if not is_qualifying(order):
            continue
        day = _order_date(order)
        bucket = buckets.get(day)
        if bucket is None:
            bucket = buckets[day] = _empty_bucket(day)

        for item in order.get("items") or []:
            snapshot = item.get("product") or {}
            product_id = snapshot.get("id")
            qty = _quantity(order, item)
            unit_cost = costs.get(product_id, 0)
            item_revenue = _order_amount(order, snapshot.get("price_in_paise"), "price_in_paise") * qty
            item_cost = unit_cost * qty

            bucket["revenue"] += item_revenue
            bucket["cogs"] += item_cost

            row = bucket["items"].get(product_id)
            if row is None:
                bucket["items"][product_id] = {
                    "product_id": product_id,
                    "product_name": snapshot.get("name", ""),
                    "product_image": _snapshot_image(snapshot),
                    "quantity": qty,
                    "revenue": item_revenue,
                    "unit_cost": unit_cost,
                    "total_cost": item_cost,
                    "order_ids": [order.get("id")],
                }
            else:
                row["quantity"] += qty
                row["revenue"] += item_revenue
                row["total_cost"] += item_cost
                row["unit_cost"] = unit_cost
                if order.get("id") not in row["order_ids"]:
                    row["order_ids"].append(order.get("id"))

        total = _order_amount(order, order.get("total_in_paise"), "total_in_paise")
        bucket["fees"] += int(round(total * fee_rate))
    return buckets

def apply_overrides(bucket: Dict, shipping_overrides: Dict, fee_overrides: Dict) -> Dict:
    """Finish one bucket: overlay overrides and derive net profit and margin."""
    day = bucket["date"]
    fees = bucket["fees"]
    if fee_overrides.get(day) is not None:
        fees = override_to_paise(fee_overrides[day])
    shipping = 0
    if shipping_overrides.get(day) is not None:
        shipping = override_to_paise(shipping_overrides[day])

    revenue = bucket["revenue"]
    cogs = bucket["cogs"]
    net_profit = revenue - (cogs + fees + shipping)
    return {
        "date": day,
        "revenue": revenue,
        "cogs": cogs,
        "fees": fees,
        "shipping": shipping,
        "net_profit": net_profit,
        "margin": margin(net_profit, revenue),
        "items": list(bucket["items"].values()),
    }

def compute_totals(daily: Iterable[Dict]) -> Dict:
    totals = {k: 0 for k in MONEY_FIELDS}
    for day in daily:
        for k in MONEY_FIELDS:
            totals[k] += day[k]
    totals["margin"] = margin(totals["net_profit"], totals["revenue"])
    return totals

def aggregate_pnl(orders: Iterable[Dict], products: Iterable[Dict],
                  shipping_overrides: Optional[Dict] = None, fee_overrides: Optional[Dict] = None,
                  fee_rate: float = PLATFORM_FEE_RATE) -> Dict:
    """
    Build the daily ledger and running totals.

    Returns {"daily": [...], "totals": {...}}. `daily` holds one entry per
    date with at least one qualifying order, in no guaranteed order; use
    sort_daily() before presenting or comparing.

    Raises InvalidOrderError for a qualifying order whose created_at cannot be
    parsed, whose item quantity is not a positive integer, or whose price or
    total is not whole paise. Products missing from the catalog, or with a
    non-numeric cost, cost 0.
    """
    buckets = bucket_orders(orders, cost_lookup(products), fee_rate)
    daily = [
        apply_overrides(b, shipping_overrides or {}, fee_overrides or {})
        for b in buckets.values()
    ]
    return {"daily": daily, "totals": compute_totals(daily)}

def sort_daily(daily: Iterable[Dict], descending: bool = True) -> List[Dict]:
    return sorted(daily, key=lambda d: d["date"], reverse=descending)
