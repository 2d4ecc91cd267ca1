import math
from numbers import Real
from typing import Dict, List, Optional
from utils.file_manager import read_json, write_json
from utils.money import rupees_to_paise

def _products() -> List[Dict]:
    return read_json("products.json")

def _save_products(p):
    write_json("products.json", p)

def list_products() -> List[Dict]:
    return _products()

def get_product(product_id: str) -> Optional[Dict]:
    for p in _products():
        if p.get("id") == product_id:
            return p
    return None

def upsert_product(product: Dict) -> Dict:
    if not product.get("id"):
        raise ValueError("Product id is required")
    products = _products()
    for i, p in enumerate(products):
        if p.get("id") == product["id"]:
            products[i] = {**p, **product}
            _save_products(products)
            return products[i]
    record = {"images": [], "cost_price_in_paise": 0, **product}
    products.append(record)
    _save_products(products)
    return record

def set_cost_price(product_id: str, cost_in_rupees: float) -> Dict:
    """
    Update a product's unit cost. This is the live cost used for every past
    order too, so the P&L for historical days changes with it.
    """
    if isinstance(cost_in_rupees, bool) or not isinstance(cost_in_rupees, Real) or not math.isfinite(cost_in_rupees):
        raise ValueError(f"Cost must be a finite number, got {cost_in_rupees!r}")
    products = _products()
    for p in products:
        if p.get("id") == product_id:
            p["cost_price_in_paise"] = rupees_to_paise(cost_in_rupees)
            _save_products(products)
            return p
    raise ValueError(f"Unknown product: {product_id}")
