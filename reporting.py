"""
Report assembly for the admin back office: loads the current orders, products
and overrides, runs the aggregator and shapes the result for the API, the MCP
tools and the CSV export.
"""
import copy
import csv
import hashlib
import io
import json
import logging
import os
import threading
from datetime import date
from typing import Dict, List, Optional
from utils.file_manager import read_config, data_path
from utils.money import paise_to_rupees, format_percent, format_inr
from models.orders import list_orders
from models.products import list_products
from models.overrides import OverrideStore
from models.pnl import aggregate_pnl, sort_daily, compute_totals, PLATFORM_FEE_RATE

LOG = logging.getLogger(__name__)

CSV_HEADERS = [
    "Date",
    "Revenue (INR)",
    "COGS (INR)",
    "Fees (INR)",
    "Shipping (INR)",
    "Net Profit (INR)",
    "Margin (%)",
]

_CACHE_LOCK = threading.Lock()
_CACHE = {"key": None, "report": None}


def _fingerprint(*inputs) -> str:
    blob = json.dumps(inputs, sort_keys=True, default=str)
    return hashlib.sha256(blob.encode("utf-8")).hexdigest()

def clear_cache():
    with _CACHE_LOCK:
        _CACHE["key"] = None
        _CACHE["report"] = None

def build_report(store: Optional[OverrideStore] = None) -> Dict:
    """
    Aggregate the current data. The result is memoized on a hash of every
    input, recomputed on each call, so any write invalidates it.
    """
    store = store or OverrideStore()
    orders = list_orders()
    products = list_products()
    shipping = store.shipping_overrides()
    fees = store.fee_overrides()
    fee_rate = float(read_config().get("platform_fee_rate", PLATFORM_FEE_RATE))

    key = _fingerprint(orders, products, shipping, fees, fee_rate)
    with _CACHE_LOCK:
        if _CACHE["key"] == key:
            return copy.deepcopy(_CACHE["report"])

    report = aggregate_pnl(orders, products, shipping, fees, fee_rate=fee_rate)
    LOG.debug("Recomputed P&L for %d orders across %d days", len(orders), len(report["daily"]))
    with _CACHE_LOCK:
        _CACHE["key"] = key
        _CACHE["report"] = copy.deepcopy(report)
    return report

def empty_report() -> Dict:
    return {"daily": [], "totals": compute_totals([])}

def sorted_report(descending: bool = True, store: Optional[OverrideStore] = None) -> Dict:
    report = build_report(store)
    report["daily"] = sort_daily(report["daily"], descending=descending)
    return report

def day_report(day: str, store: Optional[OverrideStore] = None) -> Optional[Dict]:
    for d in build_report(store)["daily"]:
        if d["date"] == day:
            return d
    return None

def display_totals(totals: Dict) -> Dict:
    """Summary-card strings: revenue, total expenses, net profit and margin."""
    return {
        "revenue": format_inr(totals["revenue"]),
        "expenses": format_inr(totals["cogs"] + totals["fees"] + totals["shipping"]),
        "net_profit": format_inr(totals["net_profit"]),
        "margin": format_percent(totals["margin"], places=1),
    }

def ledger_rows(daily: List[Dict]) -> List[Dict]:
    """One row per product per day, newest day first; day totals ride on the first row."""
    rows = []
    for day in sort_daily(daily, descending=True):
        for index, item in enumerate(day["items"]):
            rows.append({
                "id": f"{day['date']}_{item['product_id']}_{index}",
                "date": day["date"],
                "is_first_of_day": index == 0,
                "item": item,
                "day": {k: v for k, v in day.items() if k != "items"},
            })
    return rows

def pnl_csv(daily: List[Dict]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for day in daily:
        writer.writerow([
            day["date"],
            paise_to_rupees(day["revenue"]),
            paise_to_rupees(day["cogs"]),
            paise_to_rupees(day["fees"]),
            paise_to_rupees(day["shipping"]),
            paise_to_rupees(day["net_profit"]),
            format_percent(day["margin"]),
        ])
    return buf.getvalue()

def export_pnl_csv(store: Optional[OverrideStore] = None) -> str:
    """Write today's P&L export into the configured exports directory and return its path."""
    cfg = read_config()
    directory = cfg.get("export", {}).get("directory", "exports")
    path = data_path(os.path.join(directory, f"pnl-export-{date.today().isoformat()}.csv"))
    os.makedirs(os.path.dirname(path), exist_ok=True)
    report = sorted_report(descending=True, store=store)
    with open(path, "w", newline="", encoding="utf-8") as f:
        f.write(pnl_csv(report["daily"]))
    LOG.info("Exported P&L for %d days to %s", len(report["daily"]), path)
    return path
