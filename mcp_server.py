"""
Local MCP server for the storefront P&L.

This implements a minimal Model Context Protocol (MCP) server using FastMCP
that exposes the daily profit & loss ledger and the manual overrides that feed
it. The server reads the same JSON files in the `data/` directory as the
Flask admin API and returns MCP-compliant content arrays.
"""
import json
import logging
from typing import Any, Dict

from fastmcp import FastMCP

from utils.file_manager import ensure_defaults
from models.overrides import OverrideStore
from models.products import set_cost_price
from reporting import sorted_report, day_report, display_totals, pnl_csv, export_pnl_csv

LOG = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

server_instructions = """
This MCP server provides access to the storefront's daily profit & loss
ledger. It can summarise revenue, cost of goods, fees, shipping and margin per
day, and record manual fee and shipping corrections (in rupees) for a date.
"""

def _content(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {"content": [{"type": "text", "text": json.dumps(payload)}]}

def _parse_args(arg: str) -> Dict[str, Any]:
    """Decode a tool's JSON argument; anything but an object is rejected."""
    data = json.loads(arg) if arg else {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data

def summary_payload() -> Dict[str, Any]:
    report = sorted_report(descending=True)
    report["display_totals"] = display_totals(report["totals"])
    return report

def override_payload(kind: str, arg: str) -> Dict[str, Any]:
    try:
        data = _parse_args(arg)
        day, amount = data.get("date"), data.get("amount")
        store = OverrideStore()
        if kind == "shipping":
            store.set_shipping_override(day, amount)
        else:
            store.set_fee_override(day, amount)
    except ValueError as e:
        return {"error": str(e)}
    return {"date": day, "shipping" if kind == "shipping" else "fees": amount}

def cost_payload(arg: str) -> Dict[str, Any]:
    try:
        data = _parse_args(arg)
        product = set_cost_price(data.get("product_id"), data.get("cost"))
    except ValueError as e:
        return {"error": str(e)}
    return {"product": product}

def create_server() -> FastMCP:
    mcp = FastMCP(name="Storefront P&L MCP", instructions=server_instructions)

    @mcp.tool()
    async def pnl_summary() -> Dict[str, Any]:
        """
        Return the full P&L: totals plus one entry per day, newest first.

        Money values are integer paise; `margin` is a percentage.

        Returns:
            MCP content array with JSON:
            {"daily": [...], "totals": {...}, "display_totals": {...}}

        Edge cases:
            - With no qualifying orders `daily` is empty and totals are zero.
        """
        return _content(summary_payload())

    @mcp.tool()
    async def pnl_day(date: str) -> Dict[str, Any]:
        """
        Return the P&L for one calendar date (YYYY-MM-DD), including the
        per-product rows.

        Edge cases:
            - A date without qualifying orders returns {"date": date, "day": null}.
        """
        return _content({"date": date, "day": day_report(date)})

    @mcp.tool()
    async def set_shipping_override(arg: str) -> Dict[str, Any]:
        """
        Record the shipping cost for a date, in rupees.

        The `arg` parameter is JSON like {"date": "2024-03-01", "amount": 120}.
        Returns the stored value or an error payload.
        """
        return _content(override_payload("shipping", arg))

    @mcp.tool()
    async def set_fee_override(arg: str) -> Dict[str, Any]:
        """
        Replace the computed platform fees for a date with a manual amount in
        rupees.

        The `arg` parameter is JSON like {"date": "2024-03-01", "amount": 10}.
        Returns the stored value or an error payload.
        """
        return _content(override_payload("fee", arg))

    @mcp.tool()
    async def set_product_cost(arg: str) -> Dict[str, Any]:
        """
        Update a product's unit cost in rupees, e.g. {"product_id": "x", "cost": 40}.

        The cost is live: every past day that sold the product is recomputed
        with the new value.
        """
        return _content(cost_payload(arg))

    @mcp.tool()
    async def export_pnl(arg: str = None) -> Dict[str, Any]:
        """
        Export the P&L as CSV.

        With {"write": true} the export is written to the exports directory
        and the path returned; otherwise the CSV text is returned inline.
        """
        try:
            data = _parse_args(arg)
        except ValueError:
            data = {}
        if data.get("write"):
            return _content({"path": export_pnl_csv()})
        return _content({"csv": pnl_csv(sorted_report(descending=True)["daily"])})

    return mcp


def main():
    ensure_defaults()
    server = create_server()
    LOG.info("Starting local MCP server on 0.0.0.0:8000 (HTTP)")
    server.run(transport="http", host="0.0.0.0", port=8000, path="/mcp")


if __name__ == "__main__":
    main()
