import logging
from flask import Flask, Response, jsonify, request
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from utils.file_manager import ensure_defaults, read_json, write_json, reset_data, validate_config, StorageError
from models.orders import list_orders, add_order, set_order_status
from models.products import list_products, set_cost_price
from models.overrides import OverrideStore
from models.pnl import InvalidOrderError
from reporting import sorted_report, ledger_rows, pnl_csv, export_pnl_csv, empty_report, display_totals

LOG = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

ensure_defaults()
app = Flask(__name__)

scheduler = BackgroundScheduler(daemon=True)
def _schedule_job():
    cfg = read_json("config.json")
    export_cfg = cfg.get("export", {})
    for job in scheduler.get_jobs():
        scheduler.remove_job(job.id)
    if bool(export_cfg.get("enabled", False)):
        seconds = int(export_cfg.get("interval_seconds", 3600))
        scheduler.add_job(export_pnl_csv, trigger=IntervalTrigger(seconds=seconds), id="pnl_export", replace_existing=True)
        if not scheduler.running:
            scheduler.start()

_schedule_job()

def _error(message, status=400):
    return jsonify({"ok": False, "error": message}), status

@app.get("/status")
def status():
    cfg = read_json("config.json")
    jobs = scheduler.get_jobs()
    next_run = jobs[0].next_run_time.isoformat() if jobs and jobs[0].next_run_time else None
    return jsonify({
        "config": cfg,
        "scheduler_running": scheduler.running,
        "next_export_time": next_run
    })

# -------- P&L --------
def _safe_report(descending=True):
    """Sorted report, or a zeroed one plus a warning when the data can't be aggregated."""
    try:
        return sorted_report(descending=descending), None
    except (InvalidOrderError, StorageError) as e:
        # Show an empty ledger with a warning rather than failing the admin view
        LOG.warning("P&L unavailable: %s", e)
        return empty_report(), str(e)

@app.get("/pnl")
def pnl():
    report, warning = _safe_report(descending=request.args.get("order", "desc") != "asc")
    if warning:
        return jsonify({"ok": False, "warning": warning, **report})
    return jsonify({"ok": True, **report})

@app.get("/pnl/ledger")
def pnl_ledger():
    report, warning = _safe_report()
    body = {
        "ok": warning is None,
        "rows": ledger_rows(report["daily"]),
        "totals": report["totals"],
        "display_totals": display_totals(report["totals"]),
    }
    if warning:
        body["warning"] = warning
    return jsonify(body)

@app.get("/pnl/export.csv")
def pnl_export():
    report, warning = _safe_report()
    headers = {"Content-Disposition": "attachment; filename=pnl-export.csv"}
    if warning:
        headers["X-PnL-Warning"] = warning.replace("\n", " ")
    return Response(pnl_csv(report["daily"]), mimetype="text/csv", headers=headers)

@app.get("/pnl/<day>")
def pnl_day(day):
    report, warning = _safe_report()
    if warning:
        return jsonify({"ok": False, "warning": warning, "day": None})
    found = next((d for d in report["daily"] if d["date"] == day), None)
    if found is None:
        return _error(f"No P&L for {day}", 404)
    return jsonify({"ok": True, "day": found})

# -------- Overrides --------
@app.get("/overrides")
def overrides_get():
    store = OverrideStore()
    return jsonify({"shipping": store.shipping_overrides(), "fees": store.fee_overrides()})

def _override_payload():
    data = request.get_json(force=True, silent=True) or {}
    amount = data.get("amount")
    # An emptied form field means zero, not "remove the override"
    if amount == "":
        amount = 0
    elif isinstance(amount, str):
        amount = float(amount)
    return data.get("date"), amount

@app.post("/overrides/shipping")
def overrides_shipping():
    try:
        day, amount = _override_payload()
        OverrideStore().set_shipping_override(day, amount)
    except ValueError as e:
        return _error(str(e))
    return jsonify({"ok": True, "date": day, "amount": amount})

@app.post("/overrides/fee")
def overrides_fee():
    try:
        day, amount = _override_payload()
        OverrideStore().set_fee_override(day, amount)
    except ValueError as e:
        return _error(str(e))
    return jsonify({"ok": True, "date": day, "amount": amount})

# -------- Products --------
@app.get("/products")
def products_get():
    return jsonify(list_products())

@app.post("/products/<product_id>/cost")
def product_cost(product_id):
    data = request.get_json(force=True, silent=True) or {}
    if not isinstance(data, dict) or data.get("cost") is None:
        return _error("Provide 'cost' in rupees.")
    cost = data["cost"]
    try:
        if isinstance(cost, str):
            cost = float(cost)
        product = set_cost_price(product_id, cost)
    except ValueError as e:
        return _error(str(e))
    return jsonify({"ok": True, "product": product})

# -------- Orders --------
@app.get("/orders")
def orders_get():
    return jsonify(list_orders())

@app.post("/orders")
def orders_post():
    data = request.get_json(force=True, silent=True) or {}
    try:
        order = add_order(data)
    except ValueError as e:
        return _error(str(e))
    return jsonify({"ok": True, "order": order}), 201

@app.post("/orders/<order_id>/status")
def order_status(order_id):
    data = request.get_json(force=True, silent=True) or {}
    try:
        order = set_order_status(order_id, data.get("status"))
    except ValueError as e:
        return _error(str(e))
    return jsonify({"ok": True, "order": order})

# -------- Admin --------
@app.post("/config")
def config_update():
    data = request.get_json(force=True, silent=True) or {}
    if not isinstance(data, dict):
        return _error("Config update must be a JSON object.")
    cfg = read_json("config.json")
    allowed = {"platform_fee_rate", "export"}
    changed = {k: v for k, v in data.items() if k in allowed}
    try:
        validate_config(changed)
    except ValueError as e:
        return _error(str(e))
    cfg.update(changed)
    write_json("config.json", cfg)
    if "export" in changed:
        _schedule_job()
    return jsonify({"ok": True, "changed": changed, "config": cfg})

@app.post("/reset")
def reset_all():
    data = request.get_json(force=True, silent=True) or {}
    reset_data(reset_config=bool(data.get("reset_config", False)))
    LOG.warning("All store data reset")
    return jsonify({"ok": True})

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
