import os
import utils.file_manager as fm
import reporting
from models.orders import add_order, set_order_status
from models.products import set_cost_price
from models.overrides import OverrideStore

def setup_env(tmp_path, monkeypatch):
    monkeypatch.setattr(fm, "_DATA_DIR", tmp_path / "data")
    fm.ensure_defaults()
    reporting.clear_cache()
    fm.write_json("products.json", [
        {"id": "A", "name": "Resin Tray", "images": ["a.jpg"], "cost_price_in_paise": 4000},
        {"id": "B", "name": "Name Board", "images": [], "cost_price_in_paise": 1500},
    ])
    add_order(_order("O1", "confirmed", "2024-03-01T10:00:00", "A", 2, 10000))
    add_order(_order("O2", "delivered", "2024-03-01T15:00:00", "A", 1, 10000))
    add_order(_order("O3", "cancelled", "2024-03-01T16:00:00", "A", 1, 10000))
    add_order(_order("O4", "shipped", "2024-03-03T11:00:00", "B", 2, 5000))

def _order(oid, status, created_at, pid, qty, price):
    return {
        "id": oid,
        "status": status,
        "created_at": created_at,
        "items": [{"product": {"id": pid, "name": pid, "price_in_paise": price}, "quantity": qty}],
    }


def test_build_report_from_stored_data(tmp_path, monkeypatch):
    setup_env(tmp_path, monkeypatch)
    report = reporting.sorted_report(descending=False)
    assert [d["date"] for d in report["daily"]] == ["2024-03-01", "2024-03-03"]
    assert report["daily"][0]["net_profit"] == 17400
    assert report["totals"]["revenue"] == 40000
    assert report["totals"]["cogs"] == 12000 + 3000

def test_writes_are_never_served_stale(tmp_path, monkeypatch):
    setup_env(tmp_path, monkeypatch)
    assert reporting.day_report("2024-03-01")["cogs"] == 12000

    set_cost_price("A", 50)
    assert reporting.day_report("2024-03-01")["cogs"] == 15000

    OverrideStore().set_fee_override("2024-03-01", 10)
    assert reporting.day_report("2024-03-01")["fees"] == 1000

    set_order_status("O2", "cancelled")
    assert reporting.day_report("2024-03-01")["revenue"] == 20000

def test_unchanged_inputs_reuse_cached_result(tmp_path, monkeypatch):
    setup_env(tmp_path, monkeypatch)
    calls = []
    real = reporting.aggregate_pnl

    def counting(*args, **kwargs):
        calls.append(1)
        return real(*args, **kwargs)

    monkeypatch.setattr(reporting, "aggregate_pnl", counting)
    first = reporting.build_report()
    first["daily"].clear()
    second = reporting.build_report()
    assert len(calls) == 1
    assert len(second["daily"]) == 2

    OverrideStore().set_shipping_override("2024-03-03", 40)
    reporting.build_report()
    assert len(calls) == 2

def test_fee_rate_from_config(tmp_path, monkeypatch):
    setup_env(tmp_path, monkeypatch)
    cfg = fm.read_config()
    cfg["platform_fee_rate"] = 0.05
    fm.write_json("config.json", cfg)
    assert reporting.day_report("2024-03-01")["fees"] == 1000 + 500

def test_day_report_missing_date(tmp_path, monkeypatch):
    setup_env(tmp_path, monkeypatch)
    assert reporting.day_report("2024-03-02") is None

def test_pnl_csv_format(tmp_path, monkeypatch):
    setup_env(tmp_path, monkeypatch)
    OverrideStore().set_shipping_override("2024-03-01", 25)
    text = reporting.pnl_csv(reporting.sorted_report(descending=True)["daily"])
    lines = text.splitlines()
    assert lines[0] == "Date,Revenue (INR),COGS (INR),Fees (INR),Shipping (INR),Net Profit (INR),Margin (%)"
    assert lines[1] == "2024-03-03,100.00,30.00,2.00,0.00,68.00,68.00%"
    assert lines[2] == "2024-03-01,300.00,120.00,6.00,25.00,149.00,49.67%"
    assert len(lines) == 3

def test_export_writes_file(tmp_path, monkeypatch):
    setup_env(tmp_path, monkeypatch)
    path = reporting.export_pnl_csv()
    assert os.path.dirname(path) == os.path.join(str(tmp_path / "data"), "exports")
    with open(path, encoding="utf-8") as f:
        content = f.read()
    assert content == reporting.pnl_csv(reporting.sorted_report()["daily"])

def test_ledger_rows_flag_first_of_day(tmp_path, monkeypatch):
    setup_env(tmp_path, monkeypatch)
    add_order({
        "id": "O5", "status": "confirmed", "created_at": "2024-03-03T12:00:00",
        "items": [{"product": {"id": "A", "name": "A", "price_in_paise": 10000}, "quantity": 1}],
    })
    rows = reporting.ledger_rows(reporting.build_report()["daily"])
    assert [(r["date"], r["item"]["product_id"], r["is_first_of_day"]) for r in rows] == [
        ("2024-03-03", "B", True),
        ("2024-03-03", "A", False),
        ("2024-03-01", "A", True),
    ]
    assert "items" not in rows[0]["day"]

def test_empty_report_is_zeroed():
    report = reporting.empty_report()
    assert report["daily"] == []
    assert report["totals"] == {"revenue": 0, "cogs": 0, "fees": 0, "shipping": 0, "net_profit": 0, "margin": 0}

def test_display_totals_formats_rupees(tmp_path, monkeypatch):
    setup_env(tmp_path, monkeypatch)
    totals = reporting.build_report()["totals"]
    shown = reporting.display_totals(totals)
    # revenue 40000, cogs 15000, fees 600 + 200
    assert shown == {
        "revenue": "₹400.00",
        "expenses": "₹158.00",
        "net_profit": "₹242.00",
        "margin": "60.5%",
    }
