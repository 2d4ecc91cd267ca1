import json
import math
import os
import tempfile
import threading

_DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data")
_FILE_LOCK = threading.Lock()

# Files wiped by a whole-system reset; config.json is only reset on request.
DATA_FILES = ["products.json", "orders.json", "shipping_overrides.json", "fee_overrides.json"]

DEFAULTS = {
    "products.json": [
        {"id": "resin-coaster-set", "name": "Resin Coaster Set", "images": [], "price_in_paise": 79900, "cost_price_in_paise": 32000},
        {"id": "kids-name-board", "name": "Kids Name Board", "images": [], "price_in_paise": 49900, "cost_price_in_paise": 18000},
        {"id": "wall-hanging", "name": "Macrame Wall Hanging", "images": [], "price_in_paise": 129900, "cost_price_in_paise": 55000},
    ],
    "orders.json": [],
    "shipping_overrides.json": {},
    "fee_overrides.json": {},
    "config.json": {
        "platform_fee_rate": 0.02,
        "export": {
            "enabled": False,
            "interval_seconds": 3600,
            "directory": "exports"
        }
    }
}


class StorageError(IOError):
    """Raised when a data file cannot be read, decoded or written."""


def data_path(filename: str) -> str:
    os.makedirs(_DATA_DIR, exist_ok=True)
    return os.path.join(_DATA_DIR, filename)

def _atomic_write(path: str, data_obj):
    tmp_fd, tmp_path = tempfile.mkstemp(prefix=".tmp_", dir=os.path.dirname(path))
    try:
        with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
            json.dump(data_obj, f, indent=2)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)

def ensure_defaults():
    os.makedirs(_DATA_DIR, exist_ok=True)
    for fname, default in DEFAULTS.items():
        path = data_path(fname)
        if not os.path.exists(path):
            with _FILE_LOCK:
                _atomic_write(path, default)

def read_json(filename: str):
    path = data_path(filename)
    with _FILE_LOCK:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise StorageError(f"Could not read {filename}: {e}") from e

def write_json(filename: str, obj):
    path = data_path(filename)
    with _FILE_LOCK:
        try:
            _atomic_write(path, obj)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Could not write {filename}: {e}") from e

def read_config() -> dict:
    return read_json("config.json")

def reset_data(reset_config: bool = False):
    for fname in DATA_FILES:
        write_json(fname, DEFAULTS[fname])
    if reset_config:
        write_json("config.json", DEFAULTS["config.json"])

def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)

def validate_config(changes: dict):
    """Reject config updates that would break P&L reads or the export job."""
    if "platform_fee_rate" in changes:
        rate = changes["platform_fee_rate"]
        if not _is_number(rate) or not 0 <= rate < 1:
            raise ValueError(f"platform_fee_rate must be a number in [0, 1), got {rate!r}")
    if "export" in changes:
        export = changes["export"]
        if not isinstance(export, dict):
            raise ValueError("export must be an object")
        if "enabled" in export and not isinstance(export["enabled"], bool):
            raise ValueError("export.enabled must be true or false")
        seconds = export.get("interval_seconds", 3600)
        if isinstance(seconds, bool) or not isinstance(seconds, int) or seconds <= 0:
            raise ValueError(f"export.interval_seconds must be a positive integer, got {seconds!r}")
        directory = export.get("directory", "exports")
        if not isinstance(directory, str) or not directory.strip():
            raise ValueError("export.directory must be a non-empty string")
