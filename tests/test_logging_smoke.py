from __future__ import annotations

import json
import logging
from pathlib import Path

import numpy as np
import pytest

from ingestion.order import normalize
from order_engine.utils import logger as logger_mod
from order_engine.utils.logger import JsonFormatter, UtcFormatter, get_logger, init_logging, log_info, safe_jsonable


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    level = root.level
    yield
    for h in list(root.handlers):
        if isinstance(h.formatter, (JsonFormatter, UtcFormatter)):
            root.removeHandler(h)
            h.close()
    root.setLevel(level)
    logger_mod.set_debug(False)
    logger_mod._CONFIGURED = False
    logger_mod._RUN_ID = None
    logger_mod._MODE = None
    get_logger.cache_clear()


def _write_config(path: Path) -> Path:
    cfg = {
        "active_profile": "default",
        "profiles": {
            "default": {
                "level": "INFO",
                "handlers": {"console": {"enabled": False}},
            },
            "debug": {
                "level": "DEBUG",
                "debug": {"enabled": True, "modules": ["ingestion.order"]},
            },
        },
    }
    path.write_text(json.dumps(cfg), encoding="utf-8")
    return path


def _read_jsonl(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]


def test_logging_writes_jsonl_with_context(tmp_path: Path, restore_logging):
    cfg = _write_config(tmp_path / "logging.json")
    log_dir = tmp_path / "logs"
    init_logging(cfg, run_id="pytest_run", log_dir=log_dir)

    log_info(get_logger("order_engine.test"), "hello", n_items=np.int64(3))
    normalize("{broken")

    rows = _read_jsonl(log_dir / "default.jsonl")
    hello = next(r for r in rows if r["event"] == "hello")
    assert hello["context"]["n_items"] == 3
    assert hello["context"]["run_id"] == "pytest_run"
    assert hello["context"]["mode"] == "default"

    rejected = next(r for r in rows if r["event"] == "order payload rejected")
    assert rejected["level"] == "WARNING"
    assert rejected["category"] == "payload_integrity"
    assert rejected["context"]["failure"] == "decode_failure"


def test_debug_profile_enables_module_debug(tmp_path: Path, restore_logging):
    cfg = _write_config(tmp_path / "logging.json")
    log_dir = tmp_path / "logs"
    init_logging(cfg, run_id="pytest_run", mode="debug", log_dir=log_dir)

    normalize('[{"name": "A", "quantity": 1, "price": 2}]')

    rows = _read_jsonl(log_dir / "debug.jsonl")
    events = [r["event"] for r in rows]
    assert "order payload received" in events
    normalized = next(r for r in rows if r["event"] == "order payload normalized")
    assert normalized["context"]["total_amount"] == 2.0


def test_unknown_profile_raises(tmp_path: Path, restore_logging):
    cfg = _write_config(tmp_path / "logging.json")
    with pytest.raises(KeyError):
        init_logging(cfg, mode="nope")


def test_safe_jsonable_handles_nan_and_numpy():
    out = safe_jsonable({"total": float("nan"), "q": np.float64(1.5), "path": Path("a/b"), 1: (1, 2)})
    assert out == {"total": "nan", "q": 1.5, "path": "a/b", "1": [1, 2]}
    json.dumps(out)
