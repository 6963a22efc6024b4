#!/usr/bin/env python3
"""
Order Panel Replay Entrypoint

Replays a recorded stream of order notifications through the event bus into
the order details panel, prints the final panel, and writes run artifacts.

Usage:
    python -m apps.run_order_panel --run_id DEMO1 --events recordings/call.jsonl
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


def _write_json(path: Path, payload: Any) -> Path:
    from order_engine.utils.logger import safe_jsonable

    # NaN totals are written as the string "nan"; bare NaN tokens are not JSON
    with open(path, "w", encoding="utf-8") as f:
        json.dump(safe_jsonable(payload), f, indent=2, allow_nan=False)
    return path


def _write_status(artifacts_dir: Path, run_id: str, status: dict[str, Any]) -> Path:
    return _write_json(artifacts_dir / f"{run_id}_status.json", status)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Order Panel - replay order notifications and render the final order",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--run_id",
        required=True,
        help="Unique run identifier (e.g., DEMO1)",
    )
    parser.add_argument(
        "--events",
        type=Path,
        required=True,
        help="JSON Lines recording of orderDetailsUpdated / callEnded events",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to panel config JSON file (optional)",
    )
    parser.add_argument(
        "--log-config",
        type=Path,
        default=Path("configs/logging.json"),
        help="Logging profiles file (default: configs/logging.json)",
    )
    parser.add_argument(
        "--log-profile",
        default=None,
        help="Logging profile name (default: the file's active_profile)",
    )
    parser.add_argument(
        "--artifacts-dir",
        type=Path,
        default=None,
        help="Artifacts output directory (default: artifacts/)",
    )

    args = parser.parse_args(argv)

    from order_engine.utils.paths import artifacts_root_from_file, resolve_config_path

    artifacts_dir = args.artifacts_dir or artifacts_root_from_file(__file__, levels_up=2)
    artifacts_dir.mkdir(parents=True, exist_ok=True)

    from order_engine.utils.logger import get_logger, init_logging, log_exception, log_info

    log_config = resolve_config_path(__file__, args.log_config, levels_up=2)
    init_logging(
        log_config,
        run_id=args.run_id,
        mode=args.log_profile,
        log_dir=artifacts_dir / f"{args.run_id}_logs",
    )

    logger = get_logger(__name__)
    log_info(
        logger,
        "run_order_panel started",
        run_id=args.run_id,
        events=str(args.events),
        config=str(args.config) if args.config else None,
    )

    try:
        from ingestion.order import OrderEventFileSource, OrderEventWorker, OrderPayloadNormalizer
        from order_engine.data.order import OrderDetailsHandler
        from order_engine.render import formatter_for, order_frame, render_order_details
        from order_engine.runtime import EventBus, PanelConfig

        config = PanelConfig.from_file(args.config) if args.config else PanelConfig()
        if args.config:
            log_info(logger, "Loaded config", path=str(args.config), **config.to_dict())

        bus = EventBus()
        handler = OrderDetailsHandler(normalizer=OrderPayloadNormalizer(config=config))
        worker = OrderEventWorker(source=OrderEventFileSource(path=args.events))

        with handler.attach(bus):
            asyncio.run(worker.run(bus.dispatch))

        order = handler.state
        print("\n".join(render_order_details(order, fmt=formatter_for(config))))

        _write_json(artifacts_dir / f"{args.run_id}_order.json", order.to_dict())
        items_path = artifacts_dir / f"{args.run_id}_items.csv"
        order_frame(order).to_csv(items_path, index=False)

        status = {
            "run_id": args.run_id,
            "status": "success",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "result": {
                "events_emitted": worker.emitted,
                "events_skipped": worker.skipped,
                "state_updates": handler.updates,
                "n_items": len(order.items),
                "total_amount": order.total_amount,
            },
        }
        status_path = _write_status(artifacts_dir, args.run_id, status)

        log_info(
            logger,
            "run_order_panel completed successfully",
            run_id=args.run_id,
            status_path=str(status_path),
        )

        print(f"[OK] Run {args.run_id} completed. Artifacts in: {artifacts_dir}")
        return 0

    except Exception as e:
        log_exception(logger, "run_order_panel failed", error=str(e))

        status = {
            "run_id": args.run_id,
            "status": "error",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "error": str(e),
        }
        _write_status(artifacts_dir, args.run_id, status)

        print(f"[ERROR] Run {args.run_id} failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
