#!/usr/bin/env python3
"""Run the telemetry bridge for one device until interrupted.

Configuration comes from ``CNG_*`` environment variables (see
``cngprotect.config.BridgeConfig.from_env``); flags override a few of them.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from cngprotect import BridgeConfig, BridgeError, TelemetryBridge  # noqa: E402
from cngprotect._ledger import Web3LedgerClient  # noqa: E402
from cngprotect._redact import redact_for_log  # noqa: E402
from cngprotect._storage import ZeroGStorageClient  # noqa: E402
from cngprotect._subscription import FirebaseSubscription  # noqa: E402

_LOG = logging.getLogger("run_bridge")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Bridge gas-leak telemetry to the 0G ledger and storage network.",
    )
    parser.add_argument(
        "--device-path",
        help="Database path of the device's live telemetry node.",
    )
    parser.add_argument(
        "--device-id",
        help="Device identifier recorded in incident transactions.",
    )
    parser.add_argument(
        "--artifact-path",
        help="Transient file used for storage uploads.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


async def _run(config: BridgeConfig) -> None:
    ledger = Web3LedgerClient(config)
    _LOG.info("Signer public address: %s", ledger.address)
    _LOG.info("Search this address on the 0G storage explorer to browse archived telemetry")

    bridge = TelemetryBridge(
        config,
        ledger=ledger,
        storage=ZeroGStorageClient(config),
    )
    async with FirebaseSubscription(config) as subscription:
        await bridge.run(subscription)


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides = {
        name: value
        for name, value in (
            ("device_path", args.device_path),
            ("device_id", args.device_id),
            ("artifact_path", args.artifact_path),
        )
        if value
    }
    try:
        config = BridgeConfig.from_env(**overrides)
    except BridgeError as exc:
        print(f"[bridge] Configuration error: {exc}", file=sys.stderr)
        return 2

    _LOG.debug("Configuration: %s", redact_for_log(dataclasses.asdict(config)))

    try:
        asyncio.run(_run(config))
    except KeyboardInterrupt:
        _LOG.info("Stopped by user")
    except BridgeError as exc:
        _LOG.error("Bridge stopped: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
