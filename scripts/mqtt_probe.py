#!/usr/bin/env python3
"""Live ingestion probe for tablet telemetry.

Runs the full ingestion pipeline against a real broker with in-memory
repositories seeded from ``--device`` codes, optionally serving the
observer websocket, and prints a summary of what was stored on exit.

Use this to check that tablets publish what the backend expects.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import time
from dataclasses import dataclass

from pyontrak import CommandAction, Device, OntrakConfig, TelemetryService
from pyontrak.repositories.memory import (
    InMemoryActionLogRepository,
    InMemoryCheckoutRepository,
    InMemoryDeviceRepository,
    InMemoryLocationHistoryRepository,
    InMemoryMetricsRepository,
)

_LOG = logging.getLogger("mqtt_probe")


@dataclass
class ProbeRepositories:
    devices: InMemoryDeviceRepository
    history: InMemoryLocationHistoryRepository
    metrics: InMemoryMetricsRepository
    action_log: InMemoryActionLogRepository
    checkouts: InMemoryCheckoutRepository


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run tablet telemetry ingestion against a live broker.",
    )
    parser.add_argument(
        "--device",
        action="append",
        default=[],
        help="Device code to provision (repeatable). Unprovisioned devices are dropped.",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--observers",
        action="store_true",
        help="Serve the observer websocket endpoint while probing.",
    )
    parser.add_argument(
        "--command",
        choices=[action.value for action in CommandAction],
        help="Send this command to every --device once connected.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _seed(device_codes: list[str]) -> ProbeRepositories:
    repos = ProbeRepositories(
        devices=InMemoryDeviceRepository(),
        history=InMemoryLocationHistoryRepository(),
        metrics=InMemoryMetricsRepository(),
        action_log=InMemoryActionLogRepository(),
        checkouts=InMemoryCheckoutRepository(),
    )
    for index, code in enumerate(device_codes, start=1):
        repos.devices.add(Device(id=f"probe-{index}", device_code=code))
    return repos


def _print_summary(repos: ProbeRepositories, started_at: float) -> None:
    print("[probe] Summary")
    print(f"[probe]   runtime_s        : {time.time() - started_at:.1f}")
    print(f"[probe]   location_samples : {len(repos.history.samples)}")
    print(f"[probe]   metrics_records  : {len(repos.metrics.records)}")
    print(f"[probe]   action_log       : {len(repos.action_log.entries)}")
    for device in repos.devices.devices.values():
        print(
            f"[probe]   {device.device_code}: status={device.connection_status} "
            f"battery={device.battery} last_seen={device.last_seen}"
        )


async def _run(args: argparse.Namespace, config: OntrakConfig, repos: ProbeRepositories) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(signum, stop.set)

    async with TelemetryService(
        config,
        devices=repos.devices,
        location_history=repos.history,
        metrics=repos.metrics,
        action_log=repos.action_log,
        checkouts=repos.checkouts,
    ) as service:
        if args.observers:
            await service.serve_observers()

        if args.command:
            for _ in range(50):
                if service.connection.is_connected:
                    break
                await asyncio.sleep(0.1)
            for code in args.device:
                sent = service.publish_command(code, args.command)
                print(f"[probe] command {args.command} -> {code}: {'sent' if sent else 'dropped'}")

        timeout = args.duration if args.duration > 0 else None
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(stop.wait(), timeout=timeout)


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = OntrakConfig.from_env()
    repos = _seed(args.device)
    started_at = time.time()
    print(f"[probe] Broker {config.broker_url}, provisioned devices: {', '.join(args.device) or 'none'}")

    try:
        asyncio.run(_run(args, config, repos))
    except KeyboardInterrupt:
        pass
    except Exception as exc:  # pragma: no cover - network/system interaction
        print(f"[probe] Failed: {exc}")
        return 2

    _print_summary(repos, started_at)
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
