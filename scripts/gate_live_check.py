"""Manual live check against a running parking authority.

Run from the repository root with:
  PYTHONPATH=src PARKING_BASE_URL=http://localhost:3000 PARKING_GATE_ID=gate_1 \
  python scripts/gate_live_check.py

Optional environment variables:
  PARKING_API_URI
  PARKING_WS_URL
  PARKING_USERNAME
  PARKING_PASSWORD

Pass --listen SECONDS to print zone updates received over the real-time
channel, and --ticket ID to look a ticket up at the checkpoint (no checkout is
performed).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

from pyparkinggate import Client, ZoneUpdate
from pyparkinggate.exceptions import PyParkingGateError
from pyparkinggate.models import Zone
from pyparkinggate.render import render_ticket


def _require_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        print(f"Missing required environment variable: {name}", file=sys.stderr)
        raise SystemExit(2)
    return value


def _format_zone(zone: Zone) -> str:
    status = "open" if zone.open else "closed"
    return (
        f"{zone.id} | {zone.name} | {status} | "
        f"{zone.occupied}/{zone.total_slots} occupied | "
        f"visitors={zone.available_for_visitors} subscribers={zone.available_for_subscribers}"
    )


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--listen", type=float, default=0.0, help="seconds to print updates")
    parser.add_argument("--ticket", help="ticket id to look up")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO)
    base_url = _require_env("PARKING_BASE_URL")
    gate_id = _require_env("PARKING_GATE_ID")
    username = os.getenv("PARKING_USERNAME")
    password = os.getenv("PARKING_PASSWORD")

    async with Client(
        base_url=base_url,
        api_uri=os.getenv("PARKING_API_URI"),
        ws_url=os.getenv("PARKING_WS_URL"),
    ) as client:
        try:
            if username and password:
                result = await client.api.login(username, password)
                print(f"Logged in as {result.user.username} ({result.user.role})")

            async with client.gate_terminal(gate_id) as terminal:
                gate = terminal.gate
                print(f"Gate: {gate.name if gate else gate_id} | live={terminal.connected}")
                for zone in terminal.workflow.gate_zones():
                    print(_format_zone(zone))

                if args.listen > 0:

                    def _print_update(message: ZoneUpdate) -> None:
                        print(f"update: {_format_zone(message.zone)}")

                    connection = terminal.connection
                    connection.on(ZoneUpdate, _print_update)
                    await asyncio.sleep(args.listen)
                    connection.off(ZoneUpdate, _print_update)

            if args.ticket:
                workflow = client.checkout_workflow()
                ticket = await workflow.lookup_ticket(args.ticket)
                for line in render_ticket(ticket):
                    print(line)
                if workflow.subscription is not None:
                    print(f"Subscription: {workflow.subscription.id}")
                print(f"Checkout possible: {workflow.can_checkout}")
        except PyParkingGateError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
