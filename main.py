"""Development entrypoint for the territory influence service.

    python main.py serve --reload
    python main.py seed worlds/frontier.json
    python main.py decay --day 2026-10-18
"""

from __future__ import annotations

import argparse
import logging
from datetime import date

import uvicorn

from frontier_influence.database import get_session_factory, init_db
from frontier_influence.factory import create_all_services
from frontier_influence.models import utc_now
from frontier_influence.seeding import load_world
from frontier_influence.services.decay_service import run_daily_decay

logger = logging.getLogger("frontier_influence")


def serve(args: argparse.Namespace) -> None:
    if args.reload:
        uvicorn.run(
            "frontier_influence.api.app:app",
            host=args.host,
            port=args.port,
            reload=True,
            factory=False,
        )
    else:
        from frontier_influence.api.app import app

        uvicorn.run(app, host=args.host, port=args.port, reload=False, factory=False)


def seed(args: argparse.Namespace) -> None:
    world = load_world(args.path)
    init_db()
    services = create_all_services()
    influence = services["influence"]
    for faction in world.factions:
        influence.register_faction(faction.id, faction.name, default_floor=faction.default_floor)
    created = influence.seed_world(world.territory_seeds())
    logger.info(
        "seeded %d factions and %d new territories from %s",
        len(world.factions),
        len(created),
        args.path,
    )


def decay(args: argparse.Namespace) -> None:
    init_db()
    day = args.day or utc_now().date()
    services = create_all_services()
    report = run_daily_decay(
        get_session_factory(),
        day,
        rules=services["rules"],
        on_transition=services["influence"].publish,
    )
    if report.territories_failed:
        raise SystemExit(1)


def main() -> None:
    parser = argparse.ArgumentParser(description="Territory influence service")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    subcommands = parser.add_subparsers(dest="command")

    serve_parser = subcommands.add_parser("serve", help="Run the HTTP API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host interface to bind")
    serve_parser.add_argument("--port", type=int, default=8000, help="TCP port to listen on")
    serve_parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable autoreload (dev mode)",
    )
    serve_parser.set_defaults(handler=serve)

    seed_parser = subcommands.add_parser("seed", help="Load factions and territories from JSON")
    seed_parser.add_argument("path", help="World seed file")
    seed_parser.set_defaults(handler=seed)

    decay_parser = subcommands.add_parser("decay", help="Run the daily decay once")
    decay_parser.add_argument(
        "--day",
        type=date.fromisoformat,
        default=None,
        help="Day key (YYYY-MM-DD); defaults to today (UTC)",
    )
    decay_parser.set_defaults(handler=decay)

    args = parser.parse_args()
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    handler = getattr(args, "handler", None)
    if handler is None:
        args.reload = False
        args.host, args.port = "127.0.0.1", 8000
        handler = serve
    handler(args)


if __name__ == "__main__":
    main()
