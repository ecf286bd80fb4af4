"""Command line entry point."""
import argparse
import asyncio
import logging
import signal

from braincraft.app import BraincraftApp
from braincraft.config import settings
from braincraft.logging_config import setup_logging

logger = logging.getLogger("braincraft")


async def run_scheduler() -> None:
    """Run the notification scheduler until SIGINT/SIGTERM."""
    loop = asyncio.get_running_loop()
    task = asyncio.current_task()

    # Add signal handlers
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, task.cancel)

    logger.info("Starting scheduler...")
    await BraincraftApp().serve_forever()


def run_web(host: str, port: int) -> None:
    """Serve the HTTP API with Flask's built-in server."""
    from braincraft.models.base import init_db
    from braincraft.web import create_app

    init_db()
    create_app().run(host=host, port=port)


def main() -> None:
    parser = argparse.ArgumentParser(prog="braincraft", description="Vocabulary reminder service")
    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("scheduler", help="run the notification scheduler (default)")
    web_parser = subparsers.add_parser("web", help="serve the HTTP API")
    web_parser.add_argument("--host", default=settings.web.host)
    web_parser.add_argument("--port", type=int, default=settings.web.port)
    args = parser.parse_args()

    setup_logging("Starting braincraft ...")

    if args.command == "web":
        run_web(args.host, args.port)
        return

    try:
        asyncio.run(run_scheduler())
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")


if __name__ == "__main__":
    main()
