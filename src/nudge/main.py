"""
Nudge command line

Usage:
    nudge run                      # Start the reminder daemon
    nudge run --console --debug    # Pretty logs for development
    nudge add "Standup" 14:00 --priority high
    nudge list
    nudge toggle <id>
    nudge delete <id>

The daemon:
1. Loads configuration
2. Initializes logging
3. Loads the task list
4. Starts the event bus, speaker and reminder loop
5. Prints the task list whenever it changes
6. Handles graceful shutdown on SIGINT/SIGTERM
"""

from __future__ import annotations

import argparse
import asyncio
import os
import signal
import sys
from typing import Any, NoReturn

from nudge import __version__
from nudge.app import NudgeApp
from nudge.config import NudgeConfig, load_config
from nudge.errors import NudgeError
from nudge.events import TASKS_CHANGED, Event
from nudge.speech.tts import Speaker
from nudge.tasks.models import TaskPriority
from nudge.utils.logging import bind_command, get_logger, setup_logging


class NudgeDaemon:
    """
    Runs the reminder assistant until a shutdown signal arrives.
    """

    def __init__(self, config: NudgeConfig, app: NudgeApp | None = None):
        self.config = config
        self.logger = get_logger("nudge.daemon")
        self.app = app or NudgeApp.from_config(config)
        self._shutdown_event = asyncio.Event()
        self._running = False

    async def _print_listing(self, event: Event) -> None:
        print(self.app.render(), flush=True)

    async def start(self) -> None:
        self.logger.info(
            "nudge_starting",
            version=self.config.nudge.version,
            store=str(self.config.store.path),
        )

        bus = self.app.event_bus
        if bus:
            bus.subscribe(TASKS_CHANGED, self._print_listing)
            await bus.start()

        if isinstance(self.app.speaker, Speaker):
            await self.app.speaker.start()

        await self.app.start()
        print(self.app.render(), flush=True)

        self._running = True
        self.logger.info("nudge_ready")

    async def stop(self) -> None:
        """Stop all subsystems gracefully."""
        if not self._running:
            return

        self.logger.info("nudge_shutting_down")
        self._running = False
        timeout = self.config.daemon.shutdown_timeout
        bus = self.app.event_bus

        await self.app.stop()

        if isinstance(self.app.speaker, Speaker):
            try:
                await asyncio.wait_for(self.app.speaker.stop(), timeout=timeout)
            except asyncio.TimeoutError:
                self.logger.warning("speaker_stop_timeout")

        if bus:
            try:
                await asyncio.wait_for(bus.stop(), timeout=timeout)
            except asyncio.TimeoutError:
                self.logger.warning("event_bus_stop_timeout")

        self.app.store.kv.close()
        self.logger.info("nudge_stopped")

    async def run(self) -> None:
        try:
            await self.start()
            await self._shutdown_event.wait()
        except Exception as e:
            self.logger.error("daemon_error", error=str(e), exc_info=True)
            raise
        finally:
            await self.stop()

    def request_shutdown(self) -> None:
        self.logger.info("shutdown_requested")
        self._shutdown_event.set()


def setup_signal_handlers(daemon: NudgeDaemon, loop: asyncio.AbstractEventLoop) -> None:
    """Set up signal handlers for graceful shutdown."""
    signal_count = [0]

    def signal_handler(sig: signal.Signals) -> None:
        signal_count[0] += 1
        daemon.logger.info("signal_received", signal=sig.name, count=signal_count[0])

        if signal_count[0] >= 3:
            daemon.logger.warning("force_exit", message="Multiple signals received, forcing exit")
            os._exit(1)

        daemon.request_shutdown()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler, sig)


async def run_daemon(config: NudgeConfig) -> int:
    daemon = NudgeDaemon(config)
    setup_signal_handlers(daemon, asyncio.get_running_loop())

    try:
        await daemon.run()
        return 0
    except KeyboardInterrupt:
        return 0
    except Exception:
        return 1


async def run_command(config: NudgeConfig, args: argparse.Namespace) -> int:
    """Run a one-shot task command, speaking its confirmation."""
    app = NudgeApp.from_config(config)
    speaker = app.speaker if isinstance(app.speaker, Speaker) else None
    if speaker:
        await speaker.start()
        await speaker.wait_ready()

    try:
        app.load()
        result: Any
        if args.command == "add":
            result = app.add_task(args.name, args.time, args.priority)
        elif args.command == "toggle":
            result = app.toggle_task(args.id)
        elif args.command == "delete":
            result = app.delete_task(args.id)
        else:
            result = True

        print(app.render(), flush=True)

        if speaker:
            await speaker.wait_done()
        return 0 if result else 1
    except NudgeError as e:
        print(f"nudge: {e}", file=sys.stderr)
        return 2
    finally:
        if speaker:
            await speaker.stop()
        app.store.kv.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nudge",
        description="Nudge - spoken reminders for your daily task list",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--console",
        action="store_true",
        help="Use pretty console logging instead of JSON",
    )
    parser.add_argument("--no-speech", action="store_true", help="Disable spoken output")
    parser.add_argument("--store", metavar="PATH", help="Task database path")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("run", help="Run the reminder daemon")
    sub.add_parser("list", help="Print the task list")

    add = sub.add_parser("add", help="Add a task")
    add.add_argument("name", help="Task name")
    add.add_argument("time", help="Time of day, 24-hour HH:MM or HH:MM:SS")
    add.add_argument(
        "--priority",
        choices=[p.value for p in TaskPriority],
        default=TaskPriority.MEDIUM.value,
    )

    toggle = sub.add_parser("toggle", help="Mark a task done, or undo")
    toggle.add_argument("id", type=int)

    delete = sub.add_parser("delete", help="Delete a task")
    delete.add_argument("id", type=int)

    return parser


def config_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Command line flags as a nested config dictionary."""
    overrides: dict[str, Any] = {}
    if args.debug:
        overrides.setdefault("log", {})["level"] = "DEBUG"
    if args.console:
        overrides.setdefault("log", {})["format"] = "console"
    if args.no_speech:
        overrides.setdefault("speech", {})["enabled"] = False
    if args.store:
        overrides.setdefault("store", {})["path"] = args.store
    return overrides


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the nudge command."""
    args = build_parser().parse_args(argv)
    config = load_config(config_overrides(args))

    setup_logging(
        level=config.log.level,
        format=config.log.format,
        log_file=config.log.file,
    )
    bind_command(args.command, config.store.path)

    if args.command == "run":
        exit_code = asyncio.run(run_daemon(config))
    else:
        exit_code = asyncio.run(run_command(config, args))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
