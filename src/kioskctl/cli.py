"""kioskctl: command line control of the kiosk."""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from api.gateway import APIGateway
from api.service import APIService
from common.exceptions import KioskError, OrientationError
from common.logs import setup_logging
from config.manager import ConfigManager
from display.controller import AppliedOrientation
from display.service import RotationService
from kiosk.provision import Provisioner
from kiosk.service import KioskService, exit_status
from .context import KioskContext, build_context

logger = logging.getLogger("kioskctl")

EXIT_OK = 0
EXIT_ERROR = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kioskctl",
        description="Manage the rotating multi-target kiosk",
    )
    parser.add_argument("--config", help="Settings file (default: $KIOSK_CONFIG or ~/kiosk/config.json)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")
    sub.required = True

    sub.add_parser("provision", help="Write records and systemd units")

    p = sub.add_parser("activate", help="Switch to a kiosk target")
    p.add_argument("target")
    p.add_argument("--rotation", help="Set the target's rotation first")

    p = sub.add_parser("deactivate", help="Stop one kiosk target")
    p.add_argument("target")

    sub.add_parser("stop-all", help="Stop every kiosk target")
    sub.add_parser("restart", help="Restart the active kiosk")

    p = sub.add_parser("rotate", help="Apply and save the display rotation")
    p.add_argument("rotation", help="0, 90, 180, 270 or an alias such as portrait")
    p.add_argument("--all-targets", action="store_true",
                   help="Also set every target's rotation and restart the active kiosk")

    p = sub.add_parser("target-rotation", help="Set one target's preferred rotation")
    p.add_argument("target")
    p.add_argument("rotation")

    p = sub.add_parser("set-url", help="Set a target's URL")
    p.add_argument("target")
    p.add_argument("url")

    p = sub.add_parser("status", help="Show kiosk and display status")
    p.add_argument("--json", action="store_true", help="Print JSON")

    sub.add_parser("restore", help="Re-apply the saved rotation (boot)")

    p = sub.add_parser("launch", help="Run one target's browser (systemd ExecStart)")
    p.add_argument("target")

    sub.add_parser("serve", help="Serve the HTTP control API")
    return parser


def _log_name(args: argparse.Namespace) -> str:
    if args.command == "launch":
        return f"kiosk-{args.target}"
    if args.command == "restore":
        return "rotation"
    if args.command == "serve":
        return "api"
    return "kioskctl"


def _print_applied(applied: AppliedOrientation) -> None:
    if applied.substituted:
        print(f"Unknown rotation {applied.substituted_from!r}, used {applied.orientation.label}")
    state = "applied" if applied.changed else "already set"
    print(f"Rotation {applied.orientation.label} {state} on {applied.output_identifier}")


async def cmd_provision(ctx: KioskContext, args) -> int:
    provisioner = Provisioner(ctx.settings, ctx.store, ctx.tool, ctx.services,
                              config_path=ctx.config_manager.config_path)
    report = await provisioner.run()
    print(f"Display output: {report.output_identifier}")
    if report.targets_created:
        print(f"Created targets: {', '.join(report.targets_created)}")
    for path in report.units_written:
        print(f"Wrote {path}")
    return EXIT_OK


async def cmd_activate(ctx: KioskContext, args) -> int:
    if args.rotation is not None:
        await ctx.supervisor.load_configured(args.target)
        await ctx.supervisor.set_target_orientation(args.target, args.rotation)
    result = await ctx.supervisor.activate(args.target)
    for warning in result.warnings:
        print(f"Warning: {warning}")
    print(f"Kiosk {args.target} activated")
    return EXIT_OK


async def cmd_deactivate(ctx: KioskContext, args) -> int:
    await ctx.supervisor.deactivate(args.target)
    print(f"Kiosk {args.target} stopped")
    return EXIT_OK


async def cmd_stop_all(ctx: KioskContext, args) -> int:
    await ctx.supervisor.deactivate_all()
    print("All kiosks stopped")
    return EXIT_OK


async def cmd_restart(ctx: KioskContext, args) -> int:
    target_id = await ctx.supervisor.restart_active()
    if target_id is None:
        print("No active kiosk")
        return EXIT_ERROR
    print(f"Kiosk {target_id} restarted")
    return EXIT_OK


async def cmd_rotate(ctx: KioskContext, args) -> int:
    if args.all_targets:
        applied = await ctx.supervisor.set_all_orientations(args.rotation)
    else:
        applied = await ctx.supervisor.set_orientation(args.rotation)
    _print_applied(applied)
    return EXIT_OK


async def cmd_target_rotation(ctx: KioskContext, args) -> int:
    applied = await ctx.supervisor.set_target_orientation(args.target, args.rotation)
    target = await ctx.store.load_target(args.target)
    print(f"Target {args.target} rotation: {target.preferred_orientation.label}")
    if applied:
        _print_applied(applied)
    return EXIT_OK


async def cmd_set_url(ctx: KioskContext, args) -> int:
    target = await ctx.supervisor.set_url(args.target, args.url)
    print(f"Target {target.id} URL: {target.url or '(empty)'}")
    if await ctx.supervisor.active_target() == target.id:
        print("Run 'kioskctl restart' to load the new URL")
    return EXIT_OK


async def cmd_status(ctx: KioskContext, args) -> int:
    states = await ctx.supervisor.status()
    display = await ctx.store.load_display_state()

    current = None
    current_error = None
    try:
        orientation = await ctx.controller.current(display.output_identifier)
        current = orientation.canonical if orientation else None
    except OrientationError as e:
        current_error = str(e)

    targets = []
    for target_id, state in states.items():
        target = await ctx.store.load_target(target_id)
        targets.append({
            "id": target.id,
            "name": target.label,
            "url": target.url,
            "rotation": target.preferred_orientation.canonical,
            "state": state.value,
        })
    active = next((t["id"] for t in targets if t["state"] != "stopped"), None)

    if args.json:
        print(json.dumps({
            "active_target": active,
            "targets": targets,
            "display": {
                "output": display.output_identifier,
                "saved_orientation": display.saved_orientation.canonical,
                "current_orientation": current,
                "error": current_error,
            },
        }, indent=2))
        return EXIT_OK

    print("Kiosk targets:")
    for t in targets:
        print(f"  {t['id']:<12} {t['state']:<16} {t['rotation']:>3}  {t['name']}  {t['url'] or '(no URL)'}")
    print(f"Active: {active or 'none'}")
    print(f"Output: {display.output_identifier}")
    print(f"Saved rotation: {display.saved_orientation.label}")
    print(f"Current rotation: {current if current is not None else current_error or 'unknown'}")
    return EXIT_OK


async def cmd_restore(ctx: KioskContext, args) -> int:
    service = RotationService(ctx.controller, ctx.store,
                              boot_settle_delay=ctx.settings.display.boot_settle_delay)
    applied = await service.start()
    _print_applied(applied)
    return EXIT_OK


async def cmd_launch(ctx: KioskContext, args) -> int:
    browser_config = ctx.settings.browser
    service = KioskService(
        ctx.supervisor,
        ctx.browser,
        args.target,
        ctx.settings.paths.profile_dir(args.target),
        startup_delay=browser_config.startup_delay,
        disable_screensaver=browser_config.disable_screensaver,
        hide_cursor=browser_config.hide_cursor,
    )
    service.install_signal_handlers()
    return exit_status(await service.run())


async def cmd_serve(ctx: KioskContext, args) -> int:
    gateway = APIGateway(ctx.supervisor, ctx.controller)
    api = ctx.settings.api
    service = APIService(gateway, api.bind_address, api.bind_port,
                         log_level=ctx.settings.logging.level.lower())
    await service.start()
    return EXIT_OK


COMMANDS = {
    "provision": cmd_provision,
    "activate": cmd_activate,
    "deactivate": cmd_deactivate,
    "stop-all": cmd_stop_all,
    "restart": cmd_restart,
    "rotate": cmd_rotate,
    "target-rotation": cmd_target_rotation,
    "set-url": cmd_set_url,
    "status": cmd_status,
    "restore": cmd_restore,
    "launch": cmd_launch,
    "serve": cmd_serve,
}


async def run(args: argparse.Namespace) -> int:
    config_manager = ConfigManager(args.config)
    try:
        settings = await config_manager.load_config()
    except KioskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    level = "DEBUG" if args.verbose else settings.logging.level
    setup_logging(_log_name(args), log_dir=settings.paths.log_dir, level=level)

    ctx = build_context(config_manager, settings)
    try:
        return await COMMANDS[args.command](ctx, args)
    except KioskError as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return EXIT_ERROR
