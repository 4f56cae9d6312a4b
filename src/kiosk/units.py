"""systemd user unit rendering for the kiosk sessions."""

import shlex
import sys
from pathlib import Path
from typing import Dict, List, Optional

ROTATION_UNIT = "kiosk-rotation.service"


def unit_name(target_id: str) -> str:
    return f"kiosk-{target_id}.service"


def kioskctl_command(config_path: Optional[Path], *args: str) -> List[str]:
    """Command line that re-enters this program with the same interpreter."""
    cmd = [sys.executable, "-m", "kioskctl"]
    if config_path is not None:
        cmd.extend(["--config", str(config_path)])
    cmd.extend(args)
    return cmd


def _exec_line(cmd: List[str]) -> str:
    return " ".join(shlex.quote(arg) for arg in cmd)


def _environment_lines(environment: Dict[str, str]) -> List[str]:
    lines = []
    for key, value in environment.items():
        value = value.replace("\\", "\\\\").replace('"', '\\"')
        lines.append(f'Environment="{key}={value}"')
    return lines


def render_rotation_unit(exec_start: List[str], environment: Dict[str, str]) -> str:
    """Oneshot unit that restores the saved rotation at login."""
    lines = [
        "[Unit]",
        "Description=Restore saved kiosk display rotation",
        "After=graphical-session.target",
        "",
        "[Service]",
        "Type=oneshot",
        "RemainAfterExit=yes",
        *_environment_lines(environment),
        f"ExecStart={_exec_line(exec_start)}",
        "",
        "[Install]",
        "WantedBy=default.target",
        "",
    ]
    return "\n".join(lines)


def render_kiosk_unit(description: str, exec_start: List[str], environment: Dict[str, str],
                      restart_sec: int = 10) -> str:
    """Long-running unit for one target's launcher.

    Restarts are unlimited (``StartLimitIntervalSec=0``) and spaced by
    ``restart_sec``.
    """
    lines = [
        "[Unit]",
        f"Description=Kiosk: {description}",
        f"After=graphical-session.target network-online.target {ROTATION_UNIT}",
        "Wants=network-online.target",
        "StartLimitIntervalSec=0",
        "",
        "[Service]",
        "Type=simple",
        *_environment_lines(environment),
        f"ExecStart={_exec_line(exec_start)}",
        "Restart=always",
        f"RestartSec={restart_sec}",
        "KillSignal=SIGTERM",
        "TimeoutStopSec=15",
        "",
        "[Install]",
        "WantedBy=default.target",
        "",
    ]
    return "\n".join(lines)
