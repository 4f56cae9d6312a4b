"""wlr-randr wrapper for output listing and transforms."""

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import Dict, List, Optional

from common.exceptions import DisplayToolError, ToolUnavailableError
from config.models import Orientation

TRANSFORMS = ("normal", "90", "180", "270")


@dataclass
class OutputInfo:
    """One output as reported by wlr-randr."""
    name: str
    description: str = ""
    enabled: bool = True
    transform: Optional[str] = None

    @property
    def orientation(self) -> Optional[Orientation]:
        return Orientation.from_transform(self.transform)

    def to_dict(self) -> Dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        orientation = self.orientation
        return {
            "name": self.name,
            "description": self.description,
            "enabled": self.enabled,
            "transform": self.transform,
            "orientation": orientation.canonical if orientation else None,
        }


def parse_outputs(text: str) -> List[OutputInfo]:
    """Parse the human-readable listing printed by ``wlr-randr``.

    Output headers start in column 0 (``HDMI-A-1 "Make Model (HDMI-A-1)"``);
    properties are indented below them.
    """
    outputs: List[OutputInfo] = []
    current: Optional[OutputInfo] = None

    for line in text.splitlines():
        if not line.strip():
            continue

        if not line[0].isspace():
            name, _, rest = line.strip().partition(" ")
            current = OutputInfo(name=name, description=rest.strip().strip('"'))
            outputs.append(current)
            continue

        if current is None:
            continue

        key, sep, value = line.strip().partition(":")
        if not sep:
            continue
        key = key.strip().lower()
        value = value.strip()
        if key == "enabled":
            current.enabled = value.lower() == "yes"
        elif key == "transform":
            current.transform = value.lower()

    return outputs


class WlrRandr:
    """Runs ``wlr-randr`` against the Wayland compositor."""

    def __init__(self, binary: str = "wlr-randr", command_timeout: float = 10,
                 env: Optional[Dict[str, str]] = None):
        """Initialize wrapper."""
        self.binary = binary
        self.command_timeout = command_timeout
        self.env = env or {}
        self.logger = logging.getLogger(__name__)

    def is_installed(self) -> bool:
        return shutil.which(self.binary) is not None

    def _run(self, args: List[str]) -> subprocess.CompletedProcess:
        env = os.environ.copy()
        env.update(self.env)
        cmd = [self.binary, *args]
        try:
            return subprocess.run(
                cmd, capture_output=True, text=True, timeout=self.command_timeout, env=env
            )
        except FileNotFoundError as e:
            raise ToolUnavailableError(f"{self.binary} not found") from e
        except subprocess.TimeoutExpired as e:
            raise ToolUnavailableError(
                f"{' '.join(cmd)} timed out after {self.command_timeout}s"
            ) from e

    async def is_ready(self) -> bool:
        """Check whether the tool can talk to the compositor."""
        if not self.is_installed():
            return False
        try:
            result = self._run(["--help"])
        except ToolUnavailableError as e:
            self.logger.debug(f"{self.binary} not ready: {e}")
            return False
        return result.returncode == 0

    async def list_outputs(self) -> List[OutputInfo]:
        """List outputs with their enabled flag and transform."""
        result = self._run([])
        if result.returncode != 0:
            raise DisplayToolError(
                f"{self.binary} exited with {result.returncode}: {result.stderr.strip()}",
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return parse_outputs(result.stdout)

    async def set_transform(self, output: str, transform: str) -> None:
        """Set the transform of one output."""
        if transform not in TRANSFORMS:
            raise ValueError(f"Unsupported transform: {transform}")

        self.logger.info(f"Setting transform {transform} on {output}")
        result = self._run(["--output", output, "--transform", transform])
        if result.returncode != 0:
            raise DisplayToolError(
                f"Failed to set transform {transform} on {output}: {result.stderr.strip()}",
                returncode=result.returncode,
                stderr=result.stderr,
            )

    async def detect_output(self) -> Optional[str]:
        """Name of the first enabled output, if any."""
        try:
            outputs = await self.list_outputs()
        except (ToolUnavailableError, DisplayToolError) as e:
            self.logger.warning(f"Could not list outputs: {e}")
            return None

        for output in outputs:
            if output.enabled:
                return output.name
        return outputs[0].name if outputs else None
