"""First-time setup: records, systemd units and the rotation service."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from common.exceptions import StoreWriteError
from config.envfile import atomic_write_text
from config.models import SystemDisplayState
from config.schema import Settings
from config.store import KioskStore
from .units import (
    ROTATION_UNIT, kioskctl_command, render_kiosk_unit, render_rotation_unit, unit_name
)


@dataclass
class ProvisionReport:
    """What a provisioning run created or changed."""
    output_identifier: str
    display_created: bool = False
    targets_created: List[str] = field(default_factory=list)
    units_written: List[Path] = field(default_factory=list)
    rotation_enabled: bool = False


class Provisioner:
    """Writes missing records and (re)renders the kiosk units.

    Existing records are never overwritten, so operator edits survive a
    second run; unit files are always regenerated.
    """

    def __init__(self, settings: Settings, store: KioskStore, tool, services,
                 config_path: Optional[Path] = None):
        """Initialize provisioner."""
        self.settings = settings
        self.store = store
        self.tool = tool
        self.services = services
        self.config_path = config_path
        self.logger = logging.getLogger(__name__)

    async def run(self, enable_rotation: bool = True) -> ProvisionReport:
        """Provision everything; returns what was done."""
        self.logger.info("Provisioning kiosk")
        report = ProvisionReport(output_identifier=self.settings.display.default_output)

        if self.store.display_path.is_file():
            state = await self.store.load_display_state()
            report.output_identifier = state.output_identifier
        else:
            report.output_identifier = await self._detect_output()
            await self.store.save_display_state(SystemDisplayState(
                output_identifier=report.output_identifier,
                saved_orientation=self.settings.display.default_orientation,
            ))
            report.display_created = True
            self.logger.info(f"Display output set to {report.output_identifier}")

        for spec in self.settings.targets:
            if await self.store.has_target(spec.id):
                self.logger.debug(f"Target {spec.id} already provisioned")
                continue
            await self.store.save_target(spec.to_target())
            report.targets_created.append(spec.id)
            self.logger.info(f"Created target {spec.id}")

        report.units_written = await self.write_units()
        await self.services.daemon_reload()

        if enable_rotation:
            await self.services.enable(ROTATION_UNIT)
            report.rotation_enabled = True

        self.logger.info("Provisioning complete")
        return report

    async def _detect_output(self) -> str:
        fallback = self.settings.display.default_output
        output = await self.tool.detect_output()
        if not output:
            self.logger.warning(f"Could not detect display output, using {fallback}")
            return fallback
        return output

    async def write_units(self) -> List[Path]:
        """Render the rotation unit and one unit per target record."""
        unit_dir = self.settings.paths.unit_dir
        environment = self.settings.session.environment
        written = []

        rotation = render_rotation_unit(kioskctl_command(self.config_path, "restore"), environment)
        written.append(self._write_unit(unit_dir / ROTATION_UNIT, rotation))

        for target_id in await self.store.list_target_ids():
            target = await self.store.load_target(target_id)
            unit = render_kiosk_unit(
                target.label,
                kioskctl_command(self.config_path, "launch", target_id),
                environment,
                restart_sec=self.settings.session.restart_sec,
            )
            written.append(self._write_unit(unit_dir / unit_name(target_id), unit))

        return written

    def _write_unit(self, path: Path, content: str) -> Path:
        try:
            atomic_write_text(path, content)
        except OSError as e:
            raise StoreWriteError(f"Failed to write unit {path}: {e}", path) from e
        self.logger.info(f"Wrote {path}")
        return path
