"""Persisted kiosk target and display state records."""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from common.exceptions import (
    StoreReadError, StoreWriteError, TargetNotFoundError, UnknownOrientationError
)
from .envfile import read_env_file, write_env_file
from .models import (
    DEFAULT_OUTPUT, KioskTarget, Orientation, SystemDisplayState, is_valid_target_id
)

DISPLAY_RECORD = "display"


class KioskStore:
    """Durable key=value records for kiosk targets and the display.

    Every write replaces a whole record atomically; there are no partial
    field updates. Writers are expected to be a single actor at a time, but
    readers in other processes may read at any moment.
    """

    def __init__(
        self,
        env_dir: Path,
        default_output: str = DEFAULT_OUTPUT,
        default_orientation: Orientation = Orientation.PORTRAIT_RIGHT,
        legacy_rotation_file: Optional[Path] = None,
    ):
        """Initialize store."""
        self.env_dir = Path(env_dir)
        self.default_output = default_output
        self.default_orientation = default_orientation
        self.legacy_rotation_file = Path(legacy_rotation_file) if legacy_rotation_file else None
        self.logger = logging.getLogger(__name__)

    @property
    def display_path(self) -> Path:
        return self.env_dir / f"{DISPLAY_RECORD}.env"

    def target_path(self, target_id: str) -> Path:
        if not is_valid_target_id(target_id) or target_id == DISPLAY_RECORD:
            raise TargetNotFoundError(target_id)
        return self.env_dir / f"{target_id}.env"

    def _read(self, path: Path) -> Dict[str, str]:
        try:
            return read_env_file(path)
        except (OSError, UnicodeDecodeError, ValueError) as e:
            raise StoreReadError(f"Failed to read {path}: {e}", path) from e

    def _write(self, path: Path, values: Dict[str, str], header: str) -> None:
        try:
            write_env_file(path, values, header)
        except OSError as e:
            raise StoreWriteError(f"Failed to write {path}: {e}", path) from e

    async def has_target(self, target_id: str) -> bool:
        """Check whether a target record exists."""
        try:
            return self.target_path(target_id).is_file()
        except TargetNotFoundError:
            return False

    async def list_target_ids(self) -> List[str]:
        """List ids of all target records on disk."""
        if not self.env_dir.is_dir():
            return []
        return sorted(
            path.stem for path in self.env_dir.glob("*.env")
            if path.stem != DISPLAY_RECORD and is_valid_target_id(path.stem)
        )

    async def load_target(self, target_id: str) -> KioskTarget:
        """Load a target record.

        Raises:
            TargetNotFoundError: if the target was never provisioned.
            StoreReadError: if the record cannot be parsed.
        """
        path = self.target_path(target_id)
        if not path.is_file():
            raise TargetNotFoundError(target_id)

        values = self._read(path)
        raw_rotation = values.get("ROTATION_MODE", "")
        try:
            orientation = Orientation.normalize(raw_rotation) if raw_rotation else self.default_orientation
        except UnknownOrientationError:
            self.logger.warning(
                f"Target {target_id} has unknown rotation {raw_rotation!r}, "
                f"using {Orientation.PORTRAIT_RIGHT.canonical}"
            )
            orientation = Orientation.PORTRAIT_RIGHT

        try:
            return KioskTarget(
                id=target_id,
                display_name=values.get("KIOSK_NAME", ""),
                url=values.get("KIOSK_URL", ""),
                preferred_orientation=orientation,
            )
        except ValidationError as e:
            raise StoreReadError(f"Invalid target record {path}: {e}", path) from e

    async def save_target(self, target: KioskTarget) -> None:
        """Replace a target record.

        Raises:
            StoreWriteError: if the record cannot be written.
        """
        path = self.target_path(target.id)
        values = {
            "KIOSK_NAME": target.display_name,
            "KIOSK_URL": target.url,
            "ROTATION_MODE": target.preferred_orientation.canonical,
        }
        self._write(path, values, f"Kiosk target: {target.id}")
        self.logger.debug(f"Saved target {target.id} to {path}")

    async def load_display_state(self) -> SystemDisplayState:
        """Load the display record, or the defaults if none exists yet.

        A stored orientation that does not normalize is replaced with
        PORTRAIT_RIGHT and the corrected record is written back. A record
        that cannot be parsed at all is replaced the same way, with the
        default output.
        """
        if not self.display_path.is_file():
            return SystemDisplayState(
                output_identifier=self.default_output,
                saved_orientation=self._legacy_orientation() or self.default_orientation,
            )

        try:
            values = self._read(self.display_path)
        except StoreReadError as e:
            self.logger.warning(f"{e}; rewriting display record with defaults")
            state = SystemDisplayState(
                output_identifier=self.default_output,
                saved_orientation=Orientation.PORTRAIT_RIGHT,
            )
            await self.save_display_state(state)
            return state
        output = values.get("DISPLAY_OUTPUT") or self.default_output
        raw_rotation = values.get("SAVED_ROTATION")
        if raw_rotation is None:
            raw_rotation = self._legacy_value()

        try:
            orientation = Orientation.normalize(raw_rotation)
        except UnknownOrientationError:
            orientation = Orientation.PORTRAIT_RIGHT
            self.logger.warning(
                f"Saved rotation {raw_rotation!r} is not recognised, "
                f"correcting to {orientation.canonical}"
            )
            state = SystemDisplayState(output_identifier=output, saved_orientation=orientation)
            await self.save_display_state(state)
            return state

        return SystemDisplayState(output_identifier=output, saved_orientation=orientation)

    async def save_display_state(self, state: SystemDisplayState) -> None:
        """Replace the display record.

        Raises:
            StoreWriteError: if the record cannot be written.
        """
        values = {
            "DISPLAY_OUTPUT": state.output_identifier,
            "SAVED_ROTATION": state.saved_orientation.canonical,
        }
        self._write(self.display_path, values, "Display output and rotation restored at boot")
        self.logger.debug(
            f"Saved display state: {state.output_identifier} {state.saved_orientation.canonical}"
        )

    def _legacy_value(self) -> Optional[str]:
        if self.legacy_rotation_file and self.legacy_rotation_file.is_file():
            try:
                return self.legacy_rotation_file.read_text(encoding="utf-8").strip()
            except OSError as e:
                self.logger.warning(f"Failed to read {self.legacy_rotation_file}: {e}")
        return None

    def _legacy_orientation(self) -> Optional[Orientation]:
        value = self._legacy_value()
        if value is None:
            return None
        try:
            return Orientation.normalize(value)
        except UnknownOrientationError:
            return None
