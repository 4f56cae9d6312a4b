"""Reading and atomically writing key=value records."""

import contextlib
import os
import re
import tempfile
from pathlib import Path
from typing import Dict, Mapping, Optional

_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_ESCAPES = {'"': '"', "\\": "\\", "$": "$", "`": "`", "n": "\n"}


def _unquote(raw: str) -> str:
    if len(raw) >= 2 and raw[0] == raw[-1] == "'":
        return raw[1:-1]

    if len(raw) >= 2 and raw[0] == raw[-1] == '"':
        inner = raw[1:-1]
        chars = []
        i = 0
        while i < len(inner):
            ch = inner[i]
            if ch == "\\" and i + 1 < len(inner) and inner[i + 1] in _ESCAPES:
                chars.append(_ESCAPES[inner[i + 1]])
                i += 2
                continue
            chars.append(ch)
            i += 1
        return "".join(chars)

    if raw.startswith(("'", '"')):
        raise ValueError(f"Unterminated quoted value: {raw}")

    # Bare values may carry a trailing comment
    return raw.split(" #", 1)[0].rstrip()


def _quote(value: str) -> str:
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("$", "\\$")
        .replace("`", "\\`")
        .replace("\n", "\\n")
    )
    return f'"{escaped}"'


def parse_env(text: str) -> Dict[str, str]:
    """Parse shell-style ``KEY=value`` lines.

    Raises:
        ValueError: on a line that is not a comment, blank, or assignment.
    """
    values: Dict[str, str] = {}
    for lineno, line in enumerate(text.splitlines(), 1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].lstrip()

        key, sep, raw = line.partition("=")
        key = key.strip()
        if not sep or not _KEY_RE.match(key):
            raise ValueError(f"line {lineno}: not a KEY=value assignment")

        values[key] = _unquote(raw.strip())
    return values


def render_env(values: Mapping[str, str], header: Optional[str] = None) -> str:
    """Render values as double-quoted assignments, one per line."""
    lines = []
    if header:
        lines.extend(f"# {line}" for line in header.splitlines())
    for key, value in values.items():
        if not _KEY_RE.match(key):
            raise ValueError(f"Invalid key: {key}")
        lines.append(f"{key}={_quote(str(value))}")
    return "\n".join(lines) + "\n"


def atomic_write_text(path: Path, text: str, mode: int = 0o644) -> None:
    """Replace ``path`` with ``text`` so readers never see a partial file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise

    # Persist the rename itself; not every filesystem allows this
    with contextlib.suppress(OSError):
        dir_fd = os.open(path.parent, os.O_RDONLY)
        try:
            os.fsync(dir_fd)
        finally:
            os.close(dir_fd)


def read_env_file(path: Path) -> Dict[str, str]:
    return parse_env(Path(path).read_text(encoding="utf-8"))


def write_env_file(path: Path, values: Mapping[str, str], header: Optional[str] = None) -> None:
    atomic_write_text(path, render_env(values, header))
