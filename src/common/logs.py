"""Logging setup shared by the kiosk processes."""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [PID:%(process)d] %(funcName)s:%(lineno)d - %(message)s'
SYSLOG_FORMAT = 'kiosk[%(process)d]: %(levelname)s - %(message)s'


def setup_logging(
    log_name: str,
    log_dir: Optional[Path] = None,
    level: str = "INFO",
    use_syslog: bool = True,
) -> logging.Logger:
    """Configure the root logger for one kiosk process.

    Records go to stdout (picked up by the journal), syslog when available,
    and an append-only rotating file ``<log_dir>/<log_name>.log``.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Prevent duplicate logs
    if root.handlers:
        root.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)
    console_level = getattr(logging, level.upper(), logging.INFO)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if use_syslog:
        try:
            syslog_handler = logging.handlers.SysLogHandler(address='/dev/log', facility='user')
            syslog_handler.setLevel(logging.WARNING)
            syslog_handler.setFormatter(logging.Formatter(SYSLOG_FORMAT))
            root.addHandler(syslog_handler)
        except OSError as e:
            print(f"Failed to set up syslog handler: {e}", file=sys.stderr)

    if log_dir is not None:
        try:
            log_dir = Path(log_dir).expanduser()
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_dir / f"{log_name}.log",
                mode="a",
                maxBytes=10*1024*1024,  # 10MB
                backupCount=5
            )
            file_handler.setLevel(min(console_level, logging.INFO))
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
        except OSError as e:
            print(f"Failed to set up file handler: {e}", file=sys.stderr)

    return logging.getLogger(log_name)
