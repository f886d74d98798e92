from __future__ import annotations

import logging
import re
from pathlib import Path

_PASSWORD_RE = re.compile(r'(--password=)("(?:[^"\\]|\\.)*"|\S+)')


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def mask_password(command: str) -> str:
    return _PASSWORD_RE.sub(r'\1"***"', command)
