"""Root conftest: applies .env.test before message_sync.config is imported."""
from __future__ import annotations

import os
from pathlib import Path


def _apply_env_file(path: Path) -> None:
    if not path.exists():
        return
    for raw in path.read_text().splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, _, value = line.partition("=")
        os.environ.setdefault(key.strip(), value.strip())


_apply_env_file(Path(__file__).resolve().parent / ".env.test")
