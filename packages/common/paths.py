"""Path helpers for project directories."""

from __future__ import annotations

from pathlib import Path


ROOT_DIR = Path(__file__).resolve().parents[2]
DATA_DIR = ROOT_DIR / "data"
API_DIR = ROOT_DIR / "apps" / "api"
ENV_FILE = API_DIR / ".env"


def integrations_dir(data_dir: Path) -> Path:
    return data_dir / "integrations"


def sync_logs_dir(data_dir: Path) -> Path:
    return data_dir / "sync_logs"


def timesheets_dir(data_dir: Path) -> Path:
    return data_dir / "timesheets"
