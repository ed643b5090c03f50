"""Project path constants - single source of truth for file locations."""

from pathlib import Path

import pyrootutils


def _find_project_root() -> Path:
    """Find the repository root (contains pyproject.toml).

    Falls back to the working directory when the package is installed
    outside a checkout.
    """
    try:
        return pyrootutils.find_root(search_from=__file__, indicator="pyproject.toml")
    except FileNotFoundError:
        return Path.cwd()


# Project root (contains pyproject.toml)
ROOT = _find_project_root()

# Change-units ship inside the package
MIGRATIONS_DIR = Path(__file__).parent / "migrations"

DATA_DIR = ROOT / "data"
DEFAULT_DB = DATA_DIR / "projects.db"
BACKUPS_DIR = DATA_DIR / "backups"
CONFIG_TOML = ROOT / "config.toml"
ENV_FILE = ROOT / ".env"
