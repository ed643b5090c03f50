"""Settings resolution for the projects-db tooling.

Priority for the target database path:

1. explicit ``--db`` option (handled by the CLI)
2. ``config.toml`` ``[database] path``
3. ``DATABASE_PATH=`` line in ``.env``
4. ``data/projects.db`` under the project root

``config.toml`` may also set ``[migrations] origin`` (0 or 1) and
``[migrations] dir``, and ``[database] backups`` for the backup directory.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path

import tomlkit

from .paths import BACKUPS_DIR, CONFIG_TOML, DEFAULT_DB, ENV_FILE, MIGRATIONS_DIR, ROOT
from .validation import DEFAULT_ORIGIN

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    database: Path
    migrations_dir: Path
    origin: int = DEFAULT_ORIGIN
    backups_dir: Path = BACKUPS_DIR


def _read_toml(config_path: Path) -> dict:
    if not config_path.exists():
        return {}
    with open(config_path, "rb") as f:
        try:
            return tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            logger.warning("Ignoring unreadable %s: %s", config_path, e)
            return {}


def _read_env_database(env_file: Path) -> str | None:
    if not env_file.exists():
        return None
    with open(env_file) as f:
        for line in f:
            line = line.strip()
            if line.startswith("DATABASE_PATH="):
                return line.split("=", 1)[1].strip().strip('"').strip("'")
    return None


def load_settings(
    config_path: Path = CONFIG_TOML,
    env_file: Path = ENV_FILE,
    root: Path = ROOT,
) -> Settings:
    """Resolve settings from config.toml, .env and defaults."""
    config = _read_toml(config_path)

    database = DEFAULT_DB
    if path := config.get("database", {}).get("path"):
        database = root / path
    elif path := _read_env_database(env_file):
        database = root / path

    backups = config.get("database", {}).get("backups")
    backups_dir = root / backups if backups else BACKUPS_DIR

    migrations = config.get("migrations", {})
    migrations_dir = root / migrations["dir"] if "dir" in migrations else MIGRATIONS_DIR
    origin = int(migrations.get("origin", DEFAULT_ORIGIN))
    if origin not in (0, 1):
        raise ValueError(f"[migrations] origin must be 0 or 1, got {origin}")

    return Settings(
        database=database,
        migrations_dir=migrations_dir,
        origin=origin,
        backups_dir=backups_dir,
    )


def set_database_override(path: Path | None, config_path: Path = CONFIG_TOML, root: Path = ROOT) -> None:
    """Point config.toml at a database, or remove the override when path is None.

    Uses tomlkit so comments and unrelated sections survive the rewrite.
    """
    if config_path.exists():
        with open(config_path, "r") as f:
            config = tomlkit.load(f)
    else:
        config = tomlkit.document()

    if path is None:
        if "path" not in config.get("database", {}):
            return
        del config["database"]["path"]
        if not config["database"]:
            del config["database"]
    else:
        try:
            rel_path = path.relative_to(root)
        except ValueError:
            rel_path = path
        if "database" not in config:
            config["database"] = tomlkit.table()
        config["database"]["path"] = str(rel_path)

    with open(config_path, "w") as f:
        tomlkit.dump(config, f)
