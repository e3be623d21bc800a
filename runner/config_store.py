"""Configuration déclarative des cibles de sauvegarde.

Une cible = un fichier JSON `<config_dir>/<nom>.json`. Le fichier est lu et
validé, jamais exécuté.
"""
from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from core.errors import (
    EXIT_INVALID_CONFIG,
    EXIT_INVALID_TARGET,
    EXIT_MISSING_FIELD,
    EXIT_MISSING_TARGET,
    EXIT_TARGET_NOT_FOUND,
    QbError,
)

SYSTEM_CONFIG_DIR = Path("/etc/qb")
SYSTEM_LOGS_DIR = Path("/var/log/qb")
CONFIG_SUFFIX = ".json"

DEFAULT_ARCHIVE_PREFIX = "{user}@{hostname}_"
DEFAULT_COMPRESSION = "zstd,7"
DEFAULT_KEEP_LAST = 0
DEFAULT_KEEP_DAILY = 7
DEFAULT_KEEP_WEEKLY = 4
DEFAULT_KEEP_MONTHLY = 6
DEFAULT_KEEP_YEARLY = 0
DEFAULT_PING_INTERVAL = 5  # secondes
DEFAULT_PING_RETRIES = 5

REQUIRED_FIELDS = ("repo", "passphrase")
RETENTION_FIELDS = ("keep_last", "keep_daily", "keep_weekly", "keep_monthly", "keep_yearly")
_TARGET_NAME_RE = re.compile(r"[A-Za-z0-9_@+-][A-Za-z0-9._@+-]*")


class ConfigError(QbError):
    """Erreur de configuration : fatale, jamais retentée."""


class MissingTargetName(ConfigError):
    exit_code = EXIT_MISSING_TARGET

    def __init__(self) -> None:
        super().__init__("Aucune cible indiquée (usage: qb <commande> <cible>)")


class InvalidTargetName(ConfigError):
    exit_code = EXIT_INVALID_TARGET

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Nom de cible invalide: {name!r} (lettres, chiffres et ._@+- uniquement, sans '.' initial)"
        )
        self.name = name


class TargetFileNotFound(ConfigError):
    exit_code = EXIT_TARGET_NOT_FOUND

    def __init__(self, name: str, path: Path) -> None:
        super().__init__(f"Configuration introuvable pour {name}: {path}. Créez-la avec `qb edit {name}`")
        self.name = name
        self.path = path


class MissingRequiredField(ConfigError):
    exit_code = EXIT_MISSING_FIELD

    def __init__(self, field_name: str, path: Path) -> None:
        super().__init__(f"Clé obligatoire absente ou vide dans {path}: {field_name}")
        self.field_name = field_name


class InvalidConfigFile(ConfigError):
    exit_code = EXIT_INVALID_CONFIG


@dataclass
class TargetConfig:
    name: str
    repo: str
    passphrase: str = field(repr=False)
    paths: List[str] = field(default_factory=list)
    archive_prefix: str = DEFAULT_ARCHIVE_PREFIX
    compression: str = DEFAULT_COMPRESSION
    excludes: List[str] = field(default_factory=list)
    keep_last: int = DEFAULT_KEEP_LAST
    keep_daily: int = DEFAULT_KEEP_DAILY
    keep_weekly: int = DEFAULT_KEEP_WEEKLY
    keep_monthly: int = DEFAULT_KEEP_MONTHLY
    keep_yearly: int = DEFAULT_KEEP_YEARLY
    monitoring_id: Optional[str] = None
    ping_host: Optional[str] = None
    ping_interval: int = DEFAULT_PING_INTERVAL
    ping_retries: int = DEFAULT_PING_RETRIES

    def engine_env(self) -> Dict[str, str]:
        """Variables passées au seul sous-processus borg."""

        return {"BORG_REPO": self.repo, "BORG_PASSPHRASE": self.passphrase}


EXAMPLE_CONFIG: Dict[str, object] = {
    "repo": "ssh://user@backup.example.org/./borg",
    "passphrase": "change-me",
    "paths": ["/etc", "/home"],
    "excludes": ["/home/*/.cache", "*.tmp"],
    "archive_prefix": DEFAULT_ARCHIVE_PREFIX,
    "compression": DEFAULT_COMPRESSION,
    "keep_last": DEFAULT_KEEP_LAST,
    "keep_daily": DEFAULT_KEEP_DAILY,
    "keep_weekly": DEFAULT_KEEP_WEEKLY,
    "keep_monthly": DEFAULT_KEEP_MONTHLY,
    "keep_yearly": DEFAULT_KEEP_YEARLY,
    "monitoring_id": None,
    "ping_host": None,
    "ping_interval": DEFAULT_PING_INTERVAL,
    "ping_retries": DEFAULT_PING_RETRIES,
}


def is_privileged() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


def _xdg_dir(variable: str, fallback: str) -> Path:
    base = os.environ.get(variable)
    if base:
        return Path(base)
    return Path.home() / fallback


def resolve_config_dir() -> Path:
    if is_privileged():
        return SYSTEM_CONFIG_DIR
    return _xdg_dir("XDG_CONFIG_HOME", ".config") / "qb"


def resolve_logs_dir() -> Path:
    if is_privileged():
        return SYSTEM_LOGS_DIR
    return _xdg_dir("XDG_STATE_HOME", ".local/state") / "qb" / "logs"


class TargetConfigStore:
    def __init__(self, config_dir: Path) -> None:
        self.config_dir = Path(config_dir)

    def path_for(self, name: Optional[str]) -> Path:
        if not name:
            raise MissingTargetName()
        if not _TARGET_NAME_RE.fullmatch(name):
            raise InvalidTargetName(name)
        return self.config_dir / f"{name}{CONFIG_SUFFIX}"

    def list_targets(self) -> List[str]:
        if not self.config_dir.is_dir():
            return []
        return sorted(p.stem for p in self.config_dir.iterdir() if p.is_file() and p.suffix == CONFIG_SUFFIX)

    def load(self, name: Optional[str]) -> TargetConfig:
        path = self.path_for(name)
        if not path.is_file():
            raise TargetFileNotFound(name, path)

        try:
            with path.open("r", encoding="utf-8") as f:
                payload = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:  # noqa: B904 - message métier
            raise InvalidConfigFile(f"Configuration {path} invalide: {exc}") from exc
        except OSError as exc:
            raise InvalidConfigFile(f"Configuration {path} illisible: {exc.strerror or exc}") from exc

        _validate_payload(payload, path)

        for required in REQUIRED_FIELDS:
            if not payload.get(required):
                raise MissingRequiredField(required, path)

        return _build_config(name, payload)

    def write_example(self, name: Optional[str]) -> Path:
        """Écrit un exemple de configuration si la cible n'existe pas encore."""

        path = self.path_for(name)
        if path.exists():
            return path

        self.config_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(EXAMPLE_CONFIG, f, indent=2)
            f.write("\n")
        return path


def _build_config(name: str, payload: Dict[str, object]) -> TargetConfig:
    excludes: List[str] = []
    for pattern in payload.get("excludes") or []:
        if pattern not in excludes:
            excludes.append(pattern)

    values = {key: value for key, value in payload.items() if value is not None}
    values["paths"] = list(payload.get("paths") or [])
    values["excludes"] = excludes
    return TargetConfig(name=name, **values)


def _validate_payload(payload: object, path: Path) -> None:
    if not isinstance(payload, dict):
        raise InvalidConfigFile(f"Configuration {path} doit être un objet JSON")

    unknown = sorted(set(payload) - set(EXAMPLE_CONFIG))
    if unknown:
        raise InvalidConfigFile(f"Clé(s) inconnue(s) dans {path}: {', '.join(unknown)}")

    for key in ("repo", "passphrase"):
        value = payload.get(key)
        if value is not None and not isinstance(value, str):
            raise InvalidConfigFile(f"La clé '{key}' doit être une chaîne")

    for key in ("archive_prefix", "compression", "monitoring_id", "ping_host"):
        value = payload.get(key)
        if value is not None and (not isinstance(value, str) or not value.strip()):
            raise InvalidConfigFile(f"La clé '{key}' doit être une chaîne non vide")

    for key in ("paths", "excludes"):
        value = payload.get(key)
        if value is not None and (not isinstance(value, list) or not all(isinstance(v, str) and v for v in value)):
            raise InvalidConfigFile(f"La clé '{key}' doit être une liste de chaînes")

    for key in RETENTION_FIELDS:
        value = payload.get(key)
        if value is None:
            continue
        if not _is_int(value) or value < 0:
            raise InvalidConfigFile(f"La clé '{key}' doit être un entier positif ou nul")

    for key in ("ping_interval", "ping_retries"):
        value = payload.get(key)
        if value is None:
            continue
        if not _is_int(value) or value <= 0:
            raise InvalidConfigFile(f"La clé '{key}' doit être un entier strictement positif")


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
