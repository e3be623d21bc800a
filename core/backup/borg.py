"""Opérations borg d'une cible : create, prune, check.

Chaque opération renvoie le code de sortie de borg sans interrompre le
processus ; c'est à l'appelant de décider de la suite.
"""
from __future__ import annotations

import logging
import os
from typing import List

from core.errors import EXIT_NO_PATHS, QbError
from core.logging.logger import run_command
from runner.config_store import TargetConfig

BORG_BIN = os.getenv("QB_BORG_BIN", "borg")
EXIT_SUCCESS = 0


class NoPathsSpecified(QbError):
    exit_code = EXIT_NO_PATHS

    def __init__(self, target: str) -> None:
        super().__init__(f"Aucun chemin à sauvegarder pour {target} (clé 'paths' vide)")


def archive_glob(config: TargetConfig) -> str:
    return f"{config.archive_prefix}*"


def build_create_command(config: TargetConfig) -> List[str]:
    if not config.paths:
        raise NoPathsSpecified(config.name)

    cmd = [
        BORG_BIN,
        "create",
        "--verbose",
        "--filter",
        "AME",
        "--list",
        "--stats",
        "--show-rc",
        "--compression",
        config.compression,
        "--exclude-caches",
    ]
    for pattern in config.excludes:
        cmd.extend(["--exclude", pattern])

    # {now} est substitué par borg au moment de la création
    cmd.append(f"::{config.archive_prefix}{{now}}")
    cmd.extend(config.paths)
    return cmd


def build_prune_command(config: TargetConfig) -> List[str]:
    return [
        BORG_BIN,
        "prune",
        "--list",
        "--show-rc",
        "--glob-archives",
        archive_glob(config),
        "--keep-last",
        str(config.keep_last),
        "--keep-daily",
        str(config.keep_daily),
        "--keep-weekly",
        str(config.keep_weekly),
        "--keep-monthly",
        str(config.keep_monthly),
        "--keep-yearly",
        str(config.keep_yearly),
    ]


def build_check_command(config: TargetConfig) -> List[str]:
    return [BORG_BIN, "check", "--show-rc", "--glob-archives", archive_glob(config)]


def create(config: TargetConfig, logger: logging.Logger) -> int:
    """Crée une nouvelle archive.

    Raises:
        NoPathsSpecified: si la cible ne déclare aucun chemin (borg n'est pas lancé).
    """

    return _run_operation("Création de l'archive", build_create_command(config), config, logger)


def prune(config: TargetConfig, logger: logging.Logger) -> int:
    return _run_operation("Purge des anciennes archives", build_prune_command(config), config, logger)


def check(config: TargetConfig, logger: logging.Logger) -> int:
    return _run_operation("Vérification du dépôt", build_check_command(config), config, logger)


def _run_operation(label: str, command: List[str], config: TargetConfig, logger: logging.Logger) -> int:
    logger.info("=== %s (%s) démarrée ===", label, config.name)
    status = run_command(command, logger=logger, env=config.engine_env())
    if status == EXIT_SUCCESS:
        logger.info("=== %s (%s) terminée ===", label, config.name)
    else:
        logger.error("=== %s (%s) échouée (code %s) ===", label, config.name, status)
    return status
