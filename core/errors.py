"""Codes de sortie et erreur de base de qb.

Chaque module possède ses propres erreurs métier ; elles héritent toutes de
`QbError` et portent le code de sortie que la CLI renvoie tel quel.
"""
from __future__ import annotations

EXIT_OK = 0
EXIT_UNKNOWN_COMMAND = 1
EXIT_RUN_FAILED = 2
EXIT_MISSING_TARGET = 10
EXIT_TARGET_NOT_FOUND = 11
EXIT_MISSING_FIELD = 12
EXIT_INVALID_TARGET = 13
EXIT_INVALID_CONFIG = 14
EXIT_NO_PATHS = 20
EXIT_OFFLINE = 30


class QbError(Exception):
    """Erreur fatale : interrompt la commande avec `exit_code`."""

    exit_code: int = EXIT_UNKNOWN_COMMAND
