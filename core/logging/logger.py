from __future__ import annotations

import logging
import os
from pathlib import Path
from subprocess import PIPE, STDOUT, Popen
from typing import List, Mapping

EXIT_COMMAND_NOT_EXECUTABLE = 126
EXIT_COMMAND_NOT_FOUND = 127


def build_logger(target: str, logs_dir: Path, log_filename: str = "qb.log") -> logging.Logger:
    logs_dir.mkdir(parents=True, exist_ok=True)
    target_log_dir = logs_dir / target
    target_log_dir.mkdir(parents=True, exist_ok=True)
    log_file = target_log_dir / log_filename

    logger = logging.getLogger(f"qb.{target}")
    logger.setLevel(logging.INFO)

    if not any(isinstance(handler, logging.FileHandler) and handler.baseFilename == str(log_file) for handler in logger.handlers):
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        if not any(type(handler) is logging.StreamHandler for handler in logger.handlers):
            stream_handler = logging.StreamHandler()
            stream_handler.setFormatter(formatter)
            logger.addHandler(stream_handler)

    return logger


def run_command(
    command: List[str],
    logger: logging.Logger,
    env: Mapping[str, str] | None = None,
    cwd: Path | None = None,
) -> int:
    """Exécute une commande et renvoie son code de sortie.

    La sortie (stdout + stderr) est relayée ligne à ligne dans `logger`.
    `env` complète l'environnement du processus courant pour ce seul
    sous-processus ; son contenu n'est jamais journalisé.
    """

    logger.info("$ %s", " ".join(command))
    process_env = None
    if env:
        process_env = dict(os.environ)
        process_env.update(env)

    try:
        process = Popen(command, cwd=cwd, env=process_env, stdout=PIPE, stderr=STDOUT, text=True)
    except FileNotFoundError:
        logger.error("Binaire introuvable: %s", command[0])
        return EXIT_COMMAND_NOT_FOUND
    except PermissionError:
        logger.error("Binaire non exécutable: %s", command[0])
        return EXIT_COMMAND_NOT_EXECUTABLE

    with process:
        assert process.stdout is not None
        for line in process.stdout:
            logger.info(line.rstrip())

    return process.returncode
