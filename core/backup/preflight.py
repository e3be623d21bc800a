from __future__ import annotations

import logging
import subprocess
import time
from typing import Callable

from core.errors import EXIT_OFFLINE, QbError
from runner.config_store import TargetConfig

PING_TIMEOUT = 5  # secondes


class NetworkUnreachable(QbError):
    """Hôte injoignable après toutes les tentatives."""

    exit_code = EXIT_OFFLINE


def ping_host(host: str) -> bool:
    """Envoie un unique echo ICMP vers `host`."""

    try:
        result = subprocess.run(
            ["ping", "-c", "1", "-W", str(PING_TIMEOUT), host],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except FileNotFoundError:
        return False
    return result.returncode == 0


def ensure_online(
    config: TargetConfig,
    logger: logging.Logger,
    probe: Callable[[str], bool] = ping_host,
) -> None:
    """Bloque tant que `config.ping_host` ne répond pas.

    Sans `ping_host` la vérification est considérée comme satisfaite.

    Raises:
        NetworkUnreachable: après `ping_retries` échecs consécutifs.
    """

    host = config.ping_host
    if not host:
        return

    retries = config.ping_retries
    interval = config.ping_interval
    for attempt in range(1, retries + 1):
        if probe(host):
            logger.info("Hôte %s joignable (tentative %s/%s)", host, attempt, retries)
            return
        if attempt < retries:
            logger.warning(
                "Hôte %s injoignable (tentative %s/%s), nouvel essai dans %ss",
                host,
                attempt,
                retries,
                interval,
            )
            time.sleep(interval)

    message = f"Hôte {host} injoignable après {retries} tentative(s)"
    logger.error(message)
    raise NetworkUnreachable(message)
