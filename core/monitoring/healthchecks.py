"""Signaux de supervision (compatible healthchecks.io).

Best effort : une erreur de supervision est journalisée puis ignorée, elle
ne change jamais le résultat d'une sauvegarde.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from runner.config_store import TargetConfig

HC_BASE_URL = os.getenv("QB_HC_URL", "https://hc-ping.com")
DEFAULT_SIGNAL_TIMEOUT = 10  # secondes


@dataclass
class MonitoringReporter:
    monitoring_id: Optional[str]
    logger: logging.Logger
    base_url: str = HC_BASE_URL
    timeout: int = DEFAULT_SIGNAL_TIMEOUT

    @classmethod
    def from_config(cls, config: TargetConfig, logger: logging.Logger) -> "MonitoringReporter":
        return cls(monitoring_id=config.monitoring_id, logger=logger)

    def start(self) -> bool:
        return self._signal("start", "/start")

    def success(self) -> bool:
        return self._signal("success", "")

    def failure(self) -> bool:
        return self._signal("failure", "/fail")

    def _signal(self, event: str, suffix: str) -> bool:
        if not self.monitoring_id:
            self.logger.info("Supervision désactivée (monitoring_id absent), signal %s ignoré", event)
            return False

        url = f"{self.base_url.rstrip('/')}/{self.monitoring_id}{suffix}"
        try:
            req = Request(url, method="GET")
            with urlopen(req, timeout=self.timeout) as resp:  # nosec - URL issue de la configuration
                if 200 <= resp.status < 300:
                    self.logger.info("Signal %s envoyé à la supervision", event)
                    return True
                self.logger.warning("Signal %s refusé: statut inattendu %s", event, resp.status)
        except (HTTPError, URLError) as exc:
            self.logger.warning("Signal %s non envoyé: erreur HTTP: %s", event, exc)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("Signal %s non envoyé: erreur non prévue: %s", event, exc)
        return False
