"""Cycle complet d'une cible : create, prune puis check.

- vérification réseau (fatale si l'hôte reste injoignable)
- signal de démarrage à la supervision
- create, prune et check, toujours les trois, dans cet ordre
- agrégation des codes de sortie et signal de succès ou d'échec

Prune et check sont lancés même si create échoue, pour garder la rétention
et la vérification à jour. Aucun verrou n'est pris ici : deux exécutions
simultanées sur un même dépôt reposent sur le verrou de borg.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from core.backup import borg, preflight
from core.errors import EXIT_OK, EXIT_RUN_FAILED
from core.monitoring.healthchecks import MonitoringReporter
from runner.config_store import TargetConfig


@dataclass
class RunResult:
    create: int
    prune: int
    check: int

    @property
    def succeeded(self) -> bool:
        return self.create == borg.EXIT_SUCCESS and self.prune == borg.EXIT_SUCCESS and self.check == borg.EXIT_SUCCESS

    def summary(self) -> str:
        return f"create={self.create}, prune={self.prune}, check={self.check}"


def backup_run(
    config: TargetConfig,
    logger: logging.Logger,
    reporter: Optional[MonitoringReporter] = None,
) -> int:
    """Enchaîne les trois opérations borg d'une cible.

    Args:
        config: Configuration chargée de la cible.
        logger: Logger de la cible.
        reporter: Supervision à notifier (par défaut celle de la configuration).

    Returns:
        0 si les trois opérations ont réussi, 2 sinon.

    Raises:
        NetworkUnreachable: si `ping_host` ne répond pas (aucune opération lancée).
        NoPathsSpecified: si la cible ne déclare aucun chemin (aucune opération lancée).
    """

    reporter = reporter or MonitoringReporter.from_config(config, logger)
    logger.info("=== Sauvegarde %s démarrée ===", config.name)

    preflight.ensure_online(config, logger)
    if not config.paths:
        raise borg.NoPathsSpecified(config.name)

    reporter.start()

    result = RunResult(
        create=borg.create(config, logger),
        prune=borg.prune(config, logger),
        check=borg.check(config, logger),
    )

    if result.succeeded:
        reporter.success()
        logger.info("=== Sauvegarde %s terminée avec succès (%s) ===", config.name, result.summary())
        return EXIT_OK

    reporter.failure()
    logger.error("=== Sauvegarde %s en échec (%s) ===", config.name, result.summary())
    return EXIT_RUN_FAILED
