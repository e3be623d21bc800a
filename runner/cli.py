"""Point d'entrée `qb <commande> <cible>`."""
from __future__ import annotations

import logging
import os
import subprocess
from typing import Callable, Optional

import typer
from typer.core import TyperGroup

from core.backup import borg, preflight
from core.backup.backup_run import backup_run
from core.errors import EXIT_UNKNOWN_COMMAND, QbError
from core.logging.logger import EXIT_COMMAND_NOT_FOUND, build_logger
from runner.config_store import (
    MissingTargetName,
    TargetConfig,
    TargetConfigStore,
    resolve_config_dir,
    resolve_logs_dir,
)


class QbGroup(TyperGroup):
    """Commande inconnue : usage puis code 1."""

    def resolve_command(self, ctx, args):
        if args and not args[0].startswith("-") and self.get_command(ctx, args[0]) is None:
            typer.echo(ctx.get_usage(), err=True)
            typer.echo(f"qb: commande inconnue: {args[0]}", err=True)
            ctx.exit(EXIT_UNKNOWN_COMMAND)
        return super().resolve_command(ctx, args)


app = typer.Typer(
    cls=QbGroup,
    add_completion=False,
    invoke_without_command=True,
    no_args_is_help=False,
    help="Orchestration des sauvegardes borg par cible (create, prune, check).",
)

@app.callback()
def _require_command(ctx: typer.Context) -> None:
    # qb sans commande : usage puis code 1
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_usage(), err=True)
        raise typer.Exit(code=EXIT_UNKNOWN_COMMAND)


TARGET_ARGUMENT = typer.Argument(None, help="Nom de la cible (fichier <cible>.json).", show_default=False)

Operation = Callable[[TargetConfig, logging.Logger], int]


def _store() -> TargetConfigStore:
    return TargetConfigStore(resolve_config_dir())


def _fail(exc: QbError) -> typer.Exit:
    typer.echo(f"qb: {exc}", err=True)
    if isinstance(exc, MissingTargetName):
        targets = _store().list_targets()
        if targets:
            typer.echo(f"Cibles disponibles: {', '.join(targets)}", err=True)
    return typer.Exit(code=exc.exit_code)


def _execute(target: Optional[str], operation: Operation, *, online: bool = True) -> None:
    try:
        config = _store().load(target)
        logger = build_logger(config.name, resolve_logs_dir())
        if online:
            preflight.ensure_online(config, logger)
        status = operation(config, logger)
    except QbError as exc:
        raise _fail(exc) from exc
    raise typer.Exit(code=status)


@app.command()
def check(target: Optional[str] = TARGET_ARGUMENT) -> None:
    """Vérifie l'intégrité des archives de la cible."""
    _execute(target, borg.check)


@app.command()
def create(target: Optional[str] = TARGET_ARGUMENT) -> None:
    """Crée une nouvelle archive."""
    _execute(target, borg.create)


@app.command()
def prune(target: Optional[str] = TARGET_ARGUMENT) -> None:
    """Purge les archives de la cible selon la rétention."""
    _execute(target, borg.prune)


@app.command()
def run(target: Optional[str] = TARGET_ARGUMENT) -> None:
    """Enchaîne create, prune et check puis notifie la supervision."""
    # backup_run fait lui-même la vérification réseau
    _execute(target, backup_run, online=False)


@app.command()
def edit(target: Optional[str] = TARGET_ARGUMENT) -> None:
    """Ouvre la configuration de la cible dans l'éditeur (exemple créé si absente)."""
    store = _store()
    try:
        path = store.write_example(target)
    except QbError as exc:
        raise _fail(exc) from exc

    editor = os.environ.get("VISUAL") or os.environ.get("EDITOR") or "vi"
    try:
        result = subprocess.run([editor, str(path)], check=False)
    except FileNotFoundError:
        typer.echo(f"qb: éditeur introuvable: {editor}", err=True)
        raise typer.Exit(code=EXIT_COMMAND_NOT_FOUND)
    raise typer.Exit(code=result.returncode)


@app.command()
def shell(target: Optional[str] = TARGET_ARGUMENT) -> None:
    """Ouvre un shell avec l'environnement borg de la cible."""

    def _spawn(config: TargetConfig, logger: logging.Logger) -> int:
        env = dict(os.environ)
        env.update(config.engine_env())
        logger.info("Shell borg ouvert pour %s", config.name)
        return subprocess.run([os.environ.get("SHELL") or "/bin/sh"], env=env, check=False).returncode

    _execute(target, _spawn, online=False)


def main() -> None:
    app(prog_name="qb")


if __name__ == "__main__":
    main()
