import logging
import sys

from core.logging.logger import EXIT_COMMAND_NOT_EXECUTABLE, EXIT_COMMAND_NOT_FOUND, build_logger, run_command


def test_build_logger_writes_target_log(tmp_path):
    logger = build_logger("laptop", tmp_path)
    logger.info("hello")

    again = build_logger("laptop", tmp_path)
    assert again is logger
    assert sum(isinstance(h, logging.FileHandler) for h in logger.handlers) == 1

    for handler in logger.handlers:
        handler.flush()
    assert "hello" in (tmp_path / "laptop" / "qb.log").read_text(encoding="utf-8")


def test_run_command_streams_output_and_returns_status(caplog):
    logger = logging.getLogger("tests.logger")
    script = "import os, sys; print(os.environ['QB_TEST_SECRET']); sys.exit(3)"

    with caplog.at_level(logging.INFO, logger="tests.logger"):
        status = run_command([sys.executable, "-c", script], logger, env={"QB_TEST_SECRET": "visible-in-child"})

    assert status == 3
    assert "visible-in-child" in caplog.text
    assert "QB_TEST_SECRET=" not in caplog.text


def test_run_command_missing_binary(caplog):
    logger = logging.getLogger("tests.logger")

    assert run_command(["qb-no-such-binary"], logger) == EXIT_COMMAND_NOT_FOUND


def test_run_command_binary_not_executable(tmp_path):
    logger = logging.getLogger("tests.logger")
    binary = tmp_path / "borg"
    binary.write_text("#!/bin/sh\nexit 0\n", encoding="utf-8")
    binary.chmod(0o644)

    assert run_command([str(binary), "check"], logger) == EXIT_COMMAND_NOT_EXECUTABLE
