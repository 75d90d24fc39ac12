import sys

from loguru import logger

from musebot.logging_config import setup_logging


def test_setup_logging_applies_level(capsys) -> None:
    try:
        setup_logging("WARNING")
        logger.info("quiet message")
        logger.warning("loud message")

        err = capsys.readouterr().err
        assert "loud message" in err
        assert "quiet message" not in err
    finally:
        logger.remove()
        logger.add(sys.stderr)


def test_setup_logging_reads_env(monkeypatch, capsys) -> None:
    monkeypatch.setenv("LOG_LEVEL", "error")
    try:
        setup_logging()
        logger.warning("filtered out")
        logger.error("kept")

        err = capsys.readouterr().err
        assert "kept" in err
        assert "filtered out" not in err
    finally:
        logger.remove()
        logger.add(sys.stderr)
