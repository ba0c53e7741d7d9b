import json
import logging

import pytest
from pythonjsonlogger import jsonlogger

from app.core import logging as app_logging


@pytest.fixture
def fresh_app_logger(monkeypatch):
    logger = logging.getLogger("app")
    saved = (logger.handlers[:], logger.level)
    monkeypatch.setattr(app_logging, "_configured", False)
    yield logger
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])


def test_json_format_emits_one_object_per_line(fresh_app_logger, capsys):
    app_logging.setup_logging("INFO", "json")
    logging.getLogger("app.services.verification").info("Broker %s moved to %s", "b-1", "VERIFIED")

    line = capsys.readouterr().out.strip().splitlines()[-1]
    record = json.loads(line)
    assert record["message"] == "Broker b-1 moved to VERIFIED"
    assert record["levelname"] == "INFO"
    assert record["name"] == "app.services.verification"


def test_setup_is_applied_once(fresh_app_logger):
    first = app_logging.setup_logging("DEBUG", "text")
    second = app_logging.setup_logging("WARNING", "json")

    assert first is second
    assert len(second.handlers) == 1
    assert not isinstance(second.handlers[0].formatter, jsonlogger.JsonFormatter)
    assert second.level == logging.WARNING
