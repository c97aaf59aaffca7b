import io
import json
import logging
import sys

import pytest

from procspec.result import ResultShape
from procspec.utils.logging import HANDLER_NAME, ExecutionFormatter, configure_logging, get_logger, log_execution


@pytest.fixture
def procspec_logger():
    root = logging.getLogger("procspec")
    level = root.level
    yield root
    for handler in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)


def test_get_logger_namespace():
    assert get_logger().name == "procspec"
    assert get_logger("executor").name == "procspec.executor"
    assert get_logger("procspec.base").name == "procspec.base"
    assert get_logger("executor").filters == []


def test_execution_formatter_lifts_fields():
    record = logging.LogRecord("procspec.base", logging.DEBUG, __file__, 10, "Executing %s", ("GET_RULES",), None)
    record.extra_fields = {"descriptor": "GET_RULES", "shape": "integer", "scheme": "sqlite"}

    entry = json.loads(ExecutionFormatter().format(record))

    assert entry["message"] == "Executing GET_RULES"
    assert entry["level"] == "DEBUG"
    assert entry["logger"] == "procspec.base"
    assert (entry["descriptor"], entry["shape"], entry["scheme"]) == ("GET_RULES", "integer", "sqlite")
    assert "exception" not in entry


def test_execution_formatter_includes_exception():
    try:
        raise ValueError("bad row")
    except ValueError:
        record = logging.LogRecord("procspec.result", logging.DEBUG, __file__, 1, "release", None, sys.exc_info())

    entry = json.loads(ExecutionFormatter().format(record))

    assert "ValueError: bad row" in entry["exception"]


def test_log_execution_fields(caplog):
    logger = get_logger("test_execution")

    with caplog.at_level(logging.DEBUG, logger="procspec.test_execution"):
        log_execution(logger, "Executing statement", descriptor="RAISE_PRICE", shape=ResultShape.NONE, scheme="")
        log_execution(logger, "Executing statement", descriptor=None, shape=ResultShape.typed(int), scheme="odbc")

    first, second = caplog.records
    assert first.getMessage() == "Executing statement: RAISE_PRICE (none, <none>)"
    assert first.extra_fields == {"descriptor": "RAISE_PRICE", "shape": "none", "scheme": ""}
    assert second.getMessage() == "Executing statement: <raw> (typed[int], odbc)"
    assert second.extra_fields == {"descriptor": None, "shape": "typed[int]", "scheme": "odbc"}


def test_log_execution_skipped_when_disabled(caplog):
    logger = get_logger("test_disabled")

    with caplog.at_level(logging.INFO, logger="procspec.test_disabled"):
        log_execution(logger, "Executing statement", descriptor="Q", shape=ResultShape.TEXT, scheme="sqlite")

    assert caplog.records == []


def test_configure_logging_structured(procspec_logger):
    stream = io.StringIO()
    configure_logging("debug", structured=True, stream=stream)

    log_execution(
        get_logger("base"), "Executing statement", descriptor="COUNT", shape=ResultShape.INTEGER, scheme="sqlite"
    )

    assert procspec_logger.level == logging.DEBUG
    entry = json.loads(stream.getvalue().splitlines()[-1])
    assert entry["descriptor"] == "COUNT"
    assert entry["shape"] == "integer"
    assert entry["scheme"] == "sqlite"


def test_configure_logging_replaces_own_handler(procspec_logger):
    foreign = logging.NullHandler()
    procspec_logger.addHandler(foreign)
    try:
        first = configure_logging("INFO", stream=io.StringIO())
        second = configure_logging("WARNING", stream=io.StringIO())

        assert first not in procspec_logger.handlers
        assert second in procspec_logger.handlers
        assert foreign in procspec_logger.handlers
        assert not isinstance(second.formatter, ExecutionFormatter)
        assert procspec_logger.level == logging.WARNING
    finally:
        procspec_logger.removeHandler(foreign)
