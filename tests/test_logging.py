import json
import logging

from psychnorm.core.logging import JsonFormatter, correlation_context, get_correlation_id, get_logger


def _record(logger_name: str, message: str, **structured) -> logging.LogRecord:
    record = logging.LogRecord(logger_name, logging.INFO, __file__, 1, message, None, None)
    record.structured_data = structured
    return record


def test_json_formatter_merges_structured_fields():
    payload = json.loads(JsonFormatter().format(_record("psychnorm.test", "table_selected", table_id=3)))
    assert payload["event"] == "table_selected"
    assert payload["level"] == "INFO"
    assert payload["table_id"] == 3


def test_correlation_id_is_bound_within_context():
    assert get_correlation_id() is None
    with correlation_context("abc-123") as cid:
        assert cid == "abc-123"
        payload = json.loads(JsonFormatter().format(_record("psychnorm.test", "event")))
        assert payload["correlation_id"] == "abc-123"
    assert get_correlation_id() is None


def test_adapter_defaults_merge_with_call_fields(caplog):
    logger = get_logger("psychnorm.test.adapter", component="selector")
    with caplog.at_level(logging.INFO, logger="psychnorm.test.adapter"):
        logger.info("ranked", extra={"structured_data": {"candidates": 2}})
    (record,) = [r for r in caplog.records if r.name == "psychnorm.test.adapter"]
    assert record.structured_data == {"component": "selector", "candidates": 2}
