import json
import logging
import sys

from core.logging import JSONFormatter


def _record(msg, *args, exc_info=None, **extra):
    record = logging.LogRecord("segmentation", logging.INFO, __file__, 10, msg, args, exc_info)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_renders_one_json_object():
    line = JSONFormatter().format(_record("RFM analysis %s completed", "run-1", store_code="BT-001"))

    payload = json.loads(line)
    assert payload["level"] == "INFO"
    assert payload["logger"] == "segmentation"
    assert payload["message"] == "RFM analysis run-1 completed"
    assert payload["store_code"] == "BT-001"
    assert "exception" not in payload


def test_json_formatter_includes_exception():
    try:
        raise ValueError("boom")
    except ValueError:
        record = _record("failed", exc_info=sys.exc_info())

    payload = json.loads(JSONFormatter().format(record))
    assert "ValueError: boom" in payload["exception"]
