import json
import logging

from core.logging import SERVICE_NAME, JSONFormatter


def _record(msg="Computed 3 pattern insights", extra_fields=None, exc_info=None):
    record = logging.LogRecord(
        name="services.pattern_insights", level=logging.INFO, pathname=__file__,
        lineno=42, msg=msg, args=(), exc_info=exc_info,
    )
    if extra_fields is not None:
        record.extra_fields = extra_fields
    return record


def test_json_line_has_core_fields():
    entry = json.loads(JSONFormatter().format(_record()))

    assert entry["service"] == SERVICE_NAME
    assert entry["level"] == "INFO"
    assert entry["logger"] == "services.pattern_insights"
    assert entry["message"] == "Computed 3 pattern insights"


def test_extra_fields_are_merged_without_overwriting():
    entry = json.loads(JSONFormatter().format(
        _record(extra_fields={"user_id": "u-1", "pattern_count": 2, "level": "bogus"})
    ))

    assert entry["user_id"] == "u-1"
    assert entry["pattern_count"] == 2
    assert entry["level"] == "INFO"


def test_exception_is_formatted():
    try:
        raise RuntimeError("connection reset")
    except RuntimeError:
        import sys
        entry = json.loads(JSONFormatter().format(_record(exc_info=sys.exc_info())))

    assert "RuntimeError: connection reset" in entry["exception"]
