import logging

import pytest

from dochub.logging import LOG_FORMAT, EventFormatter, get_logger, log_event, now_ms


def test_log_event_emits_structured_record(caplog):
    logger = get_logger("dochub.tests")

    with caplog.at_level(logging.INFO, logger="dochub.tests"):
        log_event(logger, "batch.completed", total=3, failed=1, meta={"ids": ["a", "b"]})

    record = caplog.records[-1]
    assert record.getMessage() == "batch.completed"
    assert record.event == "batch.completed"
    assert record.total == 3
    assert record.meta == {"ids": ["a", "b"]}


@pytest.mark.parametrize("event", ["", "   "])
def test_log_event_requires_event_name(event):
    with pytest.raises(ValueError):
        log_event(get_logger("dochub.tests"), event)


def test_log_event_rejects_nested_fields():
    with pytest.raises(TypeError):
        log_event(get_logger("dochub.tests"), "x.y", nested={"a": 1})
    with pytest.raises(TypeError):
        log_event(get_logger("dochub.tests"), "x.y", meta={"bad": object()})


def test_event_formatter_appends_extra_fields():
    record = logging.LogRecord("dochub", logging.WARNING, __file__, 1, "retrying", None, None)
    record.event = "retry.attempt_failed"
    record.attempt = 2
    record.operation = "retrieve page"

    rendered = EventFormatter(LOG_FORMAT).format(record)

    assert rendered.endswith("retrying | attempt=2 operation=retrieve page")
    assert "[WARNING] dochub:" in rendered


def test_now_ms_is_unix_milliseconds(monkeypatch):
    monkeypatch.setattr("dochub.logging.time.time", lambda: 1_700_000_000.5)

    assert now_ms() == 1_700_000_000_500
