import json
import logging

from studyforge.core.logging import (
    JsonFormatter,
    PrettyFormatter,
    RequestIdFilter,
    latency_bucket_ms,
    log_event,
    request_id_ctx_var,
)


def test_latency_buckets():
    assert latency_bucket_ms(None) == "unknown"
    assert latency_bucket_ms(5) == "<10ms"
    assert latency_bucket_ms(50) == "10-100ms"
    assert latency_bucket_ms(250) == "100-500ms"
    assert latency_bucket_ms(750) == "500-1000ms"
    assert latency_bucket_ms(2500) == ">=1000ms"


def test_json_formatter_includes_context():
    record = logging.LogRecord("studyforge", logging.INFO, __file__, 1, "generation.complete", None, None)
    record.request_id = "rid-1"
    record.user_id = "user_123"
    record.kind = "note"

    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "generation.complete"
    assert payload["request_id"] == "rid-1"
    assert payload["user_id"] == "user_123"
    assert payload["kind"] == "note"


def test_request_id_filter_reads_context():
    token = request_id_ctx_var.set("rid-ctx")
    try:
        record = logging.LogRecord("studyforge", logging.INFO, __file__, 1, "msg", None, None)
        RequestIdFilter().filter(record)
    finally:
        request_id_ctx_var.reset(token)
    assert record.request_id == "rid-ctx"


def test_log_event_truncates_extra_values(caplog):
    with caplog.at_level(logging.INFO, logger="studyforge"):
        log_event("info", "store.probe", kind="note", extra={"reason": "x" * 600})

    record = caplog.records[-1]
    assert record.kind == "note"
    assert record.reason.endswith("...<truncated>")
    assert len(record.reason) < 600


def test_formatters_render_event_fields(caplog):
    with caplog.at_level(logging.INFO, logger="studyforge"):
        log_event(
            "warning",
            "persist.failed",
            request_id="rid-9",
            kind="note",
            extra={"reason": "disk full", "store": "down", "generated_by": "fallback"},
        )
    record = caplog.records[-1]

    payload = json.loads(JsonFormatter().format(record))
    assert payload["request_id"] == "rid-9"
    assert payload["reason"] == "disk full"
    assert payload["store"] == "down"
    assert payload["generated_by"] == "fallback"

    line = PrettyFormatter().format(record)
    assert "[rid=rid-9]" in line
    assert "persist.failed" in line
    assert "reason=disk full" in line
    assert "generated_by=fallback" in line


def test_log_event_renames_reserved_extra_keys(caplog):
    with caplog.at_level(logging.INFO, logger="studyforge"):
        log_event("info", "request.complete", extra={"message": "shadowed", "path": "/api/notes"})

    record = caplog.records[-1]
    assert record.getMessage() == "request.complete"
    assert record.extra_message == "shadowed"
    assert json.loads(JsonFormatter().format(record))["path"] == "/api/notes"
