"""
Unit tests for structured logging and metrics helpers.
"""

import json
import logging

import pytest
from prometheus_client import generate_latest

from edi_canon.observability.logger import get_logger, log_operation, record_logger, setup_logger
from edi_canon.observability.metrics import (
    REGISTRY,
    batch_duration_seconds,
    get_metric_value,
    increment_counter,
    rejections_total,
    track_duration,
)


@pytest.mark.unit
class TestLogger:
    """JSON and text log output"""

    def test_json_format_carries_context(self, capsys):
        logger = setup_logger("edi_canon_test_json", level="INFO", format_type="json")

        logger.info("Stored version 2", extra={"source_record_id": 42, "company": "BELK"})

        entry = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert entry["message"] == "Stored version 2"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "edi_canon_test_json"
        assert entry["source_record_id"] == 42
        assert entry["company"] == "BELK"

    def test_record_logger_merges_context(self, capsys):
        logger = setup_logger("edi_canon_test_record", level="INFO", format_type="json")
        log = record_logger(logger, source_record_id=7, company="ARULA")

        log.warning("Rejected source record", extra={"reason": "invalid_json"})

        entry = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert entry["source_record_id"] == 7
        assert entry["company"] == "ARULA"
        assert entry["reason"] == "invalid_json"
        assert entry["level"] == "WARNING"
        assert entry["service"] == "edi-canon"

    def test_text_format(self, capsys):
        logger = setup_logger("edi_canon_test_text", level="DEBUG", format_type="text")

        logger.debug("Dropping allocation")

        out = capsys.readouterr().out
        assert " - edi_canon_test_text - DEBUG - " in out
        assert "Dropping allocation" in out

    def test_level_filtering(self, capsys):
        logger = setup_logger("edi_canon_test_level", level="WARNING", format_type="text")

        logger.info("hidden")
        logger.warning("shown")

        out = capsys.readouterr().out
        assert "hidden" not in out
        assert "shown" in out

    def test_module_loggers_hand_off_to_engine_logger(self):
        logger = get_logger("edi_canon.core.builder.item_builder")

        assert logger.name == "edi_canon.core.builder.item_builder"
        assert logger.handlers == []
        assert logging.getLogger("edi_canon").handlers

    def test_log_operation_does_not_swallow_errors(self):
        with pytest.raises(KeyError):
            with log_operation("Failing operation", logger=get_logger()):
                raise KeyError("missing")


@pytest.mark.unit
class TestMetrics:
    """Prometheus helpers over the engine registry"""

    def test_increment_counter(self):
        labels = {"reason": "observability_test"}
        before = get_metric_value("edi_rejections_total", labels)

        increment_counter(rejections_total, reason="observability_test")
        increment_counter(rejections_total, 2, reason="observability_test")

        assert get_metric_value("edi_rejections_total", labels) - before == 3

    def test_unrecorded_sample_reads_zero(self):
        assert get_metric_value("edi_rejections_total", {"reason": "never_recorded"}) == 0.0

    def test_track_duration(self):
        labels = {"phase": "observability_test"}
        before = get_metric_value("edi_batch_duration_seconds_count", labels)

        with track_duration(batch_duration_seconds, phase="observability_test"):
            pass

        assert get_metric_value("edi_batch_duration_seconds_count", labels) - before == 1

    def test_track_duration_records_on_error(self):
        labels = {"phase": "observability_error"}

        with pytest.raises(ValueError):
            with track_duration(batch_duration_seconds, phase="observability_error"):
                raise ValueError("boom")

        assert get_metric_value("edi_batch_duration_seconds_count", labels) == 1

    def test_exposition_format(self):
        increment_counter(rejections_total, reason="exposition_test")

        text = generate_latest(REGISTRY).decode("utf-8")

        assert 'edi_rejections_total{reason="exposition_test"}' in text
