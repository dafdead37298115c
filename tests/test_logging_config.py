"""
test_logging_config.py — Logging and Audit Trail Tests
=======================================================

Verifies:
  - Loggers are configured once
  - The audit logger is a process-wide singleton
  - Inversion failures and tolerance checks are attached to the active run
  - Run artifacts export to JSON
"""

import json
import logging

import pytest

from common.logging_config import (
    AuditLogger,
    RunMetadata,
    ToleranceCheck,
    get_logger,
    hash_config,
)


class TestGetLogger:

    def test_single_handler(self):
        first = get_logger("butterfly.test")
        second = get_logger("butterfly.test")
        assert first is second
        assert len(first.handlers) == 1

    def test_level(self):
        assert get_logger("butterfly.debug", level=logging.DEBUG).level == logging.DEBUG


class TestRunMetadata:

    def test_config_hash_deterministic(self):
        config = {"pixels_per_unit": 2.0, "tilt_deg": -5.4}
        assert hash_config(config) == hash_config(dict(reversed(config.items())))
        assert len(hash_config(config)) == 16

    def test_artifacts_serializable(self):
        run = RunMetadata(run_id="offline")
        run.tolerance_checks.append(ToleranceCheck("mirror_symmetry", 0.0, 1e-9))
        artifacts = json.loads(json.dumps(run.artifacts()))
        assert artifacts["tolerance_checks"][0]["passed"] is True
        assert artifacts["end_time"] is None


class TestAuditLogger:

    def test_singleton(self):
        assert AuditLogger() is AuditLogger()

    def test_run_records(self, audit, run_id):
        with audit.run_context(run_id, config={"pixels_per_unit": 1.0}) as run:
            audit.log_inversion_failure((12.0, 40.0), (310.0, 88.0), "no root", {"area": 2})
            audit.log_inversion_failure((12.0, 40.0), (311.0, 88.0), "no root", {"area": 2})
            audit.log_inversion_failure((-5.0, 10.0), (150.0, 120.0), "ambiguous")
            assert run.run_id == run_id

        summary = audit.get_run_summary(run_id)
        assert summary["total_inversion_failures"] == 3
        assert summary["failed_cells"] == [(-5.0, 10.0), (12.0, 40.0)]
        assert summary["view_metadata"] == {"pixels_per_unit": 1.0}
        assert len(summary["config_hash"]) == 16
        assert summary["end_time"] is not None

    def test_tolerance_check_result(self, audit, run_id):
        with audit.run_context(run_id):
            assert audit.log_tolerance_check("stitching", 2e-7, 1e-4)
            assert not audit.log_tolerance_check("symmetry", -1e-3, 1e-9)

        checks = audit.get_run_summary(run_id)["tolerance_checks"]
        assert checks["stitching"] == {"passed": True, "residual": 2e-7, "tolerance": 1e-4}
        assert not checks["symmetry"]["passed"]

    def test_records_outside_run_not_attached(self, audit, run_id):
        with audit.run_context(run_id):
            pass
        audit.log_inversion_failure((0.0, 0.0), (1.0, 1.0), "stray")
        assert audit.get_run_summary(run_id)["total_inversion_failures"] == 0

    def test_export(self, audit, run_id, tmp_path):
        with audit.run_context(run_id):
            audit.log_inversion_failure((30.0, 5.0), (100.0, 60.0), "no root", {"area": 2})
            audit.log_tolerance_check("polar_continuity", 0.0, 1e-9)

        path = tmp_path / "audit.json"
        audit.export_run_artifacts(run_id, path)
        artifacts = json.loads(path.read_text())
        assert artifacts["run_id"] == run_id
        assert artifacts["inversion_failures"][0]["cell_sw"] == [30.0, 5.0]
        assert artifacts["inversion_failures"][0]["context"] == {"area": 2}
        assert artifacts["tolerance_checks"][0]["check_name"] == "polar_continuity"

    def test_unknown_run(self, audit):
        with pytest.raises(KeyError):
            audit.get_run_summary("no-such-run")
        with pytest.raises(KeyError):
            audit.export_run_artifacts("no-such-run", None)
