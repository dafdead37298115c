"""
Logging Configuration and Audit Trail Infrastructure.

Every module logs through ``get_logger(__name__)``. Long resampling runs
can additionally be wrapped in an audited run, which collects the grid
cells whose inverse mapping failed and the residuals of consistency
checks, so a rendered map can be traced back to the cells left uncovered.

Audit Contents
--------------
Every audited run records:
- Configuration hash
- Map view metadata
- Inversion failures (cell, pixel, reason)
- Tolerance check results
"""

import hashlib
import json
import logging
import sys
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

LOG_FORMAT = '%(asctime)s | %(name)s | %(levelname)s | %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def get_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """Return a logger writing to stdout in the engine's format.

    A handler is attached the first time a name is requested; later calls
    only update the level.

    Parameters
    ----------
    name : str
        Logger name, normally the module's ``__name__``.
    level : int
        Logging level.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def hash_config(config: Dict[str, Any]) -> str:
    """First 16 hex digits of the SHA-256 of a JSON-encoded configuration.

    Keys are sorted, so the hash does not depend on insertion order.
    """
    encoded = json.dumps(config, sort_keys=True, default=str).encode()
    return hashlib.sha256(encoded).hexdigest()[:16]


@dataclass
class InversionFailure:
    """A grid cell whose inverse mapping failed.

    Attributes
    ----------
    cell_sw : tuple
        (lat, lon) in degrees of the cell's SW corner.
    pixel : tuple
        (x, y) canvas position being inverted when the failure occurred.
    reason : str
        The error message.
    context : dict
        Extra fields, e.g. the map area index.
    """
    cell_sw: Tuple[float, float]
    pixel: Tuple[float, float]
    reason: str
    context: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "cell_sw": list(self.cell_sw),
            "pixel": list(self.pixel),
            "reason": self.reason,
            "context": self.context,
        }


@dataclass
class ToleranceCheck:
    """Residual of one consistency check against its tolerance."""
    check_name: str
    residual_value: float
    tolerance: float
    context: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def passed(self) -> bool:
        return abs(self.residual_value) <= self.tolerance

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "check_name": self.check_name,
            "residual_value": self.residual_value,
            "tolerance": self.tolerance,
            "passed": self.passed,
            "context": self.context,
        }


@dataclass
class RunMetadata:
    """Records collected during one audited run."""
    run_id: str
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None
    config_hash: str = ""
    view_metadata: Dict[str, Any] = field(default_factory=dict)
    inversion_failures: List[InversionFailure] = field(default_factory=list)
    tolerance_checks: List[ToleranceCheck] = field(default_factory=list)

    def _times(self) -> Dict[str, Optional[str]]:
        return {
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
        }

    def summary(self) -> Dict[str, Any]:
        """Condensed view: failing cells and the latest result per check."""
        return {
            "run_id": self.run_id,
            "config_hash": self.config_hash,
            **self._times(),
            "total_inversion_failures": len(self.inversion_failures),
            "failed_cells": sorted({f.cell_sw for f in self.inversion_failures}),
            "tolerance_checks": {
                c.check_name: {
                    "passed": c.passed,
                    "residual": c.residual_value,
                    "tolerance": c.tolerance,
                }
                for c in self.tolerance_checks
            },
            "view_metadata": self.view_metadata,
        }

    def artifacts(self) -> Dict[str, Any]:
        """Full record of the run, JSON-serializable."""
        return {
            "run_id": self.run_id,
            "config_hash": self.config_hash,
            **self._times(),
            "view_metadata": self.view_metadata,
            "inversion_failures": [f.to_dict() for f in self.inversion_failures],
            "tolerance_checks": [c.to_dict() for c in self.tolerance_checks],
        }


class AuditLogger:
    """Process-wide audit trail of resampling runs.

    Records logged while a run context is open are attached to that run;
    records logged outside any run are only written to the log.

    Thread Safety
    -------------
    Creation of the singleton and appends to a run are guarded by locks,
    so cells may be inverted from several worker threads.

    Examples
    --------
    >>> audit = AuditLogger()
    >>> with audit.run_context("render_001", config={"pixels_per_unit": 2.0}):
    ...     audit.log_inversion_failure(
    ...         cell_sw=(12.0, 40.0),
    ...         pixel=(310.0, 88.0),
    ...         reason="no root in range",
    ...         context={"area": 2}
    ...     )
    >>> audit.get_run_summary("render_001")["total_inversion_failures"]
    1
    """

    _instance: Optional['AuditLogger'] = None
    _lock = threading.Lock()

    def __new__(cls) -> 'AuditLogger':
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    instance = super().__new__(cls)
                    instance._runs = {}
                    instance._current_run_id = None
                    instance._records_lock = threading.Lock()
                    instance._logger = get_logger("audit")
                    cls._instance = instance
        return cls._instance

    def _current_run(self) -> Optional[RunMetadata]:
        if self._current_run_id is None:
            return None
        return self._runs.get(self._current_run_id)

    def _get_run(self, run_id: str) -> RunMetadata:
        try:
            return self._runs[run_id]
        except KeyError:
            raise KeyError(f"No run found with ID {run_id}") from None

    @contextmanager
    def run_context(
        self,
        run_id: str,
        config: Optional[Dict[str, Any]] = None
    ) -> Iterator[RunMetadata]:
        """Open an audited run.

        Parameters
        ----------
        run_id : str
            Unique identifier of the run. Reusing an id replaces the
            earlier run's records.
        config : dict, optional
            View or inversion parameters; hashed and stored with the run.

        Yields
        ------
        RunMetadata
            The run's records.
        """
        run = RunMetadata(run_id=run_id)
        if config:
            run.config_hash = hash_config(config)
            run.view_metadata = dict(config)

        self._runs[run_id] = run
        self._current_run_id = run_id
        self._logger.info(f"Starting run {run_id} (config hash {run.config_hash or '-'})")

        try:
            yield run
        finally:
            run.end_time = datetime.now()
            self._current_run_id = None
            self._logger.info(
                f"Completed run {run_id}: "
                f"{len(run.inversion_failures)} inversion failures, "
                f"{len(run.tolerance_checks)} tolerance checks"
            )

    def log_inversion_failure(
        self,
        cell_sw: Tuple[float, float],
        pixel: Tuple[float, float],
        reason: str,
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        """Record a grid cell that could not be inverted.

        Parameters
        ----------
        cell_sw : tuple
            (lat, lon) of the cell's SW corner in degrees.
        pixel : tuple
            (x, y) canvas position being inverted.
        reason : str
            Why the inversion failed.
        context : dict, optional
            Extra fields stored with the record.
        """
        failure = InversionFailure(
            cell_sw=tuple(cell_sw),
            pixel=tuple(pixel),
            reason=reason,
            context=context or {}
        )
        run = self._current_run()
        if run is not None:
            with self._records_lock:
                run.inversion_failures.append(failure)

        self._logger.warning(
            f"INVERSION FAILURE | cell=({cell_sw[0]:g}, {cell_sw[1]:g}) | "
            f"pixel=({pixel[0]:g}, {pixel[1]:g}) | {reason}"
        )

    def log_tolerance_check(
        self,
        check_name: str,
        residual_value: float,
        tolerance: float,
        context: Optional[Dict[str, Any]] = None
    ) -> bool:
        """Record a check residual and return whether it is within tolerance."""
        check = ToleranceCheck(
            check_name=check_name,
            residual_value=residual_value,
            tolerance=tolerance,
            context=context or {}
        )
        run = self._current_run()
        if run is not None:
            with self._records_lock:
                run.tolerance_checks.append(check)

        message = (
            f"TOLERANCE CHECK | {check_name} | {'PASS' if check.passed else 'FAIL'} | "
            f"residual={residual_value:.6e} (tolerance={tolerance:.6e})"
        )
        if check.passed:
            self._logger.debug(message)
        else:
            self._logger.warning(message)
        return check.passed

    def get_run_summary(self, run_id: str) -> Dict[str, Any]:
        """Summary of a run: failure count, failing cells, check results.

        Raises
        ------
        KeyError
            If no run with this id was opened.
        """
        return self._get_run(run_id).summary()

    def export_run_artifacts(self, run_id: str, output_path: Path) -> None:
        """Write every record of a run to a JSON file.

        Raises
        ------
        KeyError
            If no run with this id was opened.
        """
        artifacts = self._get_run(run_id).artifacts()
        with open(output_path, 'w') as f:
            json.dump(artifacts, f, indent=2, default=str)
        self._logger.info(f"Exported audit artifacts to {output_path}")
