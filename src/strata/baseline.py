"""Violation baseline for drift-only CI gating.

A baseline freezes the known violations of a project. Later runs are
compared against it by fingerprint, so only new violations need to
fail a build. Each update appends the previous metrics snapshot to a
bounded history for trend tracking.

The document lives at ``<root>/.strata/baseline.json``.
"""

import hashlib
import json
import math
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal, Optional, Sequence, Union

from .config import EngineSettings
from .exceptions import BaselineError
from .logging_config import get_logger
from .models import ProjectGraph

logger = get_logger(__name__)

BASELINE_VERSION = "1.0.0"
DEFAULT_MAX_HISTORY = 50

Severity = Literal["info", "warning", "error"]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class PositionRange:
    start_line: int
    start_col: int
    end_line: int
    end_col: int

    @property
    def key(self) -> str:
        return f"{self.start_line}:{self.start_col}:{self.end_line}:{self.end_col}"

    def to_dict(self) -> dict[str, int]:
        return {
            "startLine": self.start_line,
            "startCol": self.start_col,
            "endLine": self.end_line,
            "endCol": self.end_col,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PositionRange":
        return cls(
            start_line=int(data["startLine"]),
            start_col=int(data["startCol"]),
            end_line=int(data["endLine"]),
            end_col=int(data["endCol"]),
        )


@dataclass(frozen=True)
class RuleViolation:
    """A violation reported by the rule evaluator."""

    rule_id: str
    severity: Severity
    message: str
    file: str
    line: Optional[int] = None
    range: Optional[PositionRange] = None
    suggestion: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None

    @property
    def position_key(self) -> str:
        if self.range is not None:
            return self.range.key
        if self.line:
            return str(self.line)
        return "0"

    def _fields_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "ruleId": self.rule_id,
            "severity": self.severity,
            "message": self.message,
            "file": self.file,
        }
        if self.line is not None:
            data["line"] = self.line
        if self.range is not None:
            data["range"] = self.range.to_dict()
        if self.suggestion is not None:
            data["suggestion"] = self.suggestion
        if self.metadata is not None:
            data["metadata"] = self.metadata
        return data

    def to_dict(self) -> dict[str, Any]:
        return self._fields_dict()

    @staticmethod
    def _fields_from_dict(data: dict[str, Any]) -> dict[str, Any]:
        return {
            "rule_id": str(data["ruleId"]),
            "severity": data["severity"],
            "message": str(data["message"]),
            "file": str(data["file"]),
            "line": data.get("line"),
            "range": PositionRange.from_dict(data["range"]) if data.get("range") else None,
            "suggestion": data.get("suggestion"),
            "metadata": data.get("metadata"),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuleViolation":
        return cls(**cls._fields_from_dict(data))


@dataclass(frozen=True)
class BaselineViolation(RuleViolation):
    """A violation frozen into the baseline."""

    fingerprint: str = ""
    first_seen: str = ""

    def to_dict(self) -> dict[str, Any]:
        data = {"fingerprint": self.fingerprint}
        data.update(self._fields_dict())
        data["firstSeen"] = self.first_seen
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BaselineViolation":
        return cls(
            fingerprint=str(data["fingerprint"]),
            first_seen=str(data["firstSeen"]),
            **cls._fields_from_dict(data),
        )


def generate_fingerprint(violation: RuleViolation) -> str:
    """Stable id: rule, file, position and a short hash of the message head."""
    message_hash = hashlib.md5(violation.message[:100].encode("utf-8")).hexdigest()[:8]
    key = f"{violation.rule_id}:{violation.file}:{violation.position_key}:{message_hash}"
    return hashlib.md5(key.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class GraphStats:
    """Graph-derived inputs to the coupling and health metrics."""

    total_files: int
    total_dependencies: int
    average_dependencies_per_file: float
    unmapped_files: int = 0

    @classmethod
    def from_graph(cls, graph: ProjectGraph) -> "GraphStats":
        total_files = len(graph.files)
        total_dependencies = len(graph.edges)
        return cls(
            total_files=total_files,
            total_dependencies=total_dependencies,
            average_dependencies_per_file=total_dependencies / total_files if total_files else 0.0,
            unmapped_files=sum(1 for node in graph.files.values() if not node.layer),
        )


@dataclass
class BaselineMetrics:
    total_violations: int
    errors: int
    warnings: int
    info: int
    files_affected: int
    timestamp: str
    coupling_score: Optional[float] = None
    violation_density: Optional[float] = None
    health_score: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "totalViolations": self.total_violations,
            "errors": self.errors,
            "warnings": self.warnings,
            "info": self.info,
            "filesAffected": self.files_affected,
            "timestamp": self.timestamp,
        }
        if self.coupling_score is not None:
            data["couplingScore"] = self.coupling_score
        if self.violation_density is not None:
            data["violationDensity"] = self.violation_density
        if self.health_score is not None:
            data["healthScore"] = self.health_score
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BaselineMetrics":
        return cls(
            total_violations=int(data["totalViolations"]),
            errors=int(data["errors"]),
            warnings=int(data["warnings"]),
            info=int(data["info"]),
            files_affected=int(data["filesAffected"]),
            timestamp=str(data["timestamp"]),
            coupling_score=data.get("couplingScore"),
            violation_density=data.get("violationDensity"),
            health_score=data.get("healthScore"),
        )


@dataclass
class Baseline:
    version: str
    created_at: str
    updated_at: str
    violations: list[BaselineViolation]
    metrics: BaselineMetrics
    metrics_history: Optional[list[BaselineMetrics]] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "version": self.version,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "violations": [v.to_dict() for v in self.violations],
            "metrics": self.metrics.to_dict(),
        }
        if self.metrics_history is not None:
            data["metricsHistory"] = [m.to_dict() for m in self.metrics_history]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Baseline":
        history = data.get("metricsHistory")
        return cls(
            version=str(data["version"]),
            created_at=str(data["createdAt"]),
            updated_at=str(data["updatedAt"]),
            violations=[BaselineViolation.from_dict(v) for v in data["violations"]],
            metrics=BaselineMetrics.from_dict(data["metrics"]),
            metrics_history=(
                [BaselineMetrics.from_dict(m) for m in history] if history is not None else None
            ),
        )


@dataclass
class ViolationComparison:
    new: list[RuleViolation] = field(default_factory=list)
    resolved: list[BaselineViolation] = field(default_factory=list)
    unchanged: list[RuleViolation] = field(default_factory=list)


def health_score(
    errors: int, warnings: int, info: int, graph_stats: GraphStats
) -> int:
    """0-100 score; penalizes violations, coupling above 10 and unmapped files."""
    score = 100.0 - errors * 5 - warnings * 2 - info * 0.5
    average = graph_stats.average_dependencies_per_file
    if average > 10:
        score -= (average - 10) * 2
    if graph_stats.total_files > 0:
        score -= graph_stats.unmapped_files / graph_stats.total_files * 20
    # Half-up rounding
    return max(0, min(100, math.floor(score + 0.5)))


class BaselineService:
    """Creates, updates, persists and compares against the baseline.

    The stored document is loaded once at construction. A missing,
    corrupt or version-mismatched document is treated as no baseline.
    """

    def __init__(
        self,
        project_root: Union[str, Path],
        data_dir: str = ".strata",
        max_history: int = DEFAULT_MAX_HISTORY,
    ):
        self.baseline_path = Path(project_root) / data_dir / "baseline.json"
        self.max_history = max_history
        self._baseline: Optional[Baseline] = self._load()

    @classmethod
    def from_settings(cls, project_root: Union[str, Path], settings: EngineSettings) -> "BaselineService":
        return cls(project_root, data_dir=settings.data_dir, max_history=settings.baseline_max_history)

    def _load(self) -> Optional[Baseline]:
        if not self.baseline_path.exists():
            return None

        try:
            data = json.loads(self.baseline_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load baseline {self.baseline_path}: {e}")
            return None

        version = data.get("version") if isinstance(data, dict) else None
        if version != BASELINE_VERSION:
            logger.warning(
                f"Baseline version mismatch. Expected {BASELINE_VERSION}, got {version}. "
                "Baseline will be recreated."
            )
            return None

        try:
            baseline = Baseline.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Corrupt baseline {self.baseline_path}: {e}")
            return None

        logger.debug(f"Loaded baseline with {len(baseline.violations)} violations")
        return baseline

    def get_baseline(self) -> Optional[Baseline]:
        return self._baseline

    def has_baseline(self) -> bool:
        return self._baseline is not None

    @staticmethod
    def generate_fingerprint(violation: RuleViolation) -> str:
        return generate_fingerprint(violation)

    @staticmethod
    def to_baseline_violation(violation: RuleViolation, first_seen: str) -> BaselineViolation:
        return BaselineViolation(
            rule_id=violation.rule_id,
            severity=violation.severity,
            message=violation.message,
            file=violation.file,
            line=violation.line,
            range=violation.range,
            suggestion=violation.suggestion,
            metadata=violation.metadata,
            fingerprint=generate_fingerprint(violation),
            first_seen=first_seen,
        )

    def calculate_metrics(
        self,
        violations: Sequence[RuleViolation],
        graph_stats: Optional[GraphStats] = None,
    ) -> BaselineMetrics:
        errors = sum(1 for v in violations if v.severity == "error")
        warnings = sum(1 for v in violations if v.severity == "warning")
        info = sum(1 for v in violations if v.severity == "info")
        files_affected = len({v.file for v in violations})

        metrics = BaselineMetrics(
            total_violations=len(violations),
            errors=errors,
            warnings=warnings,
            info=info,
            files_affected=files_affected,
            timestamp=_now(),
            violation_density=len(violations) / files_affected if files_affected else 0.0,
        )
        if graph_stats is not None:
            metrics.coupling_score = graph_stats.average_dependencies_per_file
            metrics.health_score = health_score(errors, warnings, info, graph_stats)
        return metrics

    def create_baseline(
        self,
        violations: Sequence[RuleViolation],
        graph_stats: Optional[GraphStats] = None,
    ) -> Baseline:
        """Replace the in-memory baseline with ``violations``; call ``save()`` to persist."""
        now = _now()
        entries = [self.to_baseline_violation(v, now) for v in violations]
        self._baseline = Baseline(
            version=BASELINE_VERSION,
            created_at=now,
            updated_at=now,
            violations=entries,
            metrics=self.calculate_metrics(entries, graph_stats),
        )
        logger.info(f"Created baseline with {len(entries)} violations")
        return self._baseline

    def update_baseline(
        self,
        violations: Sequence[RuleViolation],
        max_history: Optional[int] = None,
        graph_stats: Optional[GraphStats] = None,
    ) -> Baseline:
        """Re-baseline to ``violations``, keeping ``firstSeen`` of known ones.

        ``max_history`` defaults to the service setting.
        """
        if max_history is None:
            max_history = self.max_history
        existing = self._baseline
        if existing is None:
            return self.create_baseline(violations, graph_stats)

        now = _now()
        known = {v.fingerprint: v for v in existing.violations}
        entries = [known.get(generate_fingerprint(v)) or self.to_baseline_violation(v, now) for v in violations]

        history = list(existing.metrics_history or [])
        history.append(existing.metrics)
        if max_history > 0:
            history = history[-max_history:]
        else:
            history = []

        self._baseline = Baseline(
            version=BASELINE_VERSION,
            created_at=existing.created_at,
            updated_at=now,
            violations=entries,
            metrics=self.calculate_metrics(entries, graph_stats),
            metrics_history=history,
        )
        logger.info(f"Updated baseline: {len(entries)} violations, {len(history)} history snapshots")
        return self._baseline

    def save(self) -> None:
        """Write the baseline document.

        Raises:
            BaselineError: If the document cannot be written
        """
        if self._baseline is None:
            return

        tmp_path = self.baseline_path.with_suffix(".json.tmp")
        try:
            self.baseline_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(self._baseline.to_dict(), indent=2), encoding="utf-8")
            os.replace(tmp_path, self.baseline_path)
        except OSError as e:
            raise BaselineError(self.baseline_path, str(e)) from e
        logger.debug(f"Saved baseline to {self.baseline_path}")

    def compare_violations(self, current: Sequence[RuleViolation]) -> ViolationComparison:
        """Split ``current`` into new/unchanged and list baseline entries now resolved."""
        if self._baseline is None:
            return ViolationComparison(new=list(current))

        baseline_fingerprints = {v.fingerprint for v in self._baseline.violations}
        current_fingerprints: set[str] = set()
        result = ViolationComparison()

        for violation in current:
            fingerprint = generate_fingerprint(violation)
            current_fingerprints.add(fingerprint)
            if fingerprint in baseline_fingerprints:
                result.unchanged.append(violation)
            else:
                result.new.append(violation)

        result.resolved = [
            v for v in self._baseline.violations if v.fingerprint not in current_fingerprints
        ]
        return result

    def clear(self) -> None:
        """Delete the baseline document and forget the in-memory baseline."""
        try:
            self.baseline_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to clear baseline: {e}")
            return
        self._baseline = None
