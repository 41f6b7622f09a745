"""Tests for the violation baseline service."""

import hashlib
import json
import logging

import pytest

from strata.baseline import (
    BASELINE_VERSION,
    BaselineService,
    GraphStats,
    PositionRange,
    RuleViolation,
    generate_fingerprint,
    health_score,
)
from strata.config import EngineSettings
from strata.exceptions import BaselineError
from strata.models import DependencyEdge, ProjectFileNode, ProjectGraph


def _violation(rule="no-cycles", file="src/a.ts", line=3, message="Cycle detected", severity="error"):
    return RuleViolation(rule_id=rule, severity=severity, message=message, file=file, line=line)


def _write_baseline(project, violations, first_seen="2020-01-01T00:00:00.000Z", version=BASELINE_VERSION):
    path = project / ".strata" / "baseline.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    document = {
        "version": version,
        "createdAt": first_seen,
        "updatedAt": first_seen,
        "violations": [
            dict(v.to_dict(), fingerprint=generate_fingerprint(v), firstSeen=first_seen)
            for v in violations
        ],
        "metrics": {
            "totalViolations": len(violations),
            "errors": len(violations),
            "warnings": 0,
            "info": 0,
            "filesAffected": len({v.file for v in violations}),
            "timestamp": first_seen,
        },
    }
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


class TestFingerprint:
    def test_matches_documented_recipe(self):
        violation = _violation()
        message_hash = hashlib.md5(b"Cycle detected").hexdigest()[:8]
        expected = hashlib.md5(f"no-cycles:src/a.ts:3:{message_hash}".encode()).hexdigest()
        assert generate_fingerprint(violation) == expected

    def test_range_takes_precedence(self):
        violation = RuleViolation(
            "no-cycles", "error", "m", "a.ts", line=3, range=PositionRange(3, 1, 4, 2)
        )
        message_hash = hashlib.md5(b"m").hexdigest()[:8]
        expected = hashlib.md5(f"no-cycles:a.ts:3:1:4:2:{message_hash}".encode()).hexdigest()
        assert generate_fingerprint(violation) == expected

    def test_no_position_uses_zero(self):
        assert generate_fingerprint(_violation(line=None)) == generate_fingerprint(_violation(line=0))

    def test_only_message_head_counts(self):
        head = "x" * 100
        assert generate_fingerprint(_violation(message=head + "a")) == generate_fingerprint(
            _violation(message=head + "b")
        )

    def test_stable_across_instances(self):
        assert generate_fingerprint(_violation()) == generate_fingerprint(_violation())
        assert generate_fingerprint(_violation()) != generate_fingerprint(_violation(line=4))


class TestCreateAndSave:
    def test_create_save_reload(self, project):
        service = BaselineService(project)
        assert not service.has_baseline()

        baseline = service.create_baseline([_violation(), _violation(file="src/b.ts", severity="warning")])
        service.save()

        path = project / ".strata" / "baseline.json"
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["version"] == BASELINE_VERSION
        assert data["metrics"]["violationDensity"] == 1.0
        assert data["violations"][0]["firstSeen"] == baseline.created_at
        assert baseline.created_at.endswith("Z")

        reloaded = BaselineService(project)
        assert reloaded.has_baseline()
        assert [v.fingerprint for v in reloaded.get_baseline().violations] == [
            v.fingerprint for v in baseline.violations
        ]

    def test_save_failure_raises(self, project):
        (project / ".strata").write_text("not a directory", encoding="utf-8")
        service = BaselineService(project)
        service.create_baseline([_violation()])
        with pytest.raises(BaselineError):
            service.save()

    def test_clear(self, project):
        service = BaselineService(project)
        service.create_baseline([_violation()])
        service.save()
        service.clear()
        assert not (project / ".strata" / "baseline.json").exists()
        assert not service.has_baseline()
        service.clear()


class TestLoad:
    def test_version_mismatch_ignored(self, project, caplog):
        _write_baseline(project, [_violation()], version="0.9.0")
        with caplog.at_level(logging.WARNING, logger="strata"):
            service = BaselineService(project)
        assert not service.has_baseline()
        assert "version mismatch" in caplog.text

    def test_corrupt_json_ignored(self, project):
        path = project / ".strata" / "baseline.json"
        path.parent.mkdir()
        path.write_text("{ nope", encoding="utf-8")
        assert BaselineService(project).get_baseline() is None

    def test_missing_fields_ignored(self, project):
        path = project / ".strata" / "baseline.json"
        path.parent.mkdir()
        path.write_text(json.dumps({"version": BASELINE_VERSION}), encoding="utf-8")
        assert BaselineService(project).get_baseline() is None


class TestUpdate:
    def test_first_seen_preserved(self, project):
        known = _violation()
        _write_baseline(project, [known])
        service = BaselineService(project)

        fresh = _violation(file="src/new.ts")
        updated = service.update_baseline([known, fresh])

        by_file = {v.file: v for v in updated.violations}
        assert by_file["src/a.ts"].first_seen == "2020-01-01T00:00:00.000Z"
        assert by_file["src/new.ts"].first_seen == updated.updated_at
        assert updated.created_at == "2020-01-01T00:00:00.000Z"

    def test_resolved_entries_dropped(self, project):
        _write_baseline(project, [_violation(), _violation(file="src/gone.ts")])
        updated = BaselineService(project).update_baseline([_violation()])
        assert [v.file for v in updated.violations] == ["src/a.ts"]

    def test_history_bounded(self, project):
        service = BaselineService(project)
        service.create_baseline([_violation()])
        for count in range(1, 5):
            service.update_baseline([_violation(line=n) for n in range(1, count + 1)], max_history=2)

        history = service.get_baseline().metrics_history
        assert [m.total_violations for m in history] == [2, 3]
        assert service.get_baseline().metrics.total_violations == 4

    def test_settings_control_location_and_history(self, project):
        settings = EngineSettings(data_dir=".arch", baseline_max_history=1)
        service = BaselineService.from_settings(project, settings)
        service.create_baseline([_violation()])
        service.update_baseline([_violation()])
        service.update_baseline([_violation(), _violation(line=9)])
        service.save()

        assert len(service.get_baseline().metrics_history) == 1
        assert (project / ".arch" / "baseline.json").is_file()
        assert BaselineService.from_settings(project, settings).has_baseline()

    def test_without_existing_creates(self, project):
        baseline = BaselineService(project).update_baseline([_violation()])
        assert baseline.metrics_history is None
        assert len(baseline.violations) == 1


class TestCompare:
    def test_new_resolved_unchanged(self, project):
        kept = _violation()
        gone = _violation(file="src/gone.ts")
        _write_baseline(project, [kept, gone])

        added = _violation(rule="layer-boundary", message="domain imports ui")
        result = BaselineService(project).compare_violations([kept, added])

        assert result.unchanged == [kept]
        assert result.new == [added]
        assert [v.file for v in result.resolved] == ["src/gone.ts"]

    def test_without_baseline_everything_is_new(self, project):
        current = [_violation(), _violation(line=9)]
        result = BaselineService(project).compare_violations(current)
        assert result.new == current
        assert result.resolved == [] and result.unchanged == []


class TestMetrics:
    def test_health_score_example(self):
        stats = GraphStats(total_files=4, total_dependencies=48, average_dependencies_per_file=12.0, unmapped_files=1)
        assert health_score(errors=1, warnings=2, info=1, graph_stats=stats) == 82

    def test_health_score_clamped(self):
        stats = GraphStats(total_files=1, total_dependencies=0, average_dependencies_per_file=0.0)
        assert health_score(errors=50, warnings=0, info=0, graph_stats=stats) == 0
        assert health_score(errors=0, warnings=0, info=0, graph_stats=stats) == 100

    def test_metrics_with_graph_stats(self, project):
        stats = GraphStats(total_files=4, total_dependencies=48, average_dependencies_per_file=12.0, unmapped_files=1)
        violations = [
            _violation(),
            _violation(severity="warning", line=5),
            _violation(severity="warning", file="src/b.ts"),
            _violation(severity="info", file="src/b.ts", line=7),
        ]
        metrics = BaselineService(project).calculate_metrics(violations, stats)
        assert (metrics.errors, metrics.warnings, metrics.info) == (1, 2, 1)
        assert metrics.files_affected == 2
        assert metrics.violation_density == 2.0
        assert metrics.coupling_score == 12.0
        assert metrics.health_score == 82

    def test_empty_density_is_zero(self, project):
        metrics = BaselineService(project).calculate_metrics([])
        assert metrics.violation_density == 0.0
        assert metrics.health_score is None
        assert "healthScore" not in metrics.to_dict()

    def test_graph_stats_from_graph(self):
        graph = ProjectGraph(
            files={
                "a.py": ProjectFileNode(id="a.py", path="a.py", layer="domain"),
                "b.py": ProjectFileNode(id="b.py", path="b.py"),
            },
            edges=[
                DependencyEdge("a.py", "b.py", 0.9, "python-import"),
                DependencyEdge("b.py", "c.py", 0.9, "python-import"),
                DependencyEdge("b.py", "a.py", 0.9, "python-import"),
            ],
        )
        assert GraphStats.from_graph(graph) == GraphStats(2, 3, 1.5, 1)
        assert GraphStats.from_graph(ProjectGraph()) == GraphStats(0, 0, 0.0, 0)
