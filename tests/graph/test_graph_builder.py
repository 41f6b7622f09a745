"""Tests for the cache-backed project graph builder."""

import json
import logging
from pathlib import Path

import pytest

from strata.config import ArchitectureConfig, EngineSettings
from strata.exceptions import InvalidPathError
from strata.graph.builder import GraphBuilder, build_project_graph
from strata.models import ProjectFileNode, ScanResult
from strata.scanning.base import ProjectScanner


def _write(root: Path, name: str, content: str = "") -> Path:
    p = root / name
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(content, encoding="utf-8")
    return p


@pytest.fixture
def polyglot(project):
    """Small project touching every scanner."""
    _write(project, "src/domain/order.py", "from dataclasses import dataclass\n")
    _write(project, "src/app/service.py", "import src.domain.order\nimport requests\n")
    _write(project, "src/ui/page.ts", 'import { api } from "../app/client";\nimport React from "react";\n')
    _write(project, "src/app/client.ts", "export const api = {};\n")
    _write(project, "src/main/java/com/acme/Order.java", "package com.acme;\nclass Order {}\n")
    _write(
        project,
        "src/main/java/com/acme/Shop.java",
        "package com.acme;\nimport com.acme.Order;\nclass Shop {}\n",
    )
    _write(project, "README.md", "# demo\n")
    return project


FILES = [
    "src/domain/order.py",
    "src/app/service.py",
    "src/ui/page.ts",
    "src/app/client.ts",
    "src/main/java/com/acme/Order.java",
    "src/main/java/com/acme/Shop.java",
    "README.md",
]


class TestBuild:
    def test_nodes_and_edges(self, polyglot, layered_config):
        graph = build_project_graph(polyglot, FILES, layered_config)

        assert list(graph.files) == FILES
        assert graph.files["src/domain/order.py"].layer == "domain"
        assert graph.files["src/app/service.py"].layer == "application"
        assert graph.files["src/ui/page.ts"].layer == "presentation"
        assert graph.files["README.md"].language == "other"
        assert graph.files["README.md"].layer is None

        edges = [(e.from_, e.to, e.source) for e in graph.edges]
        assert edges == [
            ("src/app/service.py", "src/domain/order.py", "python-import"),
            ("src/ui/page.ts", "src/app/client.ts", "ts-js-import"),
            (
                "src/main/java/com/acme/Shop.java",
                "src/main/java/com/acme/Order.java",
                "java-import",
            ),
        ]

    def test_overlay_keeps_base_fields(self, polyglot, layered_config):
        graph = build_project_graph(polyglot, FILES, layered_config)
        node = graph.files["src/app/service.py"]
        assert node.imports == ["requests"]
        assert node.language == "python"
        assert node.layer == "application"
        assert graph.files["src/ui/page.ts"].imports == ["react"]

    def test_missing_file_skipped(self, polyglot, layered_config, caplog):
        with caplog.at_level(logging.WARNING, logger="strata"):
            graph = build_project_graph(polyglot, ["src/nope.py", "src/domain/order.py"], layered_config)
        assert list(graph.files) == ["src/domain/order.py"]
        assert "src/nope.py" in caplog.text

    def test_paths_normalized(self, polyglot, layered_config):
        graph = build_project_graph(polyglot, ["./src/domain/order.py"], layered_config)
        assert list(graph.files) == ["src/domain/order.py"]

    def test_absolute_path_inside_root(self, polyglot, layered_config):
        requested = str(polyglot.resolve() / "src" / "domain" / "order.py")
        graph = build_project_graph(polyglot, [requested], layered_config)
        assert list(graph.files) == ["src/domain/order.py"]
        assert graph.files["src/domain/order.py"].layer == "domain"

    def test_path_outside_root_rejected(self, polyglot, layered_config):
        _write(polyglot.parent, "outside.py", "import os\n")
        builder = GraphBuilder(polyglot, layered_config)
        with pytest.raises(InvalidPathError):
            builder.build(["src/domain/order.py", "../outside.py"])
        assert not (polyglot / ".strata" / "cache").exists()

    def test_tsconfig_aliases(self, project):
        _write(
            project,
            "tsconfig.json",
            json.dumps({"compilerOptions": {"baseUrl": ".", "paths": {"@app/*": ["src/*"]}}}),
        )
        _write(project, "src/services/user.ts", "export const u = 1;\n")
        _write(project, "src/ui/a.ts", 'import { u } from "@app/services/user";\n')
        _write(project, "src/ui/b.ts", 'import { u } from "../services/user";\n')
        graph = build_project_graph(
            project, ["src/ui/a.ts", "src/ui/b.ts", "src/services/user.ts"], ArchitectureConfig()
        )
        assert [(e.from_, e.to) for e in graph.edges] == [
            ("src/ui/a.ts", "src/services/user.ts"),
            ("src/ui/b.ts", "src/services/user.ts"),
        ]

    def test_invalid_root(self, tmp_path):
        with pytest.raises(InvalidPathError):
            GraphBuilder(tmp_path / "missing", ArchitectureConfig())


class TestCaching:
    def test_second_build_is_cached_and_identical(self, polyglot, layered_config):
        builder = GraphBuilder(polyglot, layered_config)
        first = builder.build(FILES)
        assert builder.stats.scanned == len(FILES)

        second = builder.build(FILES)
        assert builder.stats.scanned == 0
        assert builder.stats.cache_hits == len(FILES)
        assert second.to_dict() == first.to_dict()

    def test_changed_file_rescanned_alone(self, polyglot, layered_config):
        builder = GraphBuilder(polyglot, layered_config)
        builder.build(FILES)

        _write(polyglot, "src/domain/order.py", "import uuid\n")
        graph = builder.build(FILES)
        assert builder.stats.scanned_files == ["src/domain/order.py"]
        assert graph.files["src/domain/order.py"].imports == ["uuid"]

    def test_config_change_invalidates(self, polyglot, layered_config):
        GraphBuilder(polyglot, layered_config).build(FILES)

        other = ArchitectureConfig.from_dict(
            {"layers": [{"name": "core"}], "layerMappings": [{"layer": "core", "include": ["src/**"]}]}
        )
        builder = GraphBuilder(polyglot, other)
        graph = builder.build(FILES)
        assert builder.stats.cache_hits == 0
        assert graph.files["src/domain/order.py"].layer == "core"

    def test_use_cache_false_clears_and_bypasses(self, polyglot, layered_config):
        builder = GraphBuilder(polyglot, layered_config)
        builder.build(FILES)

        builder.build(FILES, use_cache=False)
        assert builder.stats.cache_hits == 0

        builder.build(FILES)
        assert builder.stats.cache_hits == 0
        assert builder.stats.scanned == len(FILES)

    def test_cache_disabled_in_settings(self, polyglot, layered_config):
        builder = GraphBuilder(polyglot, layered_config, settings=EngineSettings(cache_enabled=False))
        builder.build(FILES)
        builder.build(FILES)
        assert builder.stats.cache_hits == 0
        assert not (polyglot / ".strata" / "cache").exists()


class TestParallel:
    def test_workers_match_sequential(self, polyglot, layered_config):
        sequential = GraphBuilder(polyglot, layered_config).build(FILES, use_cache=False)
        parallel = GraphBuilder(polyglot, layered_config).build(FILES, use_cache=False, workers=4)
        assert parallel.to_dict() == sequential.to_dict()


class TestScannerIsolation:
    def test_failing_scanner_does_not_stop_others(self, polyglot, layered_config, caplog):
        class Broken(ProjectScanner):
            id = "broken"

            def supports(self, file):
                return True

            def scan(self, file, context):
                raise RuntimeError("scanner exploded")

            def _scan(self, file, context):
                raise NotImplementedError

        class Tagger(ProjectScanner):
            id = "tagger"

            def supports(self, file):
                return True

            def _scan(self, file, context):
                return ScanResult(nodes=[ProjectFileNode(id=file.path, path=file.path, imports=["tag"])])

        builder = GraphBuilder(polyglot, layered_config, scanners=[Broken(), Tagger()])
        with caplog.at_level(logging.WARNING, logger="strata"):
            graph = builder.build(["src/domain/order.py"], use_cache=False)
        node = graph.files["src/domain/order.py"]
        assert node.imports == ["tag"]
        assert node.layer == "domain"
        assert "scanner exploded" in caplog.text
