"""Tests for graph data models."""

from strata.models import (
    Capability,
    DependencyEdge,
    ProjectFileNode,
    ProjectGraph,
    ScanResult,
    merge_node,
)


class TestMergeNode:
    def test_overlay_fields_replace_base(self):
        base = ProjectFileNode(id="a.ts", path="a.ts", language="typescript", layer="domain")
        overlay = ProjectFileNode(id="a.ts", path="a.ts", imports=["react"])
        merged = merge_node(base, overlay)
        assert merged.imports == ["react"]
        assert merged.language == "typescript"
        assert merged.layer == "domain"

    def test_none_never_clears(self):
        base = ProjectFileNode(id="a.ts", path="a.ts", imports=["react"])
        merged = merge_node(base, ProjectFileNode(id="a.ts", path="a.ts"))
        assert merged is base

    def test_later_overlay_wins(self):
        base = ProjectFileNode(id="a.ts", path="a.ts")
        first = ProjectFileNode(id="a.ts", path="a.ts", imports=["x"])
        second = ProjectFileNode(id="a.ts", path="a.ts", imports=["y"])
        assert merge_node(merge_node(base, first), second).imports == ["y"]

    def test_other_node_ignored(self):
        base = ProjectFileNode(id="a.ts", path="a.ts")
        assert merge_node(base, ProjectFileNode(id="b.ts", path="b.ts", imports=["x"])) is base


class TestSerialization:
    def test_edge_uses_from_key(self):
        edge = DependencyEdge(from_="a.py", to="b.py", confidence=0.9, source="python-import")
        data = edge.to_dict()
        assert data["from"] == "a.py"
        assert "from_" not in data
        assert DependencyEdge.from_dict(data) == edge

    def test_node_omits_unset_fields(self):
        node = ProjectFileNode(id="a.py", path="a.py", language="python")
        assert node.to_dict() == {"id": "a.py", "path": "a.py", "language": "python"}

    def test_capability_line_optional(self):
        assert "line" not in Capability("env", "import:dotenv", 0.95).to_dict()
        assert Capability("env", "process.env", 0.85, 3).to_dict()["line"] == 3

    def test_scan_result_from_cache_shape(self):
        result = ScanResult(
            nodes=[
                ProjectFileNode(
                    id="a.ts",
                    path="a.ts",
                    imports=["react"],
                    capabilities=[Capability("network", "fetch", 0.9, 2)],
                )
            ],
            edges=[DependencyEdge("a.ts", "b.ts", 0.99, "ts-js-import")],
        )
        assert ScanResult.from_dict(result.to_dict()) == result

    def test_graph_keeps_file_order(self):
        graph = ProjectGraph(
            files={
                "b.py": ProjectFileNode(id="b.py", path="b.py"),
                "a.py": ProjectFileNode(id="a.py", path="a.py"),
            }
        )
        assert list(ProjectGraph.from_dict(graph.to_dict()).files) == ["b.py", "a.py"]


class TestCapability:
    def test_key_ignores_line_and_confidence(self):
        assert Capability("network", "fetch", 0.9, 1).key == Capability("network", "fetch", 0.85, 7).key
