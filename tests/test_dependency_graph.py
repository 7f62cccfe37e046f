"""Tests for dependency graph building and node classification."""

import pytest

from codescope_cli.dependency_graph import DependencyGraphBuilder, classify_path, extension
from codescope_cli.storage import RecordStore


class TestClassifyPath:
    """Tests for classify_path."""

    @pytest.mark.parametrize("path,expected", [
        ("src/settings.json", "config"),
        ("deploy/app.yml", "config"),
        ("docs/main.md", "documentation"),
        ("NOTES.TXT", "documentation"),
        ("src/auth.spec.ts", "test"),
        ("src/config_loader.ts", "config"),
        ("src/string_utils.ts", "utility"),
        ("lib/helpers.js", "utility"),
        ("src/index.ts", "entry"),
        ("src/App.tsx", "entry"),
        ("src/cart.ts", "file"),
        ("Makefile", "file"),
    ])
    def test_rules(self, path, expected):
        """Test rules."""
        assert classify_path(path) == expected

    def test_first_matching_rule_wins(self):
        """Test first matching rule wins."""
        # "test" is checked before "util"
        assert classify_path("src/test_utils.ts") == "test"

    def test_language_fallback(self):
        """Test language fallback."""
        assert classify_path("src/cart.ts", {"src/cart.ts": "TypeScript"}) == "typescript"

    def test_extension_from_basename(self):
        """Test extension from basename."""
        assert extension("some.dir/Makefile") == ""
        assert extension("a/b/Readme.MD") == "md"


class TestDependencyGraphBuilder:
    """Tests for DependencyGraphBuilder.build."""

    def test_main_imports_utils(self, temp_store: RecordStore, repository):
        """Test main imports utils."""
        temp_store.create_file(repository.id, "src/main.ts", "import './utils';", "typescript")
        temp_store.create_file(repository.id, "src/utils.ts", "export {};", "typescript")
        temp_store.add_dependency(repository.id, "src/main.ts", "src/utils.ts", "import")

        graph = DependencyGraphBuilder(temp_store).build(repository.id)

        assert graph.to_dict() == {
            "nodes": [
                {"id": "src/main.ts", "label": "main.ts", "type": "entry"},
                {"id": "src/utils.ts", "label": "utils.ts", "type": "utility"},
            ],
            "edges": [{"from": "src/main.ts", "to": "src/utils.ts", "type": "import"}],
        }

    def test_nodes_are_exactly_edge_endpoints(self, temp_store: RecordStore, repository):
        """Test nodes are exactly edge endpoints."""
        temp_store.create_file(repository.id, "src/isolated.ts", "x", "typescript")
        temp_store.add_dependency(repository.id, "a.ts", "b.ts", "import")
        temp_store.add_dependency(repository.id, "b.ts", "a.ts", "require")
        temp_store.add_dependency(repository.id, "c.ts", "b.ts", "import")

        graph = DependencyGraphBuilder(temp_store).build(repository.id)

        endpoints = {e.src for e in graph.edges} | {e.dst for e in graph.edges}
        assert [n.id for n in graph.nodes] == ["a.ts", "b.ts", "c.ts"]
        assert {n.id for n in graph.nodes} == endpoints
        assert len(graph.edges) == 3

    def test_dangling_paths_are_kept(self, temp_store: RecordStore, repository):
        """Test dangling paths are kept."""
        temp_store.add_dependency(repository.id, "src/cart.ts", "src/missing/thing", "import")

        graph = DependencyGraphBuilder(temp_store).build(repository.id)

        assert [(n.id, n.type) for n in graph.nodes] == [
            ("src/cart.ts", "file"),
            ("src/missing/thing", "file"),
        ]

    def test_unknown_repository_gives_empty_graph(self, temp_store: RecordStore):
        """Test unknown repository gives empty graph."""
        graph = DependencyGraphBuilder(temp_store).build(12345)

        assert graph.to_dict() == {"nodes": [], "edges": []}
