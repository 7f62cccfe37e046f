"""Tests for directory ingestion and import scanning."""

from pathlib import Path

import pytest

from codescope_cli.errors import NotFoundError, ValidationError
from codescope_cli.ingestion import ingest_directory, resolve_specifier, scan_imports
from codescope_cli.storage import RecordStore


class TestScanImports:
    """Tests for scan_imports."""

    def test_import_forms_in_source_order(self):
        """Test import forms in source order."""
        content = (
            "import React from 'react';\n"
            "import './styles.css';\n"
            "export { a } from \"./a\";\n"
            "const b = require('./b');\n"
        )

        assert scan_imports(content) == [
            ("react", "import"),
            ("./styles.css", "import"),
            ("./a", "import"),
            ("./b", "require"),
        ]

    def test_no_imports(self):
        """Test no imports."""
        assert scan_imports("const x = 1;") == []


class TestResolveSpecifier:
    """Tests for resolve_specifier."""

    def test_bare_package_is_ignored(self):
        """Test bare package is ignored."""
        assert resolve_specifier("src/a.ts", "lodash/fp", set()) is None

    def test_extension_lookup(self):
        """Test extension lookup."""
        assert resolve_specifier("src/a.ts", "./b", {"src/b.ts"}) == "src/b.ts"

    def test_index_lookup(self):
        """Test index lookup."""
        assert resolve_specifier("src/a.ts", "../lib", {"lib/index.js"}) == "lib/index.js"

    def test_unresolved_path_is_kept(self):
        """Test unresolved path is kept."""
        assert resolve_specifier("src/a.ts", "./missing", {"src/b.ts"}) == "src/missing"


class TestIngestDirectory:
    """Tests for ingest_directory."""

    def test_ingest_sample_project(self, temp_store: RecordStore, repository, sample_project_path: Path):
        """Test ingest sample project."""
        stats = ingest_directory(temp_store, repository.id, sample_project_path)

        assert stats == {"files": 5, "dependencies": 3}
        files = temp_store.list_files_by_repository(repository.id)
        assert [f.path for f in files] == [
            "README.md",
            "src/auth.js",
            "src/config.json",
            "src/main.ts",
            "src/utils.ts",
        ]
        assert temp_store.find_file_by_path(repository.id, "src/main.ts").language == "typescript"

        edges = [(d.from_file, d.to_file, d.dependency_type) for d in temp_store.list_dependencies(repository.id)]
        assert edges == [
            ("src/auth.js", "src/utils.ts", "require"),
            ("src/main.ts", "src/utils.ts", "import"),
            ("src/main.ts", "src/config.json", "import"),
        ]

    def test_reingest_is_additive(self, temp_store: RecordStore, repository, sample_project_path: Path):
        """Test reingest is additive."""
        ingest_directory(temp_store, repository.id, sample_project_path)
        ingest_directory(temp_store, repository.id, sample_project_path)

        assert temp_store.stats(repository.id)["files"] == 10
        assert temp_store.stats(repository.id)["dependencies"] == 6

    def test_skips_vendor_directories(self, temp_store: RecordStore, repository, sample_project_path: Path):
        """Test skips vendor directories."""
        ingest_directory(temp_store, repository.id, sample_project_path)

        paths = [f.path for f in temp_store.list_files_by_repository(repository.id)]
        assert not any("node_modules" in p for p in paths)

    def test_skips_large_files(self, temp_store: RecordStore, repository, temp_dir: Path, monkeypatch):
        """Test skips large files."""
        monkeypatch.setattr("codescope_cli.config.INGEST_MAX_FILE_BYTES", 10)
        (temp_dir / "small.js").write_text("let a;")
        (temp_dir / "large.js").write_text("x" * 100)

        stats = ingest_directory(temp_store, repository.id, temp_dir)

        assert stats["files"] == 1

    def test_not_a_directory(self, temp_store: RecordStore, repository, temp_dir: Path):
        """Test not a directory."""
        with pytest.raises(ValidationError):
            ingest_directory(temp_store, repository.id, temp_dir / "nope")

    def test_missing_repository(self, temp_store: RecordStore, sample_project_path: Path):
        """Test missing repository."""
        with pytest.raises(NotFoundError):
            ingest_directory(temp_store, 99, sample_project_path)
