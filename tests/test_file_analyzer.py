"""Tests for file and repository analysis."""

import pytest

from codescope_cli.errors import NotFoundError, ValidationError
from codescope_cli.file_analyzer import FileAnalyzer, analyze_content
from codescope_cli.storage import RecordStore


class TestAnalyzeContent:
    """Tests for the pure analyze_content helper."""

    def test_collects_every_heuristic(self, sample_ts_code):
        """Test collects every heuristic."""
        analysis = analyze_content(sample_ts_code, "typescript")

        assert analysis.ai_summary.startswith("This typescript file contains 11 lines.")
        assert analysis.complexity_score >= 1.0
        assert [f.name for f in analysis.functions] == ["fetchUser", "calculate"]

    def test_other_language_has_no_functions(self):
        """Test other language has no functions."""
        analysis = analyze_content("def f():\n    pass\n", "python")

        assert analysis.functions == []
        assert analysis.complexity_score == 1.0


class TestFileAnalyzer:
    """Tests for FileAnalyzer.analyze."""

    def test_analyze_updates_file_and_stores_functions(
        self, temp_store: RecordStore, repository, sample_ts_code,
    ):
        """Test analyze updates file and stores functions."""
        code_file = temp_store.create_file(repository.id, "src/user.ts", sample_ts_code, "typescript")

        updated = FileAnalyzer(temp_store).analyze(code_file.id)

        assert updated.id == code_file.id
        assert updated.ai_summary == analyze_content(sample_ts_code, "typescript").ai_summary
        assert isinstance(updated.complexity_score, float)
        assert updated.last_updated >= code_file.last_updated
        stored = temp_store.get_file(code_file.id)
        assert stored.complexity_score == updated.complexity_score
        functions = temp_store.list_functions_by_file(code_file.id)
        assert [f.name for f in functions] == ["fetchUser", "calculate"]

    def test_missing_file(self, temp_store: RecordStore):
        """Test missing file."""
        with pytest.raises(NotFoundError, match="Code file with ID 404 not found"):
            FileAnalyzer(temp_store).analyze(404)

    @pytest.mark.parametrize("bad_id", [0, -1, "1", None])
    def test_invalid_file_id(self, temp_store: RecordStore, bad_id):
        """Test invalid file id."""
        with pytest.raises(ValidationError):
            FileAnalyzer(temp_store).analyze(bad_id)

    def test_reanalysis_is_additive_by_default(self, temp_store: RecordStore, repository):
        """Test reanalysis is additive by default."""
        code_file = temp_store.create_file(repository.id, "a.js", "function a() {}")
        analyzer = FileAnalyzer(temp_store, replace_functions=False)

        analyzer.analyze(code_file.id)
        analyzer.analyze(code_file.id)

        assert len(temp_store.list_functions_by_file(code_file.id)) == 2

    def test_reanalysis_can_replace(self, temp_store: RecordStore, repository):
        """Test reanalysis can replace."""
        code_file = temp_store.create_file(repository.id, "a.js", "function a() {}")
        analyzer = FileAnalyzer(temp_store, replace_functions=True)

        analyzer.analyze(code_file.id)
        analyzer.analyze(code_file.id)

        assert len(temp_store.list_functions_by_file(code_file.id)) == 1

    def test_policy_defaults_to_config(self, temp_store: RecordStore, monkeypatch):
        """Test policy defaults to config."""
        monkeypatch.setattr("codescope_cli.config.REPLACE_FUNCTIONS_ON_REANALYZE", True)

        assert FileAnalyzer(temp_store).replace_functions is True

    def test_file_without_functions(self, temp_store: RecordStore, repository):
        """Test file without functions."""
        code_file = temp_store.create_file(repository.id, "notes.js", "// Just a comment")

        updated = FileAnalyzer(temp_store).analyze(code_file.id)

        assert updated.complexity_score == 1.0
        assert temp_store.list_functions_by_file(code_file.id) == []


class TestAnalyzeRepository:
    """Tests for FileAnalyzer.analyze_repository."""

    def test_analyzes_every_file(self, temp_store: RecordStore, repository):
        """Test analyzes every file."""
        ids = [
            temp_store.create_file(repository.id, "a.js", "function a() {}").id,
            temp_store.create_file(repository.id, "b.js", "if (x) {}").id,
        ]

        analyzed = FileAnalyzer(temp_store).analyze_repository(repository.id)

        assert analyzed.last_analyzed is not None
        for file_id in ids:
            assert temp_store.get_file(file_id).ai_summary is not None

    def test_missing_repository(self, temp_store: RecordStore):
        """Test missing repository."""
        with pytest.raises(NotFoundError, match="Repository not found with id: 9"):
            FileAnalyzer(temp_store).analyze_repository(9)
