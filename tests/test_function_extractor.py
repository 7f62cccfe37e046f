"""Tests for the line-oriented JavaScript/TypeScript function extractor."""

import types

from codescope_cli.function_extractor import (
    extract_functions,
    find_block_end,
    iter_functions,
    supports_language,
)


class TestExtractFunctions:
    """Tests for extract_functions."""

    def test_hello_function(self):
        """Test hello function."""
        functions = extract_functions("function hello(name) {\n  return 1;\n}")

        assert len(functions) == 1
        assert functions[0].name == "hello"
        assert functions[0].line_start == 1
        assert functions[0].line_end == 3
        assert functions[0].signature == "function hello(name) {"

    def test_never_closing_brace_falls_back_to_start(self):
        """Test never closing brace falls back to start."""
        functions = extract_functions("function broken(a) {\n  return a;\n")

        assert len(functions) == 1
        assert functions[0].line_end == functions[0].line_start

    def test_no_brace_falls_back_to_start(self):
        """Test no brace falls back to start."""
        functions = extract_functions("\nfunction declared(a)\n")

        assert functions[0].line_start == 2
        assert functions[0].line_end == 2

    def test_named_and_arrow_functions(self, sample_ts_code):
        """Test named and arrow functions."""
        functions = extract_functions(sample_ts_code, "typescript")

        assert [f.name for f in functions] == ["fetchUser", "calculate"]
        fetch_user, calculate = functions
        assert (fetch_user.line_start, fetch_user.line_end) == (3, 8)
        assert (calculate.line_start, calculate.line_end) == (10, 10)

    def test_async_and_export_prefixes(self):
        """Test async and export prefixes."""
        content = "async function a() {}\nexport let b = async (x) => x;\nvar c = () => 1;"
        assert [f.name for f in extract_functions(content)] == ["a", "b", "c"]

    def test_indented_lines_are_trimmed(self):
        """Test indented lines are trimmed."""
        functions = extract_functions("class A {\n    function inner() {\n    }\n}")

        assert functions[0].name == "inner"
        assert functions[0].signature == "function inner() {"
        assert functions[0].line_end == 3

    def test_line_end_never_before_line_start(self, sample_ts_code):
        """Test line end never before line start."""
        for func in extract_functions(sample_ts_code + "\n}}}\nfunction x() }{"):
            assert func.line_end >= func.line_start

    def test_unsupported_language_yields_nothing(self):
        """Test unsupported language yields nothing."""
        assert extract_functions("function hello() {}", "python") == []

    def test_language_is_case_insensitive(self):
        """Test language is case insensitive."""
        assert len(extract_functions("function hello() {}", "JavaScript")) == 1

    def test_duplicates_are_kept(self):
        """Test duplicates are kept."""
        content = "function twice() {}\nfunction twice() {}"
        assert [f.line_start for f in extract_functions(content)] == [1, 2]

    def test_no_functions_yields_empty_list(self):
        """Test no functions yields empty list."""
        assert extract_functions("const value = 42;") == []


class TestIterFunctions:
    """Tests for the lazy iter_functions generator."""

    def test_is_a_generator(self):
        """Test is a generator."""
        assert isinstance(iter_functions("function a() {}"), types.GeneratorType)

    def test_matches_materialised_form(self, sample_ts_code):
        """Test matches materialised form."""
        assert list(iter_functions(sample_ts_code)) == extract_functions(sample_ts_code)


class TestHelpers:
    """Tests for supports_language and find_block_end."""

    def test_supports_language(self):
        """Test supports language."""
        assert supports_language(None)
        assert supports_language("")
        assert supports_language("typescript")
        assert not supports_language("go")

    def test_find_block_end_counts_from_start_line(self):
        """Test find block end counts from start line."""
        lines = ["}", "function f() {", "  if (x) {", "  }", "}", "}"]
        assert find_block_end(lines, 1) == 5
