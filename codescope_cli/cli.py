"""Typer-based CLI for CodeScope repository exploration."""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__, config
from .config_manager import DEFAULT_SETTINGS, coerce_value, load_settings, save_setting
from .dependency_graph import DependencyGraphBuilder
from .errors import CodeScopeError
from .file_analyzer import FileAnalyzer
from .graph_export import EXPORT_FORMATS, export_graph, render_dot, render_html, render_json
from .ingestion import ingest_directory
from .models import ISSUE_TYPES, SEVERITIES
from .query_engine import QueryEngine
from .search import CodeSearchEngine
from .storage import RecordStore, RepositoryState

console = Console()

app = typer.Typer(
    help="🔭 CodeScope: heuristic code-repository exploration.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

repo_app = typer.Typer(
    help="📂 Repositories: create, list and select.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(
    help="⚙️  Configuration: show and change tunables.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(repo_app, name="repo")
app.add_typer(config_app, name="config")


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"CodeScope v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    """CodeScope: summaries, complexity, search and dependency graphs for ingested code."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ===================================================================
# Helpers
# ===================================================================

@contextmanager
def _reported_errors() -> Iterator[None]:
    """Turn domain errors into a red message and exit code 1."""
    try:
        yield
    except CodeScopeError as exc:
        console.print(f"[red]✗[/red] {escape(str(exc))}")
        raise typer.Exit(code=1)


def _resolve_repository(repo: Optional[int]) -> int:
    if repo is not None:
        return repo
    current = RepositoryState().get_current_repository()
    if current is None:
        raise typer.BadParameter("No repository selected. Use 'codescope repo use <id>' or pass --repo.")
    return current


# ===================================================================
# Repositories
# ===================================================================

@repo_app.command("create")
def create_repository(
    name: str = typer.Argument(..., help="Repository name."),
    url: str = typer.Option(..., "--url", help="GitHub URL of the repository."),
    owner: str = typer.Option(..., "--owner", help="Repository owner."),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Short description."),
    branch: str = typer.Option("main", "--branch", "-b", help="Default branch."),
):
    """Register a repository and make it the active one."""
    with _reported_errors(), RecordStore() as store:
        repository = store.create_repository(
            github_url=url, name=name, owner=owner,
            description=description, default_branch=branch,
        )
    RepositoryState().set_current_repository(repository.id)
    typer.echo(f"Created repository '{repository.name}' with id {repository.id}.")


@repo_app.command("list")
def list_repositories():
    """List registered repositories, newest first."""
    with RecordStore() as store:
        repositories = store.list_repositories()
    current = RepositoryState().get_current_repository()

    if not repositories:
        typer.echo("No repositories registered yet.")
        raise typer.Exit(code=0)

    for repository in repositories:
        marker = "*" if repository.id == current else " "
        analyzed = repository.last_analyzed.isoformat(timespec="seconds") if repository.last_analyzed else "never"
        typer.echo(f"{marker} {repository.id}: {repository.owner}/{repository.name} (analyzed: {analyzed})")


@repo_app.command("use")
def use_repository(repository_id: int = typer.Argument(..., help="Repository id to activate.")):
    """Switch the active repository."""
    with RecordStore() as store:
        if not store.repository_exists(repository_id):
            raise typer.BadParameter(f"Repository {repository_id} not found.")
    RepositoryState().set_current_repository(repository_id)
    typer.echo(f"Using repository {repository_id}.")


@repo_app.command("current")
def current_repository():
    """Print the active repository."""
    current = RepositoryState().get_current_repository()
    if current is None:
        typer.echo("No repository selected")
        return
    with RecordStore() as store:
        repository = store.get_repository(current)
        stats = store.stats(current) if repository else None
    if repository is None:
        typer.echo(f"Selected repository {current} no longer exists")
        return
    typer.echo(f"{repository.id}: {repository.owner}/{repository.name}")
    typer.echo(
        f"Files: {stats['files']} | Functions: {stats['functions']} | Dependencies: {stats['dependencies']}"
    )


# ===================================================================
# Ingestion and analysis
# ===================================================================

@app.command("ingest")
def ingest(
    path: Path = typer.Argument(..., exists=True, file_okay=False, help="Directory to ingest."),
    repo: Optional[int] = typer.Option(None, "--repo", "-r", help="Repository id (default: active)."),
):
    """Store a local source tree's files and import edges."""
    repository_id = _resolve_repository(repo)
    with _reported_errors(), RecordStore() as store:
        stats = ingest_directory(store, repository_id, path.resolve())
    typer.echo(f"Ingested '{path}' into repository {repository_id}.")
    typer.echo(f"Files: {stats['files']} | Dependencies: {stats['dependencies']}")


@app.command("files")
def list_files(
    repo: Optional[int] = typer.Option(None, "--repo", "-r", help="Repository id (default: active)."),
):
    """List stored files with their complexity scores."""
    repository_id = _resolve_repository(repo)
    with RecordStore() as store:
        files = store.list_files_by_repository(repository_id)

    if not files:
        typer.echo("No files stored for this repository.")
        raise typer.Exit(code=0)

    table = Table(title=f"Files in repository {repository_id}", show_header=True)
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Path", overflow="fold")
    table.add_column("Language")
    table.add_column("Size", justify="right")
    table.add_column("Complexity", justify="right")
    for code_file in files:
        score = f"{code_file.complexity_score:.2f}" if code_file.complexity_score is not None else "-"
        table.add_row(
            str(code_file.id), code_file.path, code_file.language or "-",
            str(code_file.size), score,
        )
    console.print(table)


@app.command("functions")
def list_functions(file_id: int = typer.Argument(..., help="File id.")):
    """List functions extracted from a file, by start line."""
    with RecordStore() as store:
        functions = store.list_functions_by_file(file_id)

    if not functions:
        typer.echo("No functions extracted for this file.")
        raise typer.Exit(code=0)

    for func in functions:
        typer.echo(f"{func.name}  L{func.line_start}-{func.line_end}")
        typer.echo(f"  {func.signature[:120]}")


@app.command("analyze")
def analyze_file(file_id: int = typer.Argument(..., help="File id to analyze.")):
    """Compute summary, complexity and functions for one file."""
    with _reported_errors(), RecordStore() as store:
        updated = FileAnalyzer(store).analyze(file_id)
        function_count = len(store.list_functions_by_file(file_id))

    typer.echo(f"Analyzed {updated.path}")
    typer.echo(f"Complexity: {updated.complexity_score:.2f} | Functions stored: {function_count}")
    typer.echo(updated.ai_summary)


@app.command("analyze-repo")
def analyze_repository(
    repo: Optional[int] = typer.Option(None, "--repo", "-r", help="Repository id (default: active)."),
):
    """Analyze every file of a repository."""
    repository_id = _resolve_repository(repo)
    with _reported_errors(), RecordStore() as store:
        repository = FileAnalyzer(store).analyze_repository(repository_id)
        stats = store.stats(repository_id)
    typer.echo(f"Analyzed repository '{repository.name}'.")
    typer.echo(f"Files: {stats['files']} | Functions: {stats['functions']}")


# ===================================================================
# Search and questions
# ===================================================================

@app.command("search")
def search(
    query: str = typer.Argument(..., help="Text to search for."),
    file_types: Optional[List[str]] = typer.Option(None, "--type", "-t", help="Restrict to a language (repeatable)."),
    ai: bool = typer.Option(False, "--ai", help="Attach file-analysis context to each hit."),
    as_json: bool = typer.Option(False, "--json", help="Print results as JSON."),
    repo: Optional[int] = typer.Option(None, "--repo", "-r", help="Repository id (default: active)."),
):
    """Substring search across stored file contents."""
    repository_id = _resolve_repository(repo)
    with _reported_errors(), RecordStore() as store:
        results = CodeSearchEngine(store).search(
            repository_id, query, file_types=file_types, include_ai_analysis=ai,
        )

    if as_json:
        typer.echo(json.dumps([r.to_dict() for r in results], indent=2))
        return

    if not results:
        typer.echo("No matches found.")
        raise typer.Exit(code=0)

    for item in results:
        typer.echo(f"{item.file_path}:{item.line_number}  score={item.relevance_score:.2f}")
        for line in item.content_snippet.splitlines():
            typer.echo(f"  {line[:120]}")
        if item.ai_context:
            typer.echo(f"  ↳ {item.ai_context}")


@app.command("ask")
def ask(
    question: str = typer.Argument(..., help="Free-text question about the code."),
    context_files: Optional[List[str]] = typer.Option(None, "--file", "-f", help="Path hint to focus on (repeatable)."),
    as_json: bool = typer.Option(False, "--json", help="Print the answer as JSON."),
    repo: Optional[int] = typer.Option(None, "--repo", "-r", help="Repository id (default: active)."),
):
    """Answer a question from keywords, stored functions and issues."""
    repository_id = _resolve_repository(repo)
    with _reported_errors(), RecordStore() as store:
        answer = QueryEngine(store).answer(repository_id, question, context_files=context_files)

    if as_json:
        typer.echo(json.dumps(answer.to_dict(), indent=2))
        return

    typer.echo(answer.summary)
    for heading, items in (
        ("Key functions", answer.key_functions),
        ("Potential issues", answer.potential_issues),
        ("Related files", answer.related_files),
        ("Suggestions", answer.suggestions),
    ):
        if items:
            typer.echo(f"\n{heading}:")
            for item in items:
                typer.echo(f"- {item}")


# ===================================================================
# Issues
# ===================================================================

@app.command("issues")
def list_issues(
    severity: Optional[List[str]] = typer.Option(None, "--severity", "-s", help="Filter by severity (repeatable)."),
    issue_type: Optional[List[str]] = typer.Option(None, "--type", "-t", help="Filter by issue type (repeatable)."),
    file_path: Optional[str] = typer.Option(None, "--file", help="Only issues of this exact path."),
    repo: Optional[int] = typer.Option(None, "--repo", "-r", help="Repository id (default: active)."),
):
    """List recorded issues of a repository."""
    for value in severity or []:
        if value not in SEVERITIES:
            raise typer.BadParameter(f"Severity must be one of: {', '.join(SEVERITIES)}")
    for value in issue_type or []:
        if value not in ISSUE_TYPES:
            raise typer.BadParameter(f"Issue type must be one of: {', '.join(ISSUE_TYPES)}")

    repository_id = _resolve_repository(repo)
    with RecordStore() as store:
        issues = store.list_issues(
            repository_id, severity=severity, issue_type=issue_type, file_path=file_path,
        )

    if not issues:
        typer.echo("No issues recorded.")
        raise typer.Exit(code=0)

    for issue in issues:
        where = f" line {issue.line_number}" if issue.line_number is not None else ""
        typer.echo(f"[{issue.severity}] {issue.issue_type}: {issue.description} (file {issue.file_id}{where})")
        if issue.suggestion:
            typer.echo(f"  → {issue.suggestion}")


@app.command("add-issue")
def add_issue(
    file_id: int = typer.Argument(..., help="File the issue belongs to."),
    issue_type: str = typer.Argument(..., help=f"One of: {', '.join(ISSUE_TYPES)}."),
    severity: str = typer.Argument(..., help=f"One of: {', '.join(SEVERITIES)}."),
    description: str = typer.Argument(..., help="What is wrong."),
    line: Optional[int] = typer.Option(None, "--line", "-l", help="Line number."),
    suggestion: Optional[str] = typer.Option(None, "--suggestion", help="How to fix it."),
):
    """Record an issue against a stored file."""
    with _reported_errors(), RecordStore() as store:
        issue = store.create_issue(
            file_id, issue_type, severity, description,
            line_number=line, suggestion=suggestion,
        )
    typer.echo(f"Recorded issue {issue.id} on file {file_id}.")


# ===================================================================
# Dependency graph
# ===================================================================

@app.command("graph")
def graph(
    fmt: str = typer.Option("json", "--format", "-f", help="Output format: json, dot or html."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to this file instead of stdout."),
    repo: Optional[int] = typer.Option(None, "--repo", "-r", help="Repository id (default: active)."),
):
    """Export the file dependency graph."""
    fmt = fmt.lower()
    if fmt not in EXPORT_FORMATS:
        raise typer.BadParameter(f"Format must be one of: {', '.join(EXPORT_FORMATS)}")

    repository_id = _resolve_repository(repo)
    with RecordStore() as store:
        dependency_graph = DependencyGraphBuilder(store).build(repository_id)

    if output is not None:
        export_graph(dependency_graph, output, fmt)
        typer.echo(f"Exported graph to {output}")
        return

    renderers = {"json": render_json, "dot": render_dot, "html": render_html}
    typer.echo(renderers[fmt](dependency_graph))


# ===================================================================
# Configuration
# ===================================================================

@config_app.command("show")
def show_config():
    """Print effective settings."""
    settings = load_settings(config.CONFIG_FILE)
    table = Table(title="CodeScope settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for section, values in settings.items():
        for key, value in values.items():
            table.add_row(f"{section}.{key}", str(value))
    console.print(table)


@config_app.command("set")
def set_config(
    key: str = typer.Argument(..., help="Setting as <section>.<key>, e.g. search.max_results."),
    value: str = typer.Argument(..., help="New value."),
):
    """Persist one setting to the config file."""
    section, _, name = key.partition(".")
    if section not in DEFAULT_SETTINGS or name not in DEFAULT_SETTINGS[section]:
        known = ", ".join(f"{s}.{k}" for s, keys in DEFAULT_SETTINGS.items() for k in keys)
        raise typer.BadParameter(f"Unknown setting '{key}'. Known settings: {known}")
    try:
        coerced = coerce_value(section, name, value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc))
    save_setting(config.CONFIG_FILE, section, name, coerced)
    typer.echo(f"Set {key} = {coerced}")


if __name__ == "__main__":
    app()
