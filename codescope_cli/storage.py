"""Persistence layer for ingested repositories and their derived records.

Architecture:
- **SQLite** holds every record type (repositories, files, functions,
  dependencies, issues and the search-query analytics log) in one database.
- **state.json** remembers which repository CLI commands act on by default.

The analysis engine only talks to :class:`RecordStore`; it never opens the
database itself.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .config import DB_FILE, STATE_FILE, ensure_base_dirs
from .errors import NotFoundError, ValidationError
from .models import (
    CodeDependency,
    CodeFile,
    CodeFunction,
    CodeIssue,
    ExtractedFunction,
    Repository,
    SearchQuery,
    check_url,
)

logger = logging.getLogger(__name__)


# ===================================================================
# RepositoryState  (active repository for CLI commands)
# ===================================================================

class RepositoryState:
    """Manage the active repository id persisted in ``state.json``."""

    def __init__(self) -> None:
        ensure_base_dirs()

    def set_current_repository(self, repository_id: int) -> None:
        STATE_FILE.parent.mkdir(parents=True, exist_ok=True)
        STATE_FILE.write_text(
            json.dumps({"current_repository": repository_id}, indent=2),
            encoding="utf-8",
        )

    def get_current_repository(self) -> Optional[int]:
        if not STATE_FILE.exists():
            return None
        try:
            payload = json.loads(STATE_FILE.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            return None
        return payload.get("current_repository")

    def unload_repository(self) -> None:
        STATE_FILE.parent.mkdir(parents=True, exist_ok=True)
        STATE_FILE.write_text(
            json.dumps({"current_repository": None}, indent=2),
            encoding="utf-8",
        )


# ===================================================================
# RecordStore  (SQLite)
# ===================================================================

def _contains_ci(haystack: Optional[str], needle: Optional[str]) -> int:
    """Case-insensitive substring test registered as an SQL function."""
    if haystack is None or needle is None:
        return 0
    return int(needle.lower() in haystack.lower())


def _ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _placeholders(items: Sequence[Any]) -> str:
    return ",".join("?" * len(items))


class RecordStore:
    """SQLite-backed store for every CodeScope record type."""

    def __init__(self, db_path: Optional[Path] = None) -> None:
        self.db_path = db_path or DB_FILE
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(self.db_path))
        self.conn.row_factory = sqlite3.Row
        self.conn.create_function("contains_ci", 2, _contains_ci, deterministic=True)
        self._init_schema()

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "RecordStore":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def _init_schema(self) -> None:
        cur = self.conn.cursor()
        cur.execute("""
            CREATE TABLE IF NOT EXISTS repositories (
                id             INTEGER PRIMARY KEY AUTOINCREMENT,
                github_url     TEXT NOT NULL,
                name           TEXT NOT NULL,
                description    TEXT,
                owner          TEXT NOT NULL,
                default_branch TEXT NOT NULL,
                last_analyzed  TEXT,
                created_at     TEXT NOT NULL
            )
        """)
        cur.execute("""
            CREATE TABLE IF NOT EXISTS code_files (
                id               INTEGER PRIMARY KEY AUTOINCREMENT,
                repository_id    INTEGER NOT NULL,
                path             TEXT NOT NULL,
                content          TEXT NOT NULL,
                language         TEXT,
                size             INTEGER NOT NULL,
                ai_summary       TEXT,
                complexity_score REAL,
                last_updated     TEXT NOT NULL,
                created_at       TEXT NOT NULL
            )
        """)
        cur.execute("""
            CREATE TABLE IF NOT EXISTS code_functions (
                id               INTEGER PRIMARY KEY AUTOINCREMENT,
                file_id          INTEGER NOT NULL,
                name             TEXT NOT NULL,
                signature        TEXT NOT NULL,
                line_start       INTEGER NOT NULL,
                line_end         INTEGER NOT NULL,
                ai_explanation   TEXT,
                complexity_score REAL,
                created_at       TEXT NOT NULL
            )
        """)
        cur.execute("""
            CREATE TABLE IF NOT EXISTS code_dependencies (
                id              INTEGER PRIMARY KEY AUTOINCREMENT,
                repository_id   INTEGER NOT NULL,
                from_file       TEXT NOT NULL,
                to_file         TEXT NOT NULL,
                dependency_type TEXT NOT NULL,
                created_at      TEXT NOT NULL
            )
        """)
        cur.execute("""
            CREATE TABLE IF NOT EXISTS code_issues (
                id          INTEGER PRIMARY KEY AUTOINCREMENT,
                file_id     INTEGER NOT NULL,
                issue_type  TEXT NOT NULL,
                severity    TEXT NOT NULL,
                description TEXT NOT NULL,
                line_number INTEGER,
                suggestion  TEXT,
                created_at  TEXT NOT NULL
            )
        """)
        cur.execute("""
            CREATE TABLE IF NOT EXISTS search_queries (
                id            INTEGER PRIMARY KEY AUTOINCREMENT,
                repository_id INTEGER NOT NULL,
                query         TEXT NOT NULL,
                query_type    TEXT NOT NULL,
                results_count INTEGER NOT NULL,
                created_at    TEXT NOT NULL
            )
        """)
        cur.execute("CREATE INDEX IF NOT EXISTS idx_files_repo ON code_files(repository_id)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_functions_file ON code_functions(file_id)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_deps_repo ON code_dependencies(repository_id)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_issues_file ON code_issues(file_id)")
        self.conn.commit()

    # ------------------------------------------------------------------
    # Row conversion
    # ------------------------------------------------------------------

    @staticmethod
    def _repository(row: sqlite3.Row) -> Repository:
        return Repository(
            id=row["id"],
            github_url=row["github_url"],
            name=row["name"],
            owner=row["owner"],
            default_branch=row["default_branch"],
            description=row["description"],
            last_analyzed=_parse_ts(row["last_analyzed"]),
            created_at=_parse_ts(row["created_at"]),
        )

    @staticmethod
    def _file(row: sqlite3.Row) -> CodeFile:
        score = row["complexity_score"]
        return CodeFile(
            id=row["id"],
            repository_id=row["repository_id"],
            path=row["path"],
            content=row["content"],
            size=row["size"],
            language=row["language"],
            ai_summary=row["ai_summary"],
            complexity_score=float(score) if score is not None else None,
            last_updated=_parse_ts(row["last_updated"]),
            created_at=_parse_ts(row["created_at"]),
        )

    @staticmethod
    def _function(row: sqlite3.Row) -> CodeFunction:
        score = row["complexity_score"]
        return CodeFunction(
            id=row["id"],
            file_id=row["file_id"],
            name=row["name"],
            signature=row["signature"],
            line_start=row["line_start"],
            line_end=row["line_end"],
            ai_explanation=row["ai_explanation"],
            complexity_score=float(score) if score is not None else None,
            created_at=_parse_ts(row["created_at"]),
        )

    @staticmethod
    def _dependency(row: sqlite3.Row) -> CodeDependency:
        return CodeDependency(
            repository_id=row["repository_id"],
            from_file=row["from_file"],
            to_file=row["to_file"],
            dependency_type=row["dependency_type"],
            id=row["id"],
            created_at=_parse_ts(row["created_at"]),
        )

    @staticmethod
    def _issue(row: sqlite3.Row) -> CodeIssue:
        return CodeIssue(
            file_id=row["file_id"],
            issue_type=row["issue_type"],
            severity=row["severity"],
            description=row["description"],
            line_number=row["line_number"],
            suggestion=row["suggestion"],
            id=row["id"],
            created_at=_parse_ts(row["created_at"]),
        )

    @staticmethod
    def _search_query(row: sqlite3.Row) -> SearchQuery:
        return SearchQuery(
            repository_id=row["repository_id"],
            query=row["query"],
            query_type=row["query_type"],
            results_count=row["results_count"],
            id=row["id"],
            created_at=_parse_ts(row["created_at"]),
        )

    # ------------------------------------------------------------------
    # Repositories
    # ------------------------------------------------------------------

    def create_repository(
        self,
        github_url: str,
        name: str,
        owner: str,
        description: Optional[str] = None,
        default_branch: str = "main",
    ) -> Repository:
        check_url(github_url)
        cur = self.conn.execute(
            """
            INSERT INTO repositories (
                github_url, name, description, owner, default_branch, created_at
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            (github_url, name, description, owner, default_branch, _ts(datetime.now())),
        )
        self.conn.commit()
        logger.info("Created repository %d (%s)", cur.lastrowid, name)
        return self.get_repository(cur.lastrowid)

    def get_repository(self, repository_id: int) -> Optional[Repository]:
        row = self.conn.execute(
            "SELECT * FROM repositories WHERE id = ?", (repository_id,),
        ).fetchone()
        return self._repository(row) if row else None

    def repository_exists(self, repository_id: int) -> bool:
        row = self.conn.execute(
            "SELECT 1 FROM repositories WHERE id = ?", (repository_id,),
        ).fetchone()
        return row is not None

    def list_repositories(self) -> List[Repository]:
        """Return all repositories, newest first."""
        rows = self.conn.execute(
            "SELECT * FROM repositories ORDER BY created_at DESC, id DESC",
        ).fetchall()
        return [self._repository(r) for r in rows]

    def update_repository(self, repository_id: int, **fields: Any) -> Repository:
        """Patch editable repository columns (name, description, owner, ...)."""
        editable = {"github_url", "name", "description", "owner", "default_branch"}
        unknown = set(fields) - editable
        if unknown:
            raise ValidationError(f"Cannot update repository field(s): {', '.join(sorted(unknown))}")
        if "github_url" in fields:
            check_url(fields["github_url"])
        if not fields:
            repository = self.get_repository(repository_id)
            if repository is None:
                raise NotFoundError(f"Repository not found with id: {repository_id}")
            return repository

        assignments = ", ".join(f"{name} = ?" for name in fields)
        cur = self.conn.execute(
            f"UPDATE repositories SET {assignments} WHERE id = ?",
            [*fields.values(), repository_id],
        )
        self.conn.commit()
        if cur.rowcount == 0:
            raise NotFoundError(f"Repository not found with id: {repository_id}")
        return self.get_repository(repository_id)

    def mark_repository_analyzed(self, repository_id: int, when: datetime) -> Repository:
        cur = self.conn.execute(
            "UPDATE repositories SET last_analyzed = ? WHERE id = ?",
            (_ts(when), repository_id),
        )
        self.conn.commit()
        if cur.rowcount == 0:
            raise NotFoundError(f"Repository not found with id: {repository_id}")
        return self.get_repository(repository_id)

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def create_file(
        self,
        repository_id: int,
        path: str,
        content: str,
        language: Optional[str] = None,
        size: Optional[int] = None,
    ) -> CodeFile:
        if size is None:
            size = len(content.encode("utf-8"))
        now = _ts(datetime.now())
        cur = self.conn.execute(
            """
            INSERT INTO code_files (
                repository_id, path, content, language, size, last_updated, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (repository_id, path, content, language or None, size, now, now),
        )
        self.conn.commit()
        return self.get_file(cur.lastrowid)

    def get_file(self, file_id: int) -> Optional[CodeFile]:
        row = self.conn.execute(
            "SELECT * FROM code_files WHERE id = ?", (file_id,),
        ).fetchone()
        return self._file(row) if row else None

    def update_file(
        self,
        file_id: int,
        ai_summary: Optional[str],
        complexity_score: Optional[float],
        last_updated: datetime,
    ) -> CodeFile:
        """Apply an analysis patch to a file and return the stored result."""
        cur = self.conn.execute(
            """
            UPDATE code_files
               SET ai_summary = ?, complexity_score = ?, last_updated = ?
             WHERE id = ?
            """,
            (ai_summary, complexity_score, _ts(last_updated), file_id),
        )
        self.conn.commit()
        if cur.rowcount == 0:
            raise NotFoundError(f"Code file with ID {file_id} not found")
        return self.get_file(file_id)

    def list_files_by_repository(
        self, repository_id: int, limit: Optional[int] = None,
    ) -> List[CodeFile]:
        sql = "SELECT * FROM code_files WHERE repository_id = ? ORDER BY id"
        params: List[Any] = [repository_id]
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return [self._file(r) for r in self.conn.execute(sql, params).fetchall()]

    def find_file_by_path(self, repository_id: int, path: str) -> Optional[CodeFile]:
        row = self.conn.execute(
            "SELECT * FROM code_files WHERE repository_id = ? AND path = ? ORDER BY id LIMIT 1",
            (repository_id, path),
        ).fetchone()
        return self._file(row) if row else None

    def search_files(
        self,
        repository_id: int,
        query: str,
        languages: Optional[Sequence[str]] = None,
    ) -> List[CodeFile]:
        """Files whose path or content contains *query* (case-insensitive).

        When *languages* is non-empty the file's language must equal one of
        them, compared case-insensitively.
        """
        sql = (
            "SELECT * FROM code_files WHERE repository_id = ?"
            " AND (contains_ci(path, ?) OR contains_ci(content, ?))"
        )
        params: List[Any] = [repository_id, query, query]
        if languages:
            sql += f" AND lower(language) IN ({_placeholders(languages)})"
            params.extend(lang.lower() for lang in languages)
        sql += " ORDER BY id"
        return [self._file(r) for r in self.conn.execute(sql, params).fetchall()]

    def find_files_by_path_hints(
        self, repository_id: int, hints: Sequence[str], limit: int,
    ) -> List[CodeFile]:
        """Files whose path contains any of *hints* (case-insensitive)."""
        if not hints:
            return []
        clause = " OR ".join("contains_ci(path, ?)" for _ in hints)
        rows = self.conn.execute(
            f"SELECT * FROM code_files WHERE repository_id = ? AND ({clause}) ORDER BY id LIMIT ?",
            [repository_id, *hints, limit],
        ).fetchall()
        return [self._file(r) for r in rows]

    def find_files_by_keywords(
        self, repository_id: int, keywords: Sequence[str], limit: int,
    ) -> List[CodeFile]:
        """Files whose path, content or summary contains any keyword."""
        if not keywords:
            return []
        clause = " OR ".join(
            "contains_ci(path, ?) OR contains_ci(content, ?) OR contains_ci(ai_summary, ?)"
            for _ in keywords
        )
        params: List[Any] = [repository_id]
        for keyword in keywords:
            params.extend([keyword, keyword, keyword])
        params.append(limit)
        rows = self.conn.execute(
            f"SELECT * FROM code_files WHERE repository_id = ? AND ({clause}) ORDER BY id LIMIT ?",
            params,
        ).fetchall()
        return [self._file(r) for r in rows]

    # ------------------------------------------------------------------
    # Functions
    # ------------------------------------------------------------------

    def _insert_function_rows(self, file_id: int, records: List[ExtractedFunction]) -> None:
        now = _ts(datetime.now())
        self.conn.executemany(
            """
            INSERT INTO code_functions (
                file_id, name, signature, line_start, line_end, created_at
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            [(file_id, r.name, r.signature, r.line_start, r.line_end, now) for r in records],
        )

    def insert_functions(self, file_id: int, records: Iterable[ExtractedFunction]) -> int:
        """Append a batch of extracted functions to *file_id*.

        Returns:
            Number of rows inserted.
        """
        rows = list(records)
        if not rows:
            return 0
        self._insert_function_rows(file_id, rows)
        self.conn.commit()
        return len(rows)

    def replace_functions(self, file_id: int, records: Iterable[ExtractedFunction]) -> int:
        """Swap the stored functions of *file_id* for a fresh batch atomically."""
        rows = list(records)
        with self.conn:
            self.conn.execute("DELETE FROM code_functions WHERE file_id = ?", (file_id,))
            if rows:
                self._insert_function_rows(file_id, rows)
        return len(rows)

    def list_functions_by_file(self, file_id: int) -> List[CodeFunction]:
        rows = self.conn.execute(
            "SELECT * FROM code_functions WHERE file_id = ? ORDER BY line_start, id",
            (file_id,),
        ).fetchall()
        return [self._function(r) for r in rows]

    def list_functions_by_files(
        self, file_ids: Sequence[int], limit: Optional[int] = None,
    ) -> List[CodeFunction]:
        if not file_ids:
            return []
        sql = f"SELECT * FROM code_functions WHERE file_id IN ({_placeholders(file_ids)}) ORDER BY id"
        params: List[Any] = list(file_ids)
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return [self._function(r) for r in self.conn.execute(sql, params).fetchall()]

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    def add_dependency(
        self,
        repository_id: int,
        from_file: str,
        to_file: str,
        dependency_type: str,
    ) -> CodeDependency:
        dep = CodeDependency(repository_id, from_file, to_file, dependency_type)
        return self.add_dependencies([dep])[0]

    def add_dependencies(self, deps: Iterable[CodeDependency]) -> List[CodeDependency]:
        stored: List[CodeDependency] = []
        now = datetime.now()
        with self.conn:
            for dep in deps:
                cur = self.conn.execute(
                    """
                    INSERT INTO code_dependencies (
                        repository_id, from_file, to_file, dependency_type, created_at
                    ) VALUES (?, ?, ?, ?, ?)
                    """,
                    (dep.repository_id, dep.from_file, dep.to_file, dep.dependency_type, _ts(now)),
                )
                dep.id = cur.lastrowid
                dep.created_at = now
                stored.append(dep)
        return stored

    def list_dependencies(self, repository_id: int) -> List[CodeDependency]:
        rows = self.conn.execute(
            "SELECT * FROM code_dependencies WHERE repository_id = ? ORDER BY id",
            (repository_id,),
        ).fetchall()
        return [self._dependency(r) for r in rows]

    # ------------------------------------------------------------------
    # Issues
    # ------------------------------------------------------------------

    def create_issue(
        self,
        file_id: int,
        issue_type: str,
        severity: str,
        description: str,
        line_number: Optional[int] = None,
        suggestion: Optional[str] = None,
    ) -> CodeIssue:
        issue = CodeIssue(file_id, issue_type, severity, description, line_number, suggestion)
        if self.get_file(file_id) is None:
            raise NotFoundError(f"Code file with ID {file_id} not found")
        now = datetime.now()
        cur = self.conn.execute(
            """
            INSERT INTO code_issues (
                file_id, issue_type, severity, description, line_number, suggestion, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (file_id, issue_type, severity, description, line_number, suggestion, _ts(now)),
        )
        self.conn.commit()
        issue.id = cur.lastrowid
        issue.created_at = now
        return issue

    def list_issues_by_files(
        self, file_ids: Sequence[int], limit: Optional[int] = None,
    ) -> List[CodeIssue]:
        if not file_ids:
            return []
        sql = f"SELECT * FROM code_issues WHERE file_id IN ({_placeholders(file_ids)}) ORDER BY id"
        params: List[Any] = list(file_ids)
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return [self._issue(r) for r in self.conn.execute(sql, params).fetchall()]

    def list_issues(
        self,
        repository_id: int,
        severity: Optional[Sequence[str]] = None,
        issue_type: Optional[Sequence[str]] = None,
        file_path: Optional[str] = None,
    ) -> List[CodeIssue]:
        """Issues of every file in a repository, optionally filtered."""
        sql = (
            "SELECT i.* FROM code_issues i"
            " JOIN code_files f ON f.id = i.file_id"
            " WHERE f.repository_id = ?"
        )
        params: List[Any] = [repository_id]
        if severity:
            sql += f" AND i.severity IN ({_placeholders(severity)})"
            params.extend(severity)
        if issue_type:
            sql += f" AND i.issue_type IN ({_placeholders(issue_type)})"
            params.extend(issue_type)
        if file_path:
            sql += " AND f.path = ?"
            params.append(file_path)
        sql += " ORDER BY i.id"
        return [self._issue(r) for r in self.conn.execute(sql, params).fetchall()]

    # ------------------------------------------------------------------
    # Search analytics
    # ------------------------------------------------------------------

    def log_search_query(
        self,
        repository_id: int,
        query: str,
        query_type: str,
        results_count: int,
    ) -> SearchQuery:
        entry = SearchQuery(repository_id, query, query_type, results_count)
        now = datetime.now()
        cur = self.conn.execute(
            """
            INSERT INTO search_queries (
                repository_id, query, query_type, results_count, created_at
            ) VALUES (?, ?, ?, ?, ?)
            """,
            (repository_id, query, query_type, results_count, _ts(now)),
        )
        self.conn.commit()
        entry.id = cur.lastrowid
        entry.created_at = now
        return entry

    def list_search_queries(self, repository_id: int) -> List[SearchQuery]:
        rows = self.conn.execute(
            "SELECT * FROM search_queries WHERE repository_id = ? ORDER BY id",
            (repository_id,),
        ).fetchall()
        return [self._search_query(r) for r in rows]

    def stats(self, repository_id: int) -> Dict[str, int]:
        """Row counts for one repository, used by the CLI summary."""
        files = self.conn.execute(
            "SELECT COUNT(*) FROM code_files WHERE repository_id = ?", (repository_id,),
        ).fetchone()[0]
        functions = self.conn.execute(
            "SELECT COUNT(*) FROM code_functions fn JOIN code_files f ON f.id = fn.file_id"
            " WHERE f.repository_id = ?",
            (repository_id,),
        ).fetchone()[0]
        deps = self.conn.execute(
            "SELECT COUNT(*) FROM code_dependencies WHERE repository_id = ?", (repository_id,),
        ).fetchone()[0]
        return {"files": files, "functions": functions, "dependencies": deps}
