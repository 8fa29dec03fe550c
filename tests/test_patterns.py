"""Tests for contextgen.context.patterns — hierarchical ignore scopes."""

from __future__ import annotations

from pathlib import Path

import pytest

from contextgen.context.patterns import PatternStore, normalize_relative, parse_ignore_lines

_DIALECTS = [".gitignore", ".dockerignore", ".contextignore"]


# ── Fixtures ──────────────────────────────────────────────────────


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture()
def nested_project(tmp_path: Path) -> Path:
    """A workspace with ignore files at several depths and dialects."""
    _write(tmp_path / ".gitignore", "build/\n*.log\n!keep.log\n/dist\n")
    _write(tmp_path / "pkg" / ".gitignore", "generated.ts\n/only-here.ts\n!build/\n")
    _write(tmp_path / "pkg" / ".dockerignore", "secrets/\n")
    _write(tmp_path / "vendor" / ".contextignore", "*.ts\n")
    return tmp_path


def _store(root: Path, names: list[str] | None = None) -> PatternStore:
    return PatternStore(root, _DIALECTS if names is None else names).initialize()


# ── Parsing ───────────────────────────────────────────────────────


class TestParseIgnoreLines:
    def test_drops_blanks_and_comments(self):
        text = "# comment\n\n   \n  a.ts  \n#another\nb/\n"
        assert parse_ignore_lines(text) == ["a.ts", "b/"]

    def test_keeps_negations_and_anchors(self):
        assert parse_ignore_lines("!keep.log\n/root-only\n") == ["!keep.log", "/root-only"]

    def test_odd_pattern_never_raises(self):
        patterns = parse_ignore_lines("[unclosed\nok.ts\n")
        assert len(patterns) == 2
        assert patterns[1] == "ok.ts"


class TestNormalizeRelative:
    def test_backslashes(self):
        assert normalize_relative("a\\b\\c.ts") == "a/b/c.ts"

    def test_dot_prefix(self):
        assert normalize_relative("./a/./b.ts") == "a/b.ts"

    def test_empty_and_dot(self):
        assert normalize_relative("") == ""
        assert normalize_relative(".") == ""


# ── Store construction ────────────────────────────────────────────


class TestPatternStoreBuild:
    def test_empty_configuration_is_permissive(self, nested_project: Path):
        store = _store(nested_project, [])
        assert store.scopes == {}
        assert store.is_excluded("build/out.js") is False
        assert store.is_excluded("debug.log") is False

    def test_no_ignore_files_is_permissive(self, tmp_path: Path):
        (tmp_path / "a.ts").write_text("x", encoding="utf-8")
        store = _store(tmp_path)
        assert store.scopes == {}
        assert store.is_excluded("a.ts") is False

    def test_one_scope_per_directory(self, nested_project: Path):
        store = _store(nested_project)
        assert set(store.scopes) == {"", "pkg", "vendor"}

    def test_dialects_in_same_directory_merge(self, nested_project: Path):
        store = _store(nested_project)
        patterns = store.scopes["pkg"].patterns
        assert "generated.ts" in patterns
        assert "secrets/" in patterns

    def test_unconfigured_dialect_ignored(self, nested_project: Path):
        store = _store(nested_project, [".gitignore"])
        assert "vendor" not in store.scopes
        assert store.is_excluded("vendor/lib.ts") is False
        assert store.is_excluded("pkg/secrets/key.json") is False

    def test_excluded_directories_not_searched(self, tmp_path: Path):
        _write(tmp_path / ".gitignore", "third_party/\n")
        _write(tmp_path / "third_party" / ".gitignore", "*.ts\n")
        store = _store(tmp_path)
        assert "third_party" not in store.scopes

    def test_git_directory_not_searched(self, tmp_path: Path):
        _write(tmp_path / ".git" / ".gitignore", "*.ts\n")
        store = _store(tmp_path)
        assert store.scopes == {}

    def test_unreadable_ignore_file_is_skipped(self, tmp_path: Path):
        (tmp_path / ".gitignore").write_bytes(b"\xff\xfe\x00 not utf-8")
        _write(tmp_path / "sub" / ".gitignore", "x.ts\n")
        store = _store(tmp_path)
        assert "" not in store.scopes
        assert store.is_excluded("sub/x.ts") is True
        assert any("unreadable" in w for w in store.warnings)

    def test_cap_keeps_files_loaded_in_same_directory(self, tmp_path: Path, monkeypatch):
        monkeypatch.setattr("contextgen.context.patterns._MAX_IGNORE_FILES", 1)
        _write(tmp_path / ".gitignore", "first.ts\n")
        _write(tmp_path / ".dockerignore", "second.ts\n")
        store = _store(tmp_path, [".gitignore", ".dockerignore"])
        assert store.scopes[""].patterns == ("first.ts",)
        assert store.is_excluded("first.ts") is True
        assert store.is_excluded("second.ts") is False
        assert any("Stopped after 1 ignore files" in w for w in store.warnings)

    def test_rebuild_picks_up_new_ignore_file(self, tmp_path: Path):
        store = _store(tmp_path)
        assert store.is_excluded("tmp.ts") is False
        _write(tmp_path / ".gitignore", "tmp.ts\n")
        assert store.is_excluded("tmp.ts") is False
        store.rebuild()
        assert store.is_excluded("tmp.ts") is True

    def test_rebuild_drops_removed_scope(self, nested_project: Path):
        store = _store(nested_project)
        (nested_project / "vendor" / ".contextignore").unlink()
        store.rebuild()
        assert "vendor" not in store.scopes
        assert store.is_excluded("vendor/lib.ts") is False


# ── Exclusion decisions ───────────────────────────────────────────


class TestIsExcluded:
    def test_empty_and_dot_never_excluded(self, nested_project: Path):
        store = _store(nested_project)
        assert store.is_excluded("") is False
        assert store.is_excluded(".") is False

    def test_ignore_files_themselves_excluded(self, nested_project: Path):
        store = _store(nested_project)
        assert store.is_excluded(".gitignore") is True
        assert store.is_excluded("pkg/.dockerignore") is True
        assert store.is_excluded("some/where/.contextignore") is True

    def test_root_pattern_applies_at_any_depth(self, nested_project: Path):
        store = _store(nested_project)
        assert store.is_excluded("build", is_dir=True) is True
        assert store.is_excluded("src/build/out.js") is True

    def test_root_exclusion_beats_child_negation(self, nested_project: Path):
        store = _store(nested_project)
        # pkg/.gitignore says !build/ but the root scope already excludes it
        assert store.is_excluded("pkg/build", is_dir=True) is True
        assert store.is_excluded("pkg/build/out.js") is True

    def test_negation_reincludes_within_scope(self, nested_project: Path):
        store = _store(nested_project)
        assert store.is_excluded("debug.log") is True
        assert store.is_excluded("keep.log") is False
        assert store.is_excluded("logs/keep.log") is False

    def test_anchored_pattern_at_root(self, nested_project: Path):
        store = _store(nested_project)
        assert store.is_excluded("dist", is_dir=True) is True
        assert store.is_excluded("dist/app.js") is True
        assert store.is_excluded("pkg/dist/app.js") is False

    def test_child_scope_relative_to_its_directory(self, nested_project: Path):
        store = _store(nested_project)
        assert store.is_excluded("pkg/generated.ts") is True
        assert store.is_excluded("pkg/deep/generated.ts") is True
        assert store.is_excluded("generated.ts") is False
        assert store.is_excluded("other/generated.ts") is False

    def test_child_anchored_pattern(self, nested_project: Path):
        store = _store(nested_project)
        assert store.is_excluded("pkg/only-here.ts") is True
        assert store.is_excluded("pkg/deep/only-here.ts") is False

    def test_directory_only_pattern(self, tmp_path: Path):
        _write(tmp_path / ".gitignore", "node_modules/\n")
        store = _store(tmp_path)
        assert store.is_excluded("node_modules", is_dir=True) is True
        assert store.is_excluded("node_modules/c.ts") is True
        assert store.is_excluded("node_modules", is_dir=False) is False

    def test_windows_separators(self, nested_project: Path):
        store = _store(nested_project)
        assert store.is_excluded("pkg\\generated.ts") is True

    def test_absolute_path_is_relativized(self, nested_project: Path):
        store = _store(nested_project)
        assert store.is_excluded(str(store.root / "pkg" / "generated.ts")) is True
        assert store.is_excluded(store.root / "pkg" / "kept.ts") is False

    def test_paths_outside_workspace_not_excluded(self, nested_project: Path):
        store = _store(nested_project)
        assert store.is_excluded("../elsewhere/debug.log") is False

    def test_dockerignore_dialect(self, nested_project: Path):
        store = _store(nested_project)
        assert store.is_excluded("pkg/secrets", is_dir=True) is True
        assert store.is_excluded("pkg/secrets/key.json") is True
