from __future__ import annotations

from pathlib import Path

from bibsmith.core.user_dir import get_user_dir, user_dir_context


def test_user_dir_respects_bibsmith_home(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("BIBSMITH_HOME", str(tmp_path / "home-root"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))

    with user_dir_context() as user_dir:
        assert user_dir.root == tmp_path / "home-root"
        assert user_dir.config_path == tmp_path / "home-root" / "config.yml"


def test_user_dir_falls_back_to_xdg_config_home(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.delenv("BIBSMITH_HOME", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))

    with user_dir_context() as user_dir:
        assert user_dir.root == tmp_path / "xdg" / "bibsmith"


def test_user_dir_defaults_under_home(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.delenv("BIBSMITH_HOME", raising=False)
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))

    with user_dir_context() as user_dir:
        assert user_dir.root == tmp_path / ".bibsmith"
        assert not user_dir.root_is_explicit


def test_environment_root_is_pinned(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("BIBSMITH_HOME", str(tmp_path / "first"))
    with user_dir_context() as user_dir:
        monkeypatch.setenv("BIBSMITH_HOME", str(tmp_path / "second"))

        assert user_dir.root_is_explicit
        assert get_user_dir().root == tmp_path / "first"


def test_default_root_follows_home_changes(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.delenv("BIBSMITH_HOME", raising=False)
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "before"))
    with user_dir_context():
        monkeypatch.setenv("HOME", str(tmp_path / "after"))

        assert get_user_dir().root == tmp_path / "after" / ".bibsmith"


def test_context_restores_previous_user_dir(tmp_path: Path) -> None:
    with user_dir_context(root=tmp_path / "outer") as outer:
        with user_dir_context(root=tmp_path / "inner"):
            assert get_user_dir().root == tmp_path / "inner"
        assert get_user_dir() is outer
