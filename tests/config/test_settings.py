"""Tests for FormpipeSettings: unified settings with TOML source."""

from __future__ import annotations

from pathlib import Path

import click
import pytest

from formpipe.config.settings import FormpipeSettings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("FORMPIPE_CONFIG", "FORMPIPE_STORE__POLL_INTERVAL", "FORMPIPE_VERBOSE"):
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_all_defaults(self, tmp_path: Path) -> None:
        settings = FormpipeSettings.from_cli(store_root=tmp_path)
        assert settings.store_root == tmp_path
        assert settings.config_path is None
        assert settings.json_output is False
        assert settings.store.poll_interval is None
        assert settings.schedulers.max_workers == 4
        assert settings.dates.ui_format == "%d/%m/%Y"
        assert settings.plugins.enabled is True
        assert settings.pipeline.render_timeout == 10.0

    def test_frozen(self, tmp_path: Path) -> None:
        settings = FormpipeSettings.from_cli(store_root=tmp_path)
        with pytest.raises(Exception):
            settings.quiet = True  # type: ignore[misc]


class TestTomlSource:
    def test_loads_from_toml(self, tmp_path: Path) -> None:
        (tmp_path / "formpipe.toml").write_text(
            "[store]\npoll_interval = 0.5\n[schedulers]\ntrampoline = true\n"
        )
        settings = FormpipeSettings.from_cli(store_root=tmp_path)
        assert settings.store.poll_interval == 0.5
        assert settings.schedulers.trampoline is True
        assert settings.schedulers.max_workers == 4

    def test_walk_up_discovery(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "formpipe.toml").write_text('[dates]\nui_format = "%m/%d/%Y"\n')
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)
        settings = FormpipeSettings.from_cli()
        assert settings.dates.ui_format == "%m/%d/%Y"
        assert settings.store_root == tmp_path.resolve()

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        custom = tmp_path / "custom" / "my.toml"
        custom.parent.mkdir(parents=True)
        custom.write_text("[plugins]\nenabled = false\n")
        settings = FormpipeSettings.from_cli(config_path=str(custom), store_root=tmp_path)
        assert settings.plugins.enabled is False
        assert settings.config_path == custom

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "formpipe.toml").write_text("[store\n")
        with pytest.raises(click.ClickException, match="Invalid TOML"):
            FormpipeSettings.from_cli(store_root=tmp_path)


class TestPriority:
    def test_env_overrides_toml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "formpipe.toml").write_text("[store]\npoll_interval = 5.0\n")
        monkeypatch.setenv("FORMPIPE_STORE__POLL_INTERVAL", "0.25")
        settings = FormpipeSettings.from_cli(store_root=tmp_path)
        assert settings.store.poll_interval == 0.25

    def test_cli_flags_override_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FORMPIPE_VERBOSE", "true")
        settings = FormpipeSettings.from_cli(store_root=tmp_path, verbose=False)
        assert settings.verbose is False
