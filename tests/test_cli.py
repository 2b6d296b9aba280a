"""Tests for CLI argument handling and headless commands."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

from blink_clipper.cli import _configure_logging, main
from blink_clipper.config import load_config, save_config
from blink_clipper.errors import AppendConflict, AuthExpired
from blink_clipper.models import ActivePage, ClipperConfig


@pytest.fixture
def run_main(config, session_store, fake_services):
    """Call main() with every external dependency injected."""

    def _run(argv, *, tty=True, app_factory=None, load_config_fn=None, save_config_fn=None):
        return main(
            argv,
            load_config_fn=load_config_fn or (lambda: config),
            save_config_fn=save_config_fn or MagicMock(return_value=True),
            store_factory=lambda: session_store,
            services_factory=lambda: fake_services,
            configure_logging_fn=lambda _debug: None,
            validate_interactive_tty_fn=lambda: tty,
            app_factory=app_factory or MagicMock(),
        )

    return _run


class TestLogout:
    def test_logout_clears_store(self, run_main, session_store, make_session, capsys):
        session_store.save(make_session())

        assert run_main(["--logout"]) == 0

        assert session_store.load() is None
        assert capsys.readouterr().out.strip() == "Logged out"

    def test_logout_when_signed_out(self, run_main, capsys):
        assert run_main(["--logout"]) == 0
        assert run_main(["--logout"]) == 0

    def test_logout_cannot_combine(self, run_main, capsys):
        assert run_main(["--logout", "--list-vaults"]) == 1
        assert "cannot be combined" in capsys.readouterr().err


class TestConfigChecks:
    def test_missing_api_key(self, run_main, capsys):
        exit_code = run_main(["--url", "https://example.com"], load_config_fn=ClipperConfig)

        assert exit_code == 1
        err = capsys.readouterr().err
        assert "Could not contact Blink." in err
        assert "Next step: pass --api-key" in err

    def test_api_key_flag_overrides_config(
        self, run_main, fake_services, session_store, make_session
    ):
        session_store.save(make_session())

        exit_code = run_main(
            ["--list-vaults", "--api-key", "flag-key", "--project-id", "other"],
            load_config_fn=ClipperConfig,
        )

        assert exit_code == 0
        endpoints = fake_services.vaults.list_vaults.await_args.kwargs["endpoints"]
        assert endpoints.api_key == "flag-key"
        assert endpoints.project_id == "other"

    def test_url_required(self, run_main, capsys):
        assert run_main([]) == 1
        assert "--url is required" in capsys.readouterr().err


class TestSaveConfig:
    def test_writes_overrides_to_config_file(self, run_main, tmp_path, capsys):
        config_file = tmp_path / "config.json"

        exit_code = run_main(
            ["--save-config", "--api-key", " new-key ", "--project-id", "other"],
            load_config_fn=ClipperConfig,
            save_config_fn=lambda config: save_config(config, config_file),
        )

        assert exit_code == 0
        assert "Saved configuration" in capsys.readouterr().out
        saved = load_config(config_file)
        assert saved.api_key == "new-key"
        assert saved.project_id == "other"

    def test_write_failure(self, run_main, capsys):
        exit_code = run_main(
            ["--save-config", "--api-key", "k"],
            save_config_fn=MagicMock(return_value=False),
        )

        assert exit_code == 1
        assert "could not write" in capsys.readouterr().err

    def test_cannot_combine_with_commands(self, run_main, session_store, make_session, capsys):
        session_store.save(make_session())
        save_config_fn = MagicMock(return_value=True)

        exit_code = run_main(
            ["--save-config", "--list-vaults"], save_config_fn=save_config_fn
        )

        assert exit_code == 1
        assert "cannot be combined" in capsys.readouterr().err
        save_config_fn.assert_not_called()


class TestListVaults:
    def test_prints_id_and_name(self, run_main, session_store, make_session, capsys):
        session_store.save(make_session())

        assert run_main(["--list-vaults"]) == 0

        assert capsys.readouterr().out.splitlines() == ["v1\tReading", "v2\tWork"]

    def test_no_vaults(self, run_main, session_store, make_session, fake_services, capsys):
        session_store.save(make_session())
        fake_services.vaults.list_vaults.return_value = []

        assert run_main(["--list-vaults"]) == 0

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "No containers found" in captured.err

    def test_requires_session(self, run_main, fake_services, capsys):
        assert run_main(["--list-vaults"]) == 1
        assert "you are not signed in" in capsys.readouterr().err
        fake_services.vaults.list_vaults.assert_not_awaited()

    def test_expired_session(self, run_main, session_store, make_session, fake_services, capsys):
        session_store.save(make_session())
        fake_services.vaults.list_vaults.side_effect = AuthExpired()

        assert run_main(["--list-vaults"]) == 1
        assert "sign in again" in capsys.readouterr().err


class TestSaveTo:
    def test_prints_link_id(self, run_main, session_store, make_session, fake_services, capsys):
        session_store.save(make_session())

        exit_code = run_main(["--url", " https://example.com ", "--save-to", "v2"])

        assert exit_code == 0
        assert capsys.readouterr().out.strip() == "link_1767323045000"
        kwargs = fake_services.links.append_link.await_args.kwargs
        assert kwargs["vault_id"] == "v2"
        assert kwargs["page"] == ActivePage(title="https://example.com", url="https://example.com")

    def test_conflict_suggests_retry(
        self, run_main, session_store, make_session, fake_services, capsys
    ):
        session_store.save(make_session())
        fake_services.links.append_link.side_effect = AppendConflict("v2")

        assert run_main(["--url", "https://example.com", "--save-to", "v2"]) == 1
        assert "Next step: run the command again." in capsys.readouterr().err


class TestPopup:
    def test_requires_tty(self, run_main, capsys):
        app_factory = MagicMock()

        exit_code = run_main(["--url", "https://example.com"], tty=False, app_factory=app_factory)

        assert exit_code == 2
        assert "interactive TTY" in capsys.readouterr().err
        app_factory.assert_not_called()

    def test_runs_app_with_page(self, run_main, config, session_store, fake_services):
        app_factory = MagicMock()

        exit_code = run_main(
            ["--url", "https://example.com", "--title", "Example"], app_factory=app_factory
        )

        assert exit_code == 0
        app_factory.assert_called_once_with(
            ActivePage(title="Example", url="https://example.com"),
            config=config,
            store=session_store,
            services=fake_services,
        )
        app_factory.return_value.run.assert_called_once_with()


class TestConfigureLogging:
    def test_debug_writes_to_config_dir(self, tmp_path, monkeypatch):
        monkeypatch.setattr("blink_clipper.cli.get_config_dir", lambda: tmp_path)
        root = logging.getLogger()
        before = list(root.handlers)
        old_level = root.level
        try:
            _configure_logging(True)
            added = [h for h in root.handlers if h not in before]
            assert len(added) == 1
            assert added[0].baseFilename == str(tmp_path / "debug.log")
            assert logging.getLogger("httpx").level == logging.WARNING
        finally:
            for handler in root.handlers[:]:
                if handler not in before:
                    root.removeHandler(handler)
                    handler.close()
            root.setLevel(old_level)

    def test_without_debug_disables_logging(self):
        try:
            _configure_logging(False)
            assert logging.getLogger("blink_clipper").isEnabledFor(logging.CRITICAL) is False
        finally:
            logging.disable(logging.NOTSET)
