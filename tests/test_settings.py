"""Tests for Settings validation."""

import pytest
from pydantic import ValidationError


class TestSettingsDefaults:
    def test_settings_created_with_overrides(self, settings):
        assert settings.backend == "sqlite"
        assert settings.autosave_delay_seconds == 0.05

    def test_code_defaults(self, tmp_path):
        from config.settings import Settings
        # Use _env_file=None to test code defaults without .env overrides
        s = Settings(
            _env_file=None,
            sqlite_db_path=tmp_path / "storylab.db",
            log_dir=tmp_path / "logs",
        )
        assert s.backend == "sqlite"
        assert s.autosave_delay_seconds == 3.0
        assert s.default_chapter_title == "Chapter {number}"
        assert s.supabase_url is None

    def test_parent_dirs_created(self, tmp_path):
        from config.settings import Settings
        Settings(_env_file=None, sqlite_db_path=tmp_path / "nested" / "db" / "storylab.db",
                 log_dir=tmp_path / "logs")
        assert (tmp_path / "nested" / "db").is_dir()

    def test_env_vars_are_read(self, tmp_path, monkeypatch):
        from config.settings import Settings
        monkeypatch.setenv("AUTOSAVE_DELAY_SECONDS", "1.5")
        s = Settings(_env_file=None, sqlite_db_path=tmp_path / "s.db", log_dir=tmp_path / "logs")
        assert s.autosave_delay_seconds == 1.5


class TestSettingsValidation:
    def test_zero_autosave_delay_raises(self, tmp_path):
        from config.settings import Settings
        with pytest.raises(ValidationError, match="autosave_delay_seconds"):
            Settings(
                _env_file=None,
                sqlite_db_path=tmp_path / "storylab.db",
                log_dir=tmp_path / "logs",
                autosave_delay_seconds=0,
            )

    def test_chapter_title_without_placeholder_raises(self, tmp_path):
        from config.settings import Settings
        with pytest.raises(ValidationError, match="number"):
            Settings(
                _env_file=None,
                sqlite_db_path=tmp_path / "storylab.db",
                log_dir=tmp_path / "logs",
                default_chapter_title="Untitled",
            )

    def test_supabase_backend_requires_credentials(self, tmp_path):
        from config.settings import Settings
        with pytest.raises(ValidationError, match="supabase"):
            Settings(
                _env_file=None,
                sqlite_db_path=tmp_path / "storylab.db",
                log_dir=tmp_path / "logs",
                backend="supabase",
            )

    def test_supabase_backend_with_credentials(self, tmp_path):
        from config.settings import Settings
        s = Settings(
            _env_file=None,
            sqlite_db_path=tmp_path / "storylab.db",
            log_dir=tmp_path / "logs",
            backend="supabase",
            supabase_url="https://example.supabase.co",
            supabase_key="anon-key",
        )
        assert s.backend == "supabase"

    def test_unknown_backend_raises(self, tmp_path):
        from config.settings import Settings
        with pytest.raises(ValidationError):
            Settings(
                _env_file=None,
                sqlite_db_path=tmp_path / "storylab.db",
                log_dir=tmp_path / "logs",
                backend="mongo",
            )


class TestLogging:
    def test_setup_logging_creates_files(self, tmp_path):
        import logging
        from config.logging_config import setup_logging
        setup_logging(level=logging.DEBUG, log_dir=tmp_path / "logs", console_enabled=False)
        handlers = logging.getLogger().handlers + logging.getLogger("gateway").handlers
        try:
            logging.getLogger("store.app_store").info("hello")
            logging.getLogger("gateway.sqlite").debug("select stories")
            for handler in handlers:
                handler.flush()
        finally:
            for handler in handlers:
                handler.close()
            logging.getLogger().handlers.clear()
            logging.getLogger("gateway").handlers.clear()
        assert (tmp_path / "logs" / "storylab.log").exists()
        gateway_log = (tmp_path / "logs" / "gateway.log").read_text(encoding="utf-8")
        assert "select stories" in gateway_log


class TestLoadSettings:
    def test_load_settings_reads_environment(self, tmp_path, monkeypatch):
        from config.settings import load_settings
        monkeypatch.setenv("DEFAULT_CHAPTER_TITLE", "Part {number}")
        s = load_settings(_env_file=None, sqlite_db_path=tmp_path / "s.db", log_dir=tmp_path / "logs")
        assert s.default_chapter_title == "Part {number}"

    def test_load_settings_wraps_validation_errors(self, tmp_path):
        from config.exceptions import InvalidConfigError
        from config.settings import load_settings
        with pytest.raises(InvalidConfigError) as exc_info:
            load_settings(
                _env_file=None,
                sqlite_db_path=tmp_path / "s.db",
                log_dir=tmp_path / "logs",
                autosave_delay_seconds=-1,
            )
        assert exc_info.value.details["field"] == "autosave_delay_seconds"
        assert "autosave_delay_seconds" in exc_info.value.message
