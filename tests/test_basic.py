"""Basic unit tests for battlemap-sync modules."""

import logging


class TestSettingsInitialization:
    """Test settings initialization and basic operations."""

    def test_app_settings_init(self) -> None:
        """Test AppSettings can be initialized."""
        from battlemap_sync.settings import AppSettings

        settings_obj = AppSettings()
        assert settings_obj is not None
        assert settings_obj.version == "1.0"

    def test_app_settings_validation(self) -> None:
        """Test default settings validate cleanly."""
        from battlemap_sync.settings import AppSettings

        validation = AppSettings().validate()
        assert validation.is_valid
        assert validation.errors == []

    def test_settings_file_in_isolated_directory(self, isolated_settings) -> None:
        """Test settings are written below the per-test directory."""
        from battlemap_sync.settings import AppSettings

        path = AppSettings().get_settings_file_path()
        assert path.startswith(str(isolated_settings))


class TestPackageExports:
    """Test the public package surface."""

    def test_version(self) -> None:
        """Test package version is exposed."""
        import battlemap_sync

        assert battlemap_sync.__version__ == "0.1.0"

    def test_all_exports_resolve(self) -> None:
        """Test every name in __all__ exists."""
        import battlemap_sync

        for name in battlemap_sync.__all__:
            assert hasattr(battlemap_sync, name), name


class TestUtilsLogging:
    """Test logging configuration."""

    def test_logging_setup_with_settings(self) -> None:
        """Test logging setup works with settings."""
        from battlemap_sync.utils.logging_config import setup_logging
        from battlemap_sync.settings import AppSettings

        settings_obj = AppSettings()
        # setup_logging returns None but should not raise
        setup_logging(settings=settings_obj)

        logger = logging.getLogger("battlemap_sync")
        assert logger.level == logging.DEBUG

    def test_file_logging_writes_csv(self, tmp_path) -> None:
        """Test file logging creates a CSV log file."""
        from battlemap_sync.utils.logging_config import setup_logging
        from battlemap_sync.settings import AppSettings

        settings_obj = AppSettings()
        settings_obj.console_logging = False
        settings_obj.file_logging = True
        settings_obj.logging.log_file_path = str(tmp_path / "logs" / "test.csv")

        setup_logging(settings=settings_obj)
        logging.getLogger("battlemap_sync.test").info('quoted "message"')
        for handler in logging.getLogger().handlers:
            handler.flush()

        content = (tmp_path / "logs" / "test.csv").read_text(encoding="utf-8")
        assert '"quoted ""message"""' in content

        for handler in list(logging.getLogger().handlers):
            handler.close()
            logging.getLogger().removeHandler(handler)

    def test_network_logger_quiet_by_default(self) -> None:
        """Test per-request transport logging is hidden unless enabled."""
        from battlemap_sync.utils.logging_config import setup_logging
        from battlemap_sync.settings import AppSettings

        settings_obj = AppSettings()
        setup_logging(settings=settings_obj)
        transport_logger = logging.getLogger("battlemap_sync.sync.transport.QtBattlemapTransport")
        assert transport_logger.getEffectiveLevel() == logging.INFO

        settings_obj.logging.network_log_level = "debug"
        setup_logging(settings=settings_obj)
        assert transport_logger.getEffectiveLevel() == logging.DEBUG

    def test_qt_messages_forwarded(self, qapp) -> None:
        """Test Qt warnings reach the battlemap_sync.qt logger."""
        from PySide6.QtCore import qInstallMessageHandler, qWarning

        from battlemap_sync.utils.logging_config import setup_logging
        from battlemap_sync.settings import AppSettings

        records: list[logging.LogRecord] = []

        class Collect(logging.Handler):
            def emit(self, record: logging.LogRecord) -> None:
                records.append(record)

        setup_logging(settings=AppSettings())
        qt_logger = logging.getLogger("battlemap_sync.qt")
        handler = Collect()
        qt_logger.addHandler(handler)
        try:
            qWarning("socket closed early")
        finally:
            qt_logger.removeHandler(handler)
            qInstallMessageHandler(None)

        assert [r.levelno for r in records] == [logging.WARNING]
        assert "socket closed early" in records[0].getMessage()
