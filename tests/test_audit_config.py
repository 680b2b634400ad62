"""Tests for the audit logger and settings."""

from uuid import uuid4

import pytest
from pydantic import ValidationError

from src.audit import AuditLogger, create_correlation_id
from src.config import ImportSettings, get_settings, validate_all_settings
from src.models.audit import AuditEventBuilder, AuditEventType, AuditSeverity
from src.models.transaction import Resolution
from src.services.storage import InMemoryAuditStorage


class BrokenAuditStorage(InMemoryAuditStorage):
    def append_event(self, event):
        raise RuntimeError("sheet is read-only")


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_local_only(self):
        """Test logging without storage still reports success."""
        assert AuditLogger().log(AuditEventBuilder.statement_parsed(uuid4(), 1, 0)) is True

    def test_persists_events(self, audit_logger, audit_storage):
        import_id = create_correlation_id()
        audit_logger.log_conflict_resolved(import_id, 100, 1, Resolution.REPLACE)

        [event] = audit_storage.get_events_by_correlation_id(import_id)
        assert event.event_type == AuditEventType.CONFLICT_RESOLVED
        assert event.details["resolution"] == "replace"

    def test_storage_failure_does_not_raise(self):
        """Test a broken audit backend never breaks the caller."""
        logger = AuditLogger(BrokenAuditStorage())
        assert logger.log(AuditEventBuilder.save_failed(uuid4(), "boom")) is False

    def test_abandoned_is_warning(self, audit_logger, audit_storage):
        import_id = uuid4()
        audit_logger.log_import_abandoned(import_id, unresolved=2, discarded_clean=5)

        [event] = audit_storage.get_events_by_correlation_id(import_id)
        assert event.severity == AuditSeverity.WARNING
        assert event.details["discarded_clean"] == 5

    def test_bulk_resolved(self, audit_logger, audit_storage):
        import_id = uuid4()
        audit_logger.log_bulk_resolved(import_id, Resolution.KEEP_OLD, 3)

        [event] = audit_storage.get_events_by_correlation_id(import_id)
        assert event.details == {"resolution": "keep_old", "count": 3}


class TestImportSettings:
    """Tests for ImportSettings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("IMPORT_DUPLICATE_WINDOW_DAYS", raising=False)
        settings = ImportSettings(_env_file=None)

        assert settings.duplicate_window_days == 4
        assert (
            settings.default_date_column,
            settings.default_description_column,
            settings.default_amount_column,
        ) == (0, 2, 5)
        assert settings.max_upload_size_bytes == 5 * 1024 * 1024

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("IMPORT_DUPLICATE_WINDOW_DAYS", "7")
        assert ImportSettings(_env_file=None).duplicate_window_days == 7

    def test_window_bounds(self):
        with pytest.raises(ValidationError):
            ImportSettings(_env_file=None, duplicate_window_days=40)

    def test_unknown_encoding(self):
        with pytest.raises(ValidationError, match="Unknown file encoding"):
            ImportSettings(_env_file=None, file_encoding="not-a-codec")


class TestValidateAllSettings:

    def test_missing_google_sheets_reported(self, monkeypatch):
        """Test that a missing Sheets configuration is reported, not raised."""
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        get_settings.cache_clear()

        status = validate_all_settings()

        assert status["imports"] is True
        assert status["google_sheets"] is False
        assert "google_sheets_error" in status


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
