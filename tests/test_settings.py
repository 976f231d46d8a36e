"""Tests for configuration loading."""

from neobudget.config import get_settings, validate_all_settings


class TestSettings:
    """Tests for settings defaults and environment overrides."""

    def test_defaults(self):
        """Test the documented default values."""
        settings = get_settings()
        assert settings.ledger.default_category == "Uncategorized"
        assert settings.ledger.top_overspent_limit == 3
        assert settings.sync.max_span_days == 60
        assert settings.sync.daily_request_cap == 24
        assert settings.sync.overlap_days == 2
        assert settings.imports.max_files == 4
        assert settings.imports.max_file_size_bytes == 12 * 1024 * 1024

    def test_marker_lists(self):
        """Test comma-separated settings split into lower-case lists."""
        ledger = get_settings().ledger
        assert "transfer to" in ledger.transfer_markers_list
        assert ledger.debt_category_keywords_list == ["loan", "debt"]

    def test_environment_override(self, monkeypatch):
        """Test that prefixed environment variables are honoured."""
        monkeypatch.setenv("SIMPLEFIN_MAX_SPAN_DAYS", "30")
        monkeypatch.setenv("LEDGER_TRANSFER_MARKERS", "Move To, Sweep")
        settings = get_settings()
        assert settings.sync.max_span_days == 30
        assert settings.ledger.transfer_markers_list == ["move to", "sweep"]

    def test_validate_all_settings(self):
        """Test the startup check."""
        results = validate_all_settings()
        assert all(results[name] for name in ("ledger", "sync", "imports", "storage", "app"))

    def test_invalid_value_reported(self, monkeypatch):
        """Test that a bad environment value is reported, not raised."""
        monkeypatch.setenv("SIMPLEFIN_DAILY_REQUEST_CAP", "0")
        results = validate_all_settings()
        assert results["sync"] is False
        assert "sync_error" in results
