"""Tests for Settings defaults and environment handling."""

from tradelink.app.config import Settings


class TestSettings:

    def test_lifecycle_defaults(self, monkeypatch):
        monkeypatch.delenv("PROPOSAL_EXPIRY_DAYS", raising=False)
        monkeypatch.delenv("EXPIRY_CHECK_INTERVAL_MINUTES", raising=False)
        settings = Settings(_env_file=None)
        assert settings.proposal_expiry_days == 30
        assert settings.expiry_check_interval_minutes == 15

    def test_unknown_keys_are_ignored(self, monkeypatch):
        monkeypatch.setenv("FRONTEND_URL", "https://app.example.com")
        settings = Settings(_env_file=None)
        assert not hasattr(settings, "frontend_url")

    def test_cors_origins_list(self):
        settings = Settings(_env_file=None, debug=False, cors_origins="https://a.test, https://b.test,")
        assert settings.cors_origins_list == ["https://a.test", "https://b.test"]
        assert Settings(_env_file=None, debug=True).cors_origins_list == ["*"]
