"""Tests for settings"""
from azmonitor.monitor.settings import Settings


class TestSettings:
	def test_defaults(self):
		settings = Settings()

		assert settings.features.import_protection is True
		assert settings.timeouts.create == 30 * 60
		assert settings.timeouts.read == 5 * 60
		assert settings.retries == 0

	def test_from_env(self, monkeypatch):
		monkeypatch.setenv("AZMONITOR_SUBSCRIPTION_ID", "00000000-0000-0000-0000-000000000000")
		monkeypatch.setenv("AZMONITOR_RETRIES", "2")
		monkeypatch.setenv("AZMONITOR_TIMEOUTS__READ", "60")
		monkeypatch.setenv("AZMONITOR_FEATURES__IMPORT_PROTECTION", "false")

		settings = Settings()

		assert settings.subscription_id == "00000000-0000-0000-0000-000000000000"
		assert settings.retries == 2
		assert settings.timeouts.read == 60
		assert settings.timeouts.delete == 30 * 60
		assert settings.features.import_protection is False

	def test_deadline(self):
		deadline = Settings.Timeouts(update=120).deadline("update")
		assert deadline.seconds == 120
		assert 0 < deadline.remaining() <= 120
