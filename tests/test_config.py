from config import (
    DevelopmentSettings,
    ProductionSettings,
    Settings,
    TestingSettings,
    get_settings,
    get_settings_for_environment,
)


class TestSettings:
    """Test settings selection."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("APP_ENV", raising=False)

        settings = get_settings()

        assert type(settings) is Settings
        assert settings.output_precision == 4
        assert settings.sort_output is True
        assert settings.log_file is None

    def test_environment_from_app_env(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "production")

        assert isinstance(get_settings(), ProductionSettings)

    def test_settings_are_cached(self):
        assert get_settings() is get_settings()

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")

        assert get_settings_for_environment("testing").log_level == "ERROR"

    def test_environment_map(self):
        assert isinstance(get_settings_for_environment("Development"), DevelopmentSettings)
        assert isinstance(get_settings_for_environment("testing"), TestingSettings)
        assert type(get_settings_for_environment("staging")) is Settings

    def test_testing_disables_rate_limit(self):
        assert TestingSettings().enable_rate_limit is False
