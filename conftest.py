"""
Test conftest — isolate cordlink environment variables so that Settings()
tests are not affected by a real token in the developer's or CI
environment.
"""
import pytest

_ENV_VARS = [
    "CORDLINK_TOKEN",
    "CORDLINK_CONFIG",
]


@pytest.fixture(autouse=True)
def _clear_cordlink_env(monkeypatch):
    """Remove cordlink env vars for every test so Settings() behaves as if
    nothing is configured unless the test explicitly provides it.
    Also disables .env file loading so local developer .env files don't
    leak real credentials into tests."""
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)

    import cordlink.config.settings as settings_module
    from pydantic_settings import SettingsConfigDict
    patched_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )
    monkeypatch.setattr(settings_module.Settings, "model_config", patched_config)
    monkeypatch.setattr(settings_module, "_singleton", None)
