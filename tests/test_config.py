from pathlib import Path

from avawatcher.config import DEFAULT_DATABASE_URL, Settings
from avawatcher.scraper import AVA_URL


def test_settings_defaults():
    settings = Settings.from_env({})

    assert settings.target_url == AVA_URL
    assert settings.database_url == DEFAULT_DATABASE_URL
    assert settings.tick_interval == 300
    assert settings.bedrooms == 2
    assert settings.allow_furnished is False
    assert settings.notify_changes is False
    assert settings.export_dir is None


def test_settings_from_environment():
    settings = Settings.from_env({
        "TARGET_URL": "https://example.com/ava",
        "DATABASE_URL": "sqlite:///tmp/ava.db",
        "TICK_INTERVAL": "60",
        "AVA_BEDROOMS": "",
        "AVA_ALLOW_FURNISHED": "yes",
        "NOTIFY_CHANGES": "1",
        "EXPORT_DIR": "data",
    })

    assert settings.target_url == "https://example.com/ava"
    assert settings.database_url == "sqlite:///tmp/ava.db"
    assert settings.tick_interval == 60
    assert settings.bedrooms is None
    assert settings.allow_furnished is True
    assert settings.notify_changes is True
    assert settings.export_dir == Path("data")
