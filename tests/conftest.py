import os

import pytest

from mailmagic import config
from mailmagic.config import Settings


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Keep the user's config file and MAILMAGIC_* environment out of the tests."""
    for name in list(os.environ):
        if name.startswith("MAILMAGIC_"):
            monkeypatch.delenv(name)

    config_file = tmp_path / "mailmagic-config.toml"
    monkeypatch.setattr(config, "CONFIG_PATH", config_file)
    monkeypatch.setitem(Settings.model_config, "toml_file", config_file)
    monkeypatch.setattr(config, "_settings", None)
    return config_file
