import os

from bookscrapper.utils.env_loader import load_environment


def test_load_environment_from_custom_file(monkeypatch, tmp_path):
    env_file = tmp_path / "custom.env"
    env_file.write_text("TEST_CUSTOM_URL=https://example.com\nWORKERS=4\n")

    monkeypatch.delenv("TEST_CUSTOM_URL", raising=False)

    loaded = load_environment(env_file, override=True)

    assert loaded is True
    assert os.getenv("TEST_CUSTOM_URL") == "https://example.com"
    assert os.getenv("WORKERS") == "4"


def test_load_environment_from_env_variable(monkeypatch, tmp_path):
    env_file = tmp_path / "scrapper.env"
    env_file.write_text("WYKOP_APP_KEY=from-file\n")
    monkeypatch.setenv("SCRAPPER_ENV_FILE", str(env_file))

    assert load_environment() is True
    assert os.getenv("WYKOP_APP_KEY") == "from-file"


def test_load_environment_missing_file(tmp_path):
    missing_file = tmp_path / "missing.env"

    loaded = load_environment(missing_file)

    assert loaded is False
