import pytest

from movie_bot.config import (
    DEFAULT_FILE_BOT_USERNAME,
    DEFAULT_MOVIE_LINKS_API_URL,
    get_configuration,
)

ENV_VARS = (
    "TELEGRAM_BOT_TOKEN",
    "MOVIE_API_KEY",
    "WEBHOOK_URL",
    "PORT",
    "LOCAL",
    "MOVIE_LINKS_API_URL",
    "SERIES_LINKS_API_URL",
    "FILE_BOT_USERNAME",
    "MOVIE_BOT_CONFIG",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _use_config_file(mocker, config_data: str) -> None:
    mocker.patch("builtins.open", mocker.mock_open(read_data=config_data))
    mocker.patch("os.path.exists", return_value=True)


def test_get_configuration_happy_path(mocker):
    _use_config_file(
        mocker,
        """
[telegram]
bot_token=TEST_TOKEN

[tmdb]
api_key=TMDB_KEY

[webhook]
url=https://bot.example.com/
port=8443

[links]
file_bot_username=@FilesBot
cache_ttl_seconds=60
cache_max_entries=10
""",
    )

    token, api_key, webhook_config, link_config = get_configuration()

    assert token == "TEST_TOKEN"
    assert api_key == "TMDB_KEY"
    assert webhook_config == {
        "url": "https://bot.example.com",
        "port": 8443,
        "local_mode": False,
    }
    assert link_config["file_bot_username"] == "FilesBot"
    assert link_config["movie_api_url"] == DEFAULT_MOVIE_LINKS_API_URL
    assert link_config["cache_ttl_seconds"] == 60
    assert link_config["cache_max_entries"] == 10


def test_get_configuration_from_environment(mocker, monkeypatch):
    mocker.patch("os.path.exists", return_value=False)
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "ENV_TOKEN")
    monkeypatch.setenv("MOVIE_API_KEY", "ENV_KEY")
    monkeypatch.setenv("LOCAL", "true")

    token, api_key, webhook_config, link_config = get_configuration()

    assert (token, api_key) == ("ENV_TOKEN", "ENV_KEY")
    assert webhook_config["local_mode"] is True
    assert webhook_config["port"] == 3000
    assert link_config["file_bot_username"] == DEFAULT_FILE_BOT_USERNAME


def test_get_configuration_missing_everything(mocker):
    mocker.patch("os.path.exists", return_value=False)
    with pytest.raises(SystemExit):
        get_configuration()


def test_get_configuration_placeholder_token(mocker):
    _use_config_file(
        mocker,
        """
[telegram]
bot_token=PLACE_TOKEN_HERE

[tmdb]
api_key=TMDB_KEY
""",
    )
    with pytest.raises(SystemExit):
        get_configuration()


def test_get_configuration_missing_api_key(mocker):
    _use_config_file(mocker, "[telegram]\nbot_token=TEST_TOKEN\n")
    with pytest.raises(SystemExit):
        get_configuration()


def test_get_configuration_webhook_mode_requires_url(mocker):
    _use_config_file(
        mocker,
        "[telegram]\nbot_token=T\n\n[tmdb]\napi_key=K\n\n[webhook]\nlocal_mode=false\n",
    )
    with pytest.raises(SystemExit):
        get_configuration()


def test_get_configuration_invalid_port(mocker, monkeypatch):
    _use_config_file(mocker, "[telegram]\nbot_token=T\n\n[tmdb]\napi_key=K\n")
    monkeypatch.setenv("LOCAL", "1")
    monkeypatch.setenv("PORT", "eighty")
    with pytest.raises(SystemExit):
        get_configuration()
