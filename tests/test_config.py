import json

import pytest

from payhost import config
from payhost.config import Config, Mode

DEV = {
    "assets_compiled": "no",
    "mail_from": "example@example.com",
    "port": "3000",
    "root_url": "https://localhost:3000",
    "debug": "yes",
}
PROD = {
    "assets_compiled": "yes",
    "mail_from": "example@example.com",
    "port": "443",
    "root_url": "https://example.com",
}
TEST = {"root_url": "https://localhost:3000", "port": "3000"}


@pytest.fixture(autouse=True)
def _no_current():
    config.set_current(None)
    yield
    config.set_current(None)


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"development": DEV, "production": PROD, "test": TEST}))
    return path


def test_load_bogus_json(tmp_path):
    path = tmp_path / "bogus.json"
    path.write_text('{"development": {"port": ')
    with pytest.raises(ValueError):
        Config().load(path)


def test_load_valid_then_single(tmp_path, config_path):
    c = Config()
    c.load(config_path)
    assert c.get("port") == "3000"

    single = tmp_path / "single.json"
    single.write_text(json.dumps({"development": DEV}))
    with pytest.raises(ValueError, match="not enough configs"):
        c.load(single)


def test_load_missing_file(tmp_path):
    with pytest.raises(OSError):
        Config().load(tmp_path / "absent.json")


def test_load_rejects_non_string_values(tmp_path):
    path = tmp_path / "typed.json"
    path.write_text(json.dumps({"development": {"port": 3000}, "production": {}}))
    with pytest.raises(ValueError):
        Config().load(path)


def test_config_values(config_path):
    c = Config()
    c.load(config_path)
    assert c.get("assets_compiled") == "no"
    assert c.get_bool("assets_compiled") is False
    assert c.get_int("assets_compiled") == 0
    assert c.get("mail_from") == "example@example.com"
    assert c.get_int("port") == 3000
    assert c.get("root_url") == "https://localhost:3000"
    assert c.configuration(Mode.TEST)["root_url"] == "https://localhost:3000"


def test_configuration_uses_current_mode(config_path):
    c = Config()
    c.load(config_path)
    assert c.configuration(Mode.PRODUCTION) == DEV


def test_missing_key_defaults(config_path):
    c = Config()
    c.load(config_path)
    assert c.get("nothing") == ""
    assert c.get_int("nothing") == 0
    assert c.get_bool("nothing") is False
    assert c.get_bool("debug") is True


def test_production_mode(config_path):
    c = Config()
    c.load(config_path)
    assert c.production() is False
    c.mode = Mode.PRODUCTION
    assert c.production() is True
    assert c.get("root_url") == "https://example.com"
    assert c.get_int("port") == 443
    assert c.get_bool("assets_compiled") is True


@pytest.mark.parametrize(
    "raw, expected",
    [("-5", -5), ("+7", 7), (" 5", 0), ("1_000", 0), ("99999999999999999999", 0), ("3.5", 0)],
)
def test_get_int_parsing(tmp_path, raw, expected):
    path = tmp_path / "ints.json"
    path.write_text(json.dumps({"development": {"n": raw}, "production": {}}))
    c = Config()
    c.load(path)
    assert c.get_int("n") == expected


def test_module_level_accessors(config_path):
    c = Config()
    c.load(config_path)
    config.set_current(c)
    assert config.get("port") == "3000"
    assert config.get_int("port") == 3000
    assert config.get_bool("debug") is True
    assert config.production() is False
    assert config.configuration(Mode.DEVELOPMENT)["mail_from"] == "example@example.com"


def test_module_level_without_config():
    assert config.get("port") == ""
    assert config.get_int("port") == 0
    assert config.get_bool("debug") is False
    assert config.production() is False
    assert config.configuration(Mode.DEVELOPMENT) == {}