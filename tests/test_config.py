import json

import pytest

from cloudcontrol.config import Config, Remote, add_remote, load_config, validate_config, write_config
from cloudcontrol.errors import ConfigError


def test_write_and_load_config(config, tmp_path):
    write_config(config)

    assert (tmp_path / "config.json").stat().st_mode & 0o777 == 0o600
    assert (tmp_path / "authorized_keys").is_dir()
    assert (tmp_path / "self_key").is_dir()

    raw = json.loads((tmp_path / "config.json").read_text())
    assert raw["WebAdmin"]["Remotes"][1] == {"Host": "b.lan", "Async": True, "PoweroffDelayMsec": 250}

    loaded = load_config(tmp_path)
    assert loaded.webadmin == config.webadmin
    assert loaded.authorized_keys_dir == tmp_path / "authorized_keys"


def test_write_config_keeps_existing_key_dirs(config, tmp_path):
    (tmp_path / "self_key").mkdir()
    (tmp_path / "self_key" / "self.key").write_text("keep me")
    write_config(config)
    assert (tmp_path / "self_key" / "self.key").read_text() == "keep me"


def test_add_remote(tmp_path):
    write_config(Config(home=tmp_path))
    add_remote("nas.lan", home=tmp_path)
    add_remote("pi.lan", home=tmp_path)
    assert load_config(tmp_path).remotes == [Remote("nas.lan"), Remote("pi.lan")]


def test_home_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("CLOUDCONTROL_HOME", str(tmp_path))
    write_config(Config())
    assert load_config().home == tmp_path


def test_missing_config_hints_create(tmp_path):
    with pytest.raises(ConfigError) as exc:
        load_config(tmp_path)
    assert "--create-config" in str(exc.value)


@pytest.mark.parametrize("text, field", [
    ("{not json", "JSON"),
    ("[]", "root"),
    ('{"WebAdmin": "x"}', "WebAdmin"),
    ('{"WebAdmin": {"Remotes": {"Host": "a"}}}', "Remotes"),
    ('{"WebAdmin": {"Remotes": ["a.lan"]}}', "remote entry"),
    ('{"WebAdmin": {"Remotes": [{"Async": true}]}}', "Host"),
    ('{"WebAdmin": {"Remotes": [{"Host": "a", "Async": "false"}]}}', "Async"),
    ('{"WebAdmin": {"Remotes": [{"Host": "a", "PoweroffDelayMsec": "soon"}]}}', "PoweroffDelayMsec"),
    ('{"WebAdmin": {"Remotes": [{"Host": "a", "PoweroffDelayMsec": -1}]}}', "PoweroffDelayMsec"),
    ('{"WebAdmin": {"UriKey": 5}}', "UriKey"),
])
def test_invalid_config(tmp_path, text, field):
    (tmp_path / "config.json").write_text(text)
    with pytest.raises(ConfigError) as exc:
        load_config(tmp_path)
    assert field in str(exc.value)


def test_invalid_config_exits_cleanly(tmp_path):
    from cloudcontrol.__main__ import main

    (tmp_path / "config.json").write_text('{"WebAdmin": {"Remotes": [{"Host": "a", "Async": "false"}]}}')
    assert main(["--home", str(tmp_path)]) == 1


def test_validate_config_for_webadmin(tmp_path):
    cfg = Config(home=tmp_path)
    validate_config(cfg)
    with pytest.raises(ConfigError, match="UriKey"):
        validate_config(cfg, webadmin=True)
    cfg.webadmin.uri_key = "k"
    with pytest.raises(ConfigError, match="Password"):
        validate_config(cfg, webadmin=True)
    cfg.webadmin.password = "p"
    validate_config(cfg, webadmin=True)
