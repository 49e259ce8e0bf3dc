import pytest

from waystation.cli import main, resolve_settings


def test_defaults_without_flags_or_env():
    assert resolve_settings([], {}) == ("9700", "./waystation-data")


def test_environment_used_when_no_flags():
    env = {"PORT": "8080", "DATA_DIR": "/srv/trips"}
    assert resolve_settings([], env) == ("8080", "/srv/trips")


def test_flags_override_environment():
    env = {"PORT": "8080", "DATA_DIR": "/srv/trips"}
    assert resolve_settings(["-port", "1234", "--data", "here"], env) == ("1234", "here")


def test_equals_form_of_flags():
    assert resolve_settings(["-port=5555", "-data=elsewhere"], {}) == ("5555", "elsewhere")


def test_empty_environment_values_fall_back_to_defaults():
    assert resolve_settings([], {"PORT": "", "DATA_DIR": ""}) == ("9700", "./waystation-data")


def test_unknown_flag_exits():
    with pytest.raises(SystemExit) as info:
        resolve_settings(["--colour"], {})
    assert info.value.code == 2


def test_main_fails_on_bad_port_after_opening_store(tmp_path, monkeypatch, capsys):
    monkeypatch.delenv("STOCKYARD_LICENSE_KEY", raising=False)
    data_dir = tmp_path / "data"
    with pytest.raises(SystemExit) as info:
        main(["-port", "no-such-service-name", "-data", str(data_dir)])
    assert str(info.value.code).startswith("waystation:")
    assert (data_dir / "waystation.db").exists()
    assert str(data_dir) in capsys.readouterr().out


def test_main_fails_when_data_dir_is_a_file(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("occupied")
    with pytest.raises(SystemExit) as info:
        main(["-port", "0", "-data", str(blocker / "inner")])
    assert str(info.value.code).startswith("waystation:")