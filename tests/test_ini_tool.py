import pytest

from IniHandler.ini_tool import main


CONFIG = """\
[Control]
Transmit = false ; off by default

[Common]
Call Sign = AA0NT
TX Power = 20
"""


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "wsprrypi.ini"
    path.write_text(CONFIG, encoding="utf-8")
    return path


def test_get_prints_value(config_path, capsys):
    assert main([str(config_path), "get", "Common", "Call Sign"]) == 0
    assert capsys.readouterr().out == "AA0NT\n"


def test_get_typed_value(config_path, capsys):
    assert main([str(config_path), "get", "Control", "Transmit", "--type", "bool"]) == 0
    assert capsys.readouterr().out == "false\n"


def test_set_saves_file(config_path):
    assert main([str(config_path), "set", "Control", "Transmit", "True", "--type", "bool"]) == 0
    assert main([str(config_path), "set", "Common", "TX Power", "30", "--type", "int"]) == 0
    text = config_path.read_text(encoding="utf-8")
    assert "Transmit = true\n" in text
    assert "TX Power = 30\n" in text


def test_dump_lists_everything(config_path, capsys):
    assert main([str(config_path), "dump"]) == 0
    assert capsys.readouterr().out == (
        "[Control]\nTransmit = false\n[Common]\nCall Sign = AA0NT\nTX Power = 20\n"
    )


def test_missing_key_exits_with_error(config_path, capsys):
    assert main([str(config_path), "get", "Common", "Bad Key"]) == 1
    assert "Key 'Bad Key' not found" in capsys.readouterr().err


def test_invalid_typed_value_exits_with_error(config_path, capsys):
    assert main([str(config_path), "set", "Common", "TX Power", "abc", "--type", "int"]) == 1
    assert "TX Power = 20\n" in config_path.read_text(encoding="utf-8")


def test_missing_file_exits_with_error(tmp_path, capsys):
    assert main([str(tmp_path / "missing.ini"), "dump"]) == 1
    assert "Cannot open file" in capsys.readouterr().err


def test_set_creates_missing_file(tmp_path):
    path = tmp_path / "new.ini"
    assert main([str(path), "set", "A", "k", "v"]) == 0
    assert path.read_text(encoding="utf-8") == "[A]\nk = v\n"
