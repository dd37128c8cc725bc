import json

import pytest

from cannacore import __version__
from cannacore.__main__ import main
from cannacore.app import default_save_path, run_headless


def test_headless_run_writes_save_on_exit(tmp_path):
    path = tmp_path / "save.json"
    assert run_headless(path, max_steps=3, tick_rate=10.0) == 0
    assert json.loads(path.read_text(encoding="utf-8"))["version"] == 7


def test_headless_without_save(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    assert main(["--headless", "--no-save", "--max-steps", "2"]) == 0
    assert not (tmp_path / ".cannacore").exists()


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--version"])
    assert exc.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_default_save_path_lives_in_home():
    assert default_save_path().name == "save.json"
    assert default_save_path().parent.name == ".cannacore"
