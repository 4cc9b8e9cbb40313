"""Tests for fsfault-doctor."""

import json

import pytest

import doctor
from core import fsio


def test_run_without_config_warns(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    d = doctor.FsfaultDoctor(quiet=True)

    assert d.run() == 0
    assert "Python version" in d.passed
    assert "Log directory" in d.passed
    assert any("No config file" in w for w in d.warnings)
    assert (tmp_path / "logs").is_dir()


def test_valid_config_passes(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "faults.json"
    path.write_text(json.dumps({'fault_engine': True, 'fault_inject': ["filesystem EIO read"]}))

    d = doctor.FsfaultDoctor(config_path=path, quiet=True)
    d.check_config_file()

    assert d.passed == ["Config file"]
    assert d.issues == []


def test_invalid_config_is_issue(tmp_path):
    path = tmp_path / "faults.json"
    path.write_text(json.dumps({'fault_inject': ["filesystem ENOPE read"]}))

    d = doctor.FsfaultDoctor(config_path=path, quiet=True)
    d.check_config_file()

    assert d.issues == [f"Invalid config: {path}"]


def test_faults_with_engine_off_warns(tmp_path):
    path = tmp_path / "faults.json"
    path.write_text(json.dumps({'fault_inject': ["filesystem EIO read"]}))

    d = doctor.FsfaultDoctor(config_path=path, quiet=True)
    d.check_config_file()

    assert any("FaultEngine is off" in w for w in d.warnings)


def test_missing_platform_calls_warn(monkeypatch):
    monkeypatch.setattr(fsio, "HAVE_PWRITE", False)

    d = doctor.FsfaultDoctor(quiet=True)
    d.check_platform_calls()

    assert any("pwrite" in w for w in d.warnings)


def test_to_dict_status():
    d = doctor.FsfaultDoctor(quiet=True)
    assert d.to_dict(exit_code=0)["status"] == "ready"

    d.warnings.append("w")
    assert d.to_dict(exit_code=0)["status"] == "ready_with_warnings"

    d.issues.append("i")
    payload = d.to_dict(exit_code=1)
    assert payload["status"] == "blocked"
    assert payload["counts"] == {"passed": 0, "warnings": 1, "issues": 1}


def test_doctor_json_mode_blocked(monkeypatch, capsys):
    """`fsfault-doctor --json` keeps a non-zero exit for blocking issues."""
    monkeypatch.setattr(doctor.sys, "argv", ["fsfault-doctor", "--json"])

    class BlockedDoctor(doctor.FsfaultDoctor):
        def run(self):
            self.issues = ["Python version too old"]
            return 1

    monkeypatch.setattr(doctor, "FsfaultDoctor", BlockedDoctor)

    with pytest.raises(SystemExit) as exc:
        doctor.main()

    payload = json.loads(capsys.readouterr().out)
    assert exc.value.code == 1
    assert payload["status"] == "blocked"
    assert payload["issues"] == ["Python version too old"]


def test_json_mode_prints_only_json(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(doctor.sys, "argv", ["fsfault-doctor", "--json"])

    with pytest.raises(SystemExit):
        doctor.main()

    payload = json.loads(capsys.readouterr().out)
    assert payload["counts"]["passed"] >= 3
