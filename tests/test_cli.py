import sys

import pytest

from modules import cli as cli_module
from modules.cli import parse_args, parse_id_list, parse_kv_pairs
from modules.controls import new_controls


CATALOG = """
id: 1
type: master
groups:
  - id: "1.1"
    text: Configuration Files
    checks:
      - {id: "1.1.1", text: "Ensure perms", audit: "stat -c %a /etc/x | grep 644", remediation: "chmod 644", level: 1}
  - id: "1.2"
    text: API Server
    checks:
      - {id: "1.2.1", text: "Manual review", audit: "", type: manual, remediation: "Review", level: 2}
"""


def test_parse_args_run_with_groups(monkeypatch):
    monkeypatch.delenv("CISBENCH_LEVEL", raising=False)
    args = parse_args(["run", "master", "--group", "1.1,1.2", "--group", "1.3", "--var", "bin=kube-apiserver"])

    assert args.command == "run"
    assert args.node_type == "master"
    assert args.groups == ["1.1", "1.2", "1.3"]
    assert args.checks == []
    assert args.vars == {"bin": "kube-apiserver"}
    assert args.level == "1"
    assert args.fail_on == "none"
    assert not hasattr(args, "group")


def test_parse_args_reads_environment(monkeypatch):
    monkeypatch.setenv("CISBENCH_LEVEL", "2")
    monkeypatch.setenv("CISBENCH_CONFIG_DIR", "/opt/cfg")
    monkeypatch.setenv("CISBENCH_VERSION", "cis-1.5")
    monkeypatch.setattr(sys, "argv", ["cisbench", "run", "node", "--check", "4.1.1"])

    args = parse_args()

    assert args.level == "2"
    assert args.config_dir == "/opt/cfg"
    assert args.benchmark_version == "cis-1.5"
    assert args.checks == ["4.1.1"]


def test_parse_args_global_options():
    args = parse_args(["--catalog", "x.yaml", "-v", "--log-file", "out.log", "validate", "node", "--strict"])

    assert args.catalog == "x.yaml"
    assert args.verbose is True
    assert args.log_file == "out.log"
    assert args.strict is True


def test_group_and_check_are_exclusive():
    with pytest.raises(SystemExit) as exc:
        parse_args(["run", "master", "--group", "1.1", "--check", "1.1.1"])
    assert exc.value.code == 2


def test_unknown_node_type_is_rejected():
    with pytest.raises(SystemExit) as exc:
        parse_args(["run", "etcd"])
    assert exc.value.code == 2


def test_invalid_var_exits_with_2(capsys):
    with pytest.raises(SystemExit) as exc:
        parse_args(["run", "master", "--var", "novalue"])
    assert exc.value.code == 2
    assert "--var" in capsys.readouterr().err


def test_no_command_prints_help(capsys):
    with pytest.raises(SystemExit) as exc:
        parse_args([])
    assert exc.value.code == 1
    assert "cisbench" in capsys.readouterr().out


def test_parse_id_list_and_kv_pairs():
    assert parse_id_list(None) == []
    assert parse_id_list(["1.1, 1.2,", "2"]) == ["1.1", "1.2", "2"]
    assert parse_kv_pairs(["a=1", " b = x=y "], option="--var") == {"a": "1", "b": "x=y"}
    with pytest.raises(ValueError):
        parse_kv_pairs(["=1"], option="--var")


def test_list_groups_and_checks(capsys):
    controls = new_controls("master", "1", CATALOG)

    cli_module.list_groups(controls)
    cli_module.list_checks(controls, "1.2")

    out = capsys.readouterr().out
    assert "1.1: Configuration Files (1 checks)" in out
    assert "1.2.1: Manual review (level 2) [manual]" in out
    assert "1.1.1:" not in out


def test_describe_check(capsys):
    controls = new_controls("master", "1", CATALOG)

    assert cli_module.describe_check(controls, "1.1.1") is True
    out = capsys.readouterr().out
    assert "ID: 1.1.1" in out
    assert "stage 2: ['grep', '644']" in out

    assert cli_module.describe_check(controls, "9.9") is False
    assert "not found" in capsys.readouterr().out
