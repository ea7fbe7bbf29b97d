import pytest

from modules import controls as controls_module
from cisbench.exceptions import MissingDependencyError


def test_load_controls_requires_yaml(tmp_path, monkeypatch):
    catalog_path = tmp_path / "master.yaml"
    catalog_path.write_text("id: 1\ntype: master\ngroups: []\n", encoding="utf-8")

    monkeypatch.setattr(controls_module, "yaml", None)
    monkeypatch.setattr(controls_module, "_YAML_IMPORT_ERROR", ModuleNotFoundError("yaml"))

    with pytest.raises(MissingDependencyError) as exc:
        controls_module.load_controls_file(catalog_path, "master", "1")

    assert "PyYAML" in str(exc.value)


def test_main_exits_with_code_3_without_yaml(tmp_path, monkeypatch):
    from cisbench.main import main

    catalog_path = tmp_path / "master.yaml"
    catalog_path.write_text("id: 1\ntype: master\ngroups: []\n", encoding="utf-8")

    monkeypatch.setattr(controls_module, "yaml", None)
    monkeypatch.setattr(controls_module, "_YAML_IMPORT_ERROR", ModuleNotFoundError("yaml"))
    monkeypatch.setattr("sys.argv", ["cisbench", "--catalog", str(catalog_path), "run", "master"])

    with pytest.raises(SystemExit) as exc:
        main()

    assert exc.value.code == 3
