from pathlib import Path

import pytest

tomllib = pytest.importorskip("tomllib")

ROOT = Path(__file__).resolve().parents[1]


def _pyproject():
    with open(ROOT / "pyproject.toml", "rb") as fh:
        return tomllib.load(fh)


def test_only_the_engine_package_is_installed():
    find = _pyproject()["tool"]["setuptools"]["packages"]["find"]

    assert find["include"] == ["xodr2engine*"]


def test_runtime_dependencies_cover_third_party_imports():
    project = _pyproject()["project"]

    assert set(project["dependencies"]) == {"numpy", "scipy", "PyYAML"}
    assert project["optional-dependencies"]["test"] == ["pytest"]
    assert project["scripts"]["xodr2engine"] == "xodr2engine.xodr2engine:main"
