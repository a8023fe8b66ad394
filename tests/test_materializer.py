from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from chronicles.materializer import ProjectMaterializer, WriteError


def test_materialize_writes_source_and_readme(tmp_path: Path) -> None:
    now = datetime(2024, 5, 1, tzinfo=timezone.utc)
    code = "package main\n\nfunc main() {}\n"

    artifact = ProjectMaterializer().materialize(tmp_path, code, now=now)

    assert artifact.directory.parent == tmp_path
    assert artifact.directory.name.startswith(f"project_{int(now.timestamp() * 1000)}_")
    assert artifact.source_path == artifact.directory / "main.go"
    assert artifact.source_path.read_text(encoding="utf-8") == code
    readme = artifact.readme_path.read_text(encoding="utf-8")
    assert readme.startswith("# Auto-Generated Go Project")
    assert "go run main.go" in readme
    assert "{{" not in readme and "}}" not in readme


def test_materialize_creates_distinct_directories(tmp_path: Path) -> None:
    materializer = ProjectMaterializer()
    now = datetime(2024, 5, 1, tzinfo=timezone.utc)

    first = materializer.materialize(tmp_path, "a", now=now)
    second = materializer.materialize(tmp_path, "b", now=now + timedelta(milliseconds=1))
    third = materializer.materialize(tmp_path, "c", now=now)

    dirs = {first.directory, second.directory, third.directory}
    assert len(dirs) == 3
    for d in dirs:
        assert sorted(p.name for p in d.iterdir()) == ["README.md", "main.go"]


def test_materialize_honours_custom_names(tmp_path: Path) -> None:
    materializer = ProjectMaterializer(
        source_filename="app.py",
        readme_template="# {{ project_name }}\n\nRun `python {{ source_filename }}`.\n",
    )

    artifact = materializer.materialize(tmp_path, "print('hi')\n")

    assert artifact.source_path.name == "app.py"
    assert artifact.readme_path.read_text(encoding="utf-8") == (
        f"# {artifact.directory.name}\n\nRun `python app.py`.\n"
    )


def test_unknown_placeholder_fails_and_cleans_up(tmp_path: Path) -> None:
    materializer = ProjectMaterializer(readme_template="# {{ missing_value }}\n")

    with pytest.raises(WriteError):
        materializer.materialize(tmp_path, "package main\n")

    assert list(tmp_path.iterdir()) == []


def test_missing_base_directory_raises_write_error(tmp_path: Path) -> None:
    with pytest.raises(WriteError):
        ProjectMaterializer().materialize(tmp_path / "absent", "package main\n")
