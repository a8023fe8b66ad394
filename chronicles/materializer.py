"""
materializer.py

Responsibility: Write a generated artifact into a fresh, uniquely named project directory.

Rules:
- Directory names are `project_<epoch-ms>_<random hex>` and are created exclusively.
- The artifact text is written byte-for-byte as received (UTF-8).
- The README is rendered with Jinja2 using StrictUndefined, so a template
  referencing an unknown placeholder fails instead of leaving it blank.

This module intentionally does NOT know about git or the generation provider.
"""

from __future__ import annotations

import logging
import secrets
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from jinja2 import Environment, StrictUndefined, TemplateError

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_FILENAME = "main.go"

DEFAULT_README_TEMPLATE = """# Auto-Generated Go Project

This project was generated using an LLM on {{ generated_at }}.

## Usage

Run with:
```
go run {{ source_filename }}
```
"""

README_FILENAME = "README.md"

_MAX_NAME_ATTEMPTS = 5


class WriteError(RuntimeError):
    pass


@dataclass(frozen=True)
class ProjectArtifact:
    directory: Path
    source_path: Path
    readme_path: Path


def _project_dir_name(now: datetime) -> str:
    millis = int(now.timestamp() * 1000)
    return f"project_{millis}_{secrets.token_hex(4)}"


def _create_project_dir(base_dir: Path, now: datetime) -> Path:
    for _ in range(_MAX_NAME_ATTEMPTS):
        candidate = base_dir / _project_dir_name(now)
        try:
            candidate.mkdir(parents=False, exist_ok=False)
        except FileExistsError:
            continue
        return candidate
    raise WriteError(f"Could not allocate a unique project directory under {base_dir}")


class ProjectMaterializer:
    def __init__(
        self,
        *,
        source_filename: str = DEFAULT_SOURCE_FILENAME,
        readme_template: str = DEFAULT_README_TEMPLATE,
    ) -> None:
        self._source_filename = source_filename
        self._env = Environment(
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
        self._readme_template = readme_template

    def render_readme(self, *, project_name: str, generated_at: datetime) -> str:
        try:
            template = self._env.from_string(self._readme_template)
            return template.render(
                project_name=project_name,
                source_filename=self._source_filename,
                generated_at=generated_at.isoformat(),
            )
        except TemplateError as e:
            raise WriteError(f"Failed rendering README template: {e}") from e

    def materialize(self, base_dir: str | Path, artifact_text: str, now: datetime | None = None) -> ProjectArtifact:
        """
        Create a new project directory under base_dir holding the artifact and its README.

        A failed write removes the partially written directory before raising WriteError.
        """
        base = Path(base_dir)
        stamp = now or datetime.now(timezone.utc)

        try:
            project_dir = _create_project_dir(base, stamp)
        except OSError as e:
            raise WriteError(f"Cannot create project directory under {base}: {e}") from e

        try:
            readme = self.render_readme(project_name=project_dir.name, generated_at=stamp)
            source_path = project_dir / self._source_filename
            readme_path = project_dir / README_FILENAME
            source_path.write_text(artifact_text, encoding="utf-8")
            readme_path.write_text(readme, encoding="utf-8", newline="\n")
        except WriteError:
            shutil.rmtree(project_dir, ignore_errors=True)
            raise
        except OSError as e:
            shutil.rmtree(project_dir, ignore_errors=True)
            raise WriteError(f"Failed writing project files into {project_dir}: {e}") from e

        logger.info("Project materialized at %s", project_dir)
        return ProjectArtifact(directory=project_dir, source_path=source_path, readme_path=readme_path)
