"""
config.py

Responsibility: Load configuration from an optional YAML file and the process environment.

Precedence (highest first):
- Environment variables (`NOTDIAMOND_API_KEY`, `CHRONICLES_REPO_PATH`,
  `CHRONICLES_REMOTE_URL`, `CHRONICLES_BRANCH`)
- YAML file keys
- Built-in defaults

The API key is only ever read from the environment so it never lands in a
checked-in config file. `.env` handling happens in the CLI before this runs.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from chronicles.generator import DEFAULT_PROMPT, DEFAULT_PROVIDERS, GenerationRequest, ProviderPreference
from chronicles.materializer import DEFAULT_README_TEMPLATE, DEFAULT_SOURCE_FILENAME
from chronicles.repository import RepositoryHandle

DEFAULT_CONFIG_FILENAME = "chronicles.yaml"


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class ProviderSettings:
    api_key: str = ""
    api_base: str = "https://api.notdiamond.ai"
    endpoint: str = "/v2/create"
    timeout: float | None = None


@dataclass(frozen=True)
class ChronicleConfig:
    """Everything a workflow run needs; built once per process and passed in."""

    repository: RepositoryHandle
    provider: ProviderSettings = field(default_factory=ProviderSettings)
    prompt: str = DEFAULT_PROMPT
    llm_providers: tuple[ProviderPreference, ...] = DEFAULT_PROVIDERS
    source_filename: str = DEFAULT_SOURCE_FILENAME
    readme_template: str = DEFAULT_README_TEMPLATE
    git_author_name: str = "chronicles-bot"
    git_author_email: str = "chronicles-bot@example.invalid"

    def generation_request(self) -> GenerationRequest:
        return GenerationRequest(prompt=self.prompt, llm_providers=self.llm_providers)


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config file does not exist: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Config file is not valid YAML: {path}") from e
    if not isinstance(data, dict):
        raise ConfigError("Config file must be a mapping/object at the top level.")
    return data


def _parse_providers(raw: Any) -> tuple[ProviderPreference, ...]:
    if raw is None:
        return DEFAULT_PROVIDERS
    if not isinstance(raw, list) or not raw:
        raise ConfigError("`llm_providers` must be a non-empty list when provided.")
    out: list[ProviderPreference] = []
    for item in raw:
        if not isinstance(item, dict):
            raise ConfigError("Each `llm_providers` entry must be a mapping with `provider` and `model`.")
        provider = str(item.get("provider") or "").strip()
        model = str(item.get("model") or "").strip()
        if not provider or not model:
            raise ConfigError("Each `llm_providers` entry needs both `provider` and `model`.")
        out.append(ProviderPreference(provider=provider, model=model))
    return tuple(out)


def _parse_timeout(raw: Any) -> float | None:
    if raw is None or raw == "":
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"`timeout` must be a number of seconds, got {raw!r}") from e
    if value <= 0:
        raise ConfigError("`timeout` must be positive when provided.")
    return value


def load_config(config_path: str | Path | None = None, environ: Mapping[str, str] | None = None) -> ChronicleConfig:
    """
    Build a `ChronicleConfig`.

    Recognized YAML keys:
    - repo_path, remote_url (required unless supplied via environment)
    - remote_name, branch
    - prompt, llm_providers (list of {provider, model})
    - source_filename, readme_template
    - api_base, endpoint, timeout
    - git.author_name, git.author_email
    """
    env = os.environ if environ is None else environ
    data = _read_yaml(Path(config_path)) if config_path is not None else {}

    repo_path = str(env.get("CHRONICLES_REPO_PATH") or data.get("repo_path") or "").strip()
    if not repo_path:
        raise ConfigError("`repo_path` is required (config file or CHRONICLES_REPO_PATH).")
    remote_url = str(env.get("CHRONICLES_REMOTE_URL") or data.get("remote_url") or "").strip()
    if not remote_url:
        raise ConfigError("`remote_url` is required (config file or CHRONICLES_REMOTE_URL).")

    remote_name = str(data.get("remote_name") or "origin").strip()
    branch = str(env.get("CHRONICLES_BRANCH") or data.get("branch") or "main").strip()

    git_raw = data.get("git") or {}
    if not isinstance(git_raw, dict):
        raise ConfigError("`git` must be an object/mapping when provided.")

    provider = ProviderSettings(
        api_key=str(env.get("NOTDIAMOND_API_KEY") or ""),
        api_base=str(data.get("api_base") or ProviderSettings.api_base),
        endpoint=str(data.get("endpoint") or ProviderSettings.endpoint),
        timeout=_parse_timeout(data.get("timeout")),
    )

    return ChronicleConfig(
        repository=RepositoryHandle(
            path=Path(repo_path).expanduser(),
            remote_url=remote_url,
            remote_name=remote_name,
            branch=branch,
        ),
        provider=provider,
        prompt=str(data.get("prompt") or DEFAULT_PROMPT),
        llm_providers=_parse_providers(data.get("llm_providers")),
        source_filename=str(data.get("source_filename") or DEFAULT_SOURCE_FILENAME),
        readme_template=str(data.get("readme_template") or DEFAULT_README_TEMPLATE),
        git_author_name=str(git_raw.get("author_name") or "chronicles-bot"),
        git_author_email=str(git_raw.get("author_email") or "chronicles-bot@example.invalid"),
    )
