"""
repository.py

Responsibility: Keep a local git working copy in a known state and publish into it.

This module must be the only place that:
- Runs `git` subprocesses
- Knows how a working copy is detected, initialized and linked to its remote
- Moves a generated project into the repository root before committing

Authentication is never configured here; pushes rely on the ambient git
credential setup (SSH agent, credential helper).
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


class GitCommandError(RuntimeError):
    pass


class InitializationError(RuntimeError):
    pass


class PublishError(RuntimeError):
    def __init__(self, step: str, message: str) -> None:
        super().__init__(f"{step} failed: {message}")
        self.step = step


@dataclass(frozen=True)
class RepositoryHandle:
    """Local working copy path plus the remote it publishes to."""

    path: Path
    remote_url: str
    remote_name: str = "origin"
    branch: str = "main"


@dataclass(frozen=True)
class PublishOutcome:
    commit_sha: str
    message: str
    moved_files: tuple[str, ...]


def _run(cmd: list[str], *, cwd: Path, env: dict[str, str] | None = None) -> str:
    """
    Run a subprocess command and return its combined output, raising GitCommandError on failure.
    """
    try:
        proc = subprocess.run(
            cmd, cwd=str(cwd), env=env, check=True, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True
        )
    except subprocess.CalledProcessError as e:
        raise GitCommandError(f"Command failed: {' '.join(cmd)}\n\n{e.stdout}") from e
    except OSError as e:
        raise GitCommandError(f"Command could not be started: {' '.join(cmd)} ({e})") from e
    return proc.stdout


def _git_env(
    base_env: dict[str, str],
    *,
    author_name: str,
    author_email: str,
    configured: dict[str, str] | None = None,
) -> dict[str, str]:
    """
    Fill in a commit identity only where neither the environment nor git config provides one.

    `configured` maps `name`/`email` to what `git config user.*` reported for the repository.
    """
    configured = configured or {}
    env = dict(base_env)
    if not configured.get("name"):
        env.setdefault("GIT_AUTHOR_NAME", author_name)
        env.setdefault("GIT_COMMITTER_NAME", author_name)
    if not configured.get("email"):
        env.setdefault("GIT_AUTHOR_EMAIL", author_email)
        env.setdefault("GIT_COMMITTER_EMAIL", author_email)
    return env


def commit_message(now: datetime | None = None) -> str:
    stamp = (now or datetime.now(timezone.utc)).isoformat()
    return f"Daily Go project - {stamp}"


class RepositoryStateManager:
    def __init__(
        self,
        *,
        author_name: str = "chronicles-bot",
        author_email: str = "chronicles-bot@example.invalid",
    ) -> None:
        self._author_name = author_name
        self._author_email = author_email

    def _env(self) -> dict[str, str]:
        return os.environ.copy()

    def _configured_identity(self, root: Path, env: dict[str, str]) -> dict[str, str]:
        identity: dict[str, str] = {}
        for key in ("name", "email"):
            try:
                identity[key] = _run(["git", "config", "--get", f"user.{key}"], cwd=root, env=env).strip()
            except GitCommandError:
                # Exit status 1: not set at any config level.
                identity[key] = ""
        return identity

    def _commit_env(self, root: Path) -> dict[str, str]:
        base = self._env()
        return _git_env(
            base,
            author_name=self._author_name,
            author_email=self._author_email,
            configured=self._configured_identity(root, base),
        )

    def is_working_copy(self, path: Path) -> bool:
        if not (path / ".git").exists():
            return False
        try:
            out = _run(["git", "rev-parse", "--is-inside-work-tree"], cwd=path, env=self._env())
        except GitCommandError:
            return False
        return out.strip() == "true"

    def remote_url(self, handle: RepositoryHandle) -> str | None:
        """
        Return the URL registered for the handle's remote, or None if it isn't registered.
        """
        try:
            out = _run(["git", "remote", "get-url", handle.remote_name], cwd=handle.path, env=self._env())
        except GitCommandError:
            return None
        return out.strip() or None

    def ensure_ready(self, handle: RepositoryHandle) -> bool:
        """
        Make sure `handle.path` is a working copy linked to `handle.remote_url`.

        Returns True when a new repository was initialized, False when one already existed.
        An existing working copy is left alone apart from remote reconciliation.
        """
        path = Path(handle.path)
        env = self._env()

        if self.is_working_copy(path):
            self._reconcile_remote(handle, env)
            return False

        logger.info("Initializing git repository at %s", path)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise InitializationError(f"Cannot create repository directory {path}: {e}") from e

        try:
            _run(["git", "init"], cwd=path, env=env)
            # Unborn HEAD; works on git versions without `init -b`.
            _run(["git", "symbolic-ref", "HEAD", f"refs/heads/{handle.branch}"], cwd=path, env=env)
            _run(["git", "remote", "add", handle.remote_name, handle.remote_url], cwd=path, env=env)
        except GitCommandError as e:
            raise InitializationError(str(e)) from e
        return True

    def _reconcile_remote(self, handle: RepositoryHandle, env: dict[str, str]) -> None:
        current = self.remote_url(handle)
        if current == handle.remote_url:
            return
        try:
            if current is None:
                logger.info("Registering missing remote %s -> %s", handle.remote_name, handle.remote_url)
                _run(["git", "remote", "add", handle.remote_name, handle.remote_url], cwd=handle.path, env=env)
            else:
                logger.warning(
                    "Remote %s points to %s, updating to %s", handle.remote_name, current, handle.remote_url
                )
                _run(
                    ["git", "remote", "set-url", handle.remote_name, handle.remote_url], cwd=handle.path, env=env
                )
        except GitCommandError as e:
            raise InitializationError(str(e)) from e

    def publish(self, handle: RepositoryHandle, project_dir: Path, message: str) -> PublishOutcome:
        """
        Flatten `project_dir` into the repository root, then stage, commit and push.

        Nothing is rolled back on failure: a failed push leaves the local commit in place.
        """
        root = Path(handle.path)
        env = self._commit_env(root)

        try:
            moved = _flatten_into(Path(project_dir), root)
        except OSError as e:
            raise PublishError("move", str(e)) from e

        logger.info("Committing %d file(s) to %s", len(moved), root)
        steps = [
            ("stage", ["git", "add", "-A"]),
            ("commit", ["git", "commit", "-m", message]),
        ]
        for step, cmd in steps:
            try:
                _run(cmd, cwd=root, env=env)
            except GitCommandError as e:
                raise PublishError(step, str(e)) from e

        try:
            sha = _run(["git", "rev-parse", "HEAD"], cwd=root, env=env).strip()
        except GitCommandError as e:
            raise PublishError("commit", str(e)) from e

        logger.info("Pushing %s to %s/%s", sha[:12], handle.remote_name, handle.branch)
        # Explicit refspec: a pre-existing copy may sit on another local branch (e.g. master).
        refspec = f"HEAD:refs/heads/{handle.branch}"
        try:
            _run(["git", "push", "-u", handle.remote_name, refspec], cwd=root, env=env)
        except GitCommandError as e:
            raise PublishError("push", str(e)) from e

        return PublishOutcome(commit_sha=sha, message=message, moved_files=moved)


def _flatten_into(source_dir: Path, root: Path) -> tuple[str, ...]:
    """
    Move every entry of source_dir into root, replacing same-named entries, then drop source_dir.
    """
    moved: list[str] = []
    for entry in sorted(source_dir.iterdir()):
        target = root / entry.name
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        elif target.exists() or target.is_symlink():
            target.unlink()
        shutil.move(str(entry), str(target))
        moved.append(entry.name)
    source_dir.rmdir()
    return tuple(moved)
