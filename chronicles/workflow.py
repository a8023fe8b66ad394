"""
workflow.py

Responsibility: Run one publish attempt end to end.

States advance IDLE -> REPO_READY -> GENERATED -> MATERIALIZED -> PUBLISHED.
Any stage failure moves the run to FAILED and stops it; there are no retries.
The scheduler that invokes this daily is outside this package.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable

from chronicles.config import ChronicleConfig
from chronicles.generator import ArtifactGenerator, Failure
from chronicles.materializer import ProjectArtifact, ProjectMaterializer, WriteError
from chronicles.notdiamond_client import NotDiamondClient
from chronicles.repository import (
    InitializationError,
    PublishError,
    PublishOutcome,
    RepositoryStateManager,
    commit_message,
)

logger = logging.getLogger(__name__)


class WorkflowState(str, Enum):
    IDLE = "idle"
    REPO_READY = "repo_ready"
    GENERATED = "generated"
    MATERIALIZED = "materialized"
    PUBLISHED = "published"
    FAILED = "failed"


class Stage(str, Enum):
    INIT = "init"
    GENERATE = "generate"
    MATERIALIZE = "materialize"
    PUBLISH = "publish"


@dataclass(frozen=True)
class WorkflowReport:
    state: WorkflowState
    failed_stage: Stage | None = None
    error: str | None = None
    artifact: ProjectArtifact | None = None
    outcome: PublishOutcome | None = None

    @property
    def ok(self) -> bool:
        return self.state is WorkflowState.PUBLISHED


class PublishWorkflow:
    def __init__(
        self,
        config: ChronicleConfig,
        *,
        repository: RepositoryStateManager,
        generator: ArtifactGenerator,
        materializer: ProjectMaterializer,
        message_factory: Callable[[], str] = commit_message,
    ) -> None:
        self._config = config
        self._repository = repository
        self._generator = generator
        self._materializer = materializer
        self._message_factory = message_factory
        self.state = WorkflowState.IDLE

    def _advance(self, state: WorkflowState) -> None:
        logger.info("Workflow state %s -> %s", self.state.value, state.value)
        self.state = state

    def _fail(self, stage: Stage, error: str, artifact: ProjectArtifact | None = None) -> WorkflowReport:
        logger.error("Workflow failed at stage %s: %s", stage.value, error)
        self.state = WorkflowState.FAILED
        return WorkflowReport(state=WorkflowState.FAILED, failed_stage=stage, error=error, artifact=artifact)

    def run(self) -> WorkflowReport:
        """
        Execute a single attempt and report where it ended.

        Component failures are reported, not raised.
        """
        if self.state is not WorkflowState.IDLE:
            raise RuntimeError("A PublishWorkflow instance runs once; build a new one per run.")

        handle = self._config.repository
        started = datetime.now()
        logger.info("Starting publish run for %s (%s)", handle.path, handle.remote_url)

        try:
            self._repository.ensure_ready(handle)
        except InitializationError as e:
            return self._fail(Stage.INIT, str(e))
        self._advance(WorkflowState.REPO_READY)

        result = self._generator.generate(self._config.generation_request())
        if isinstance(result, Failure):
            return self._fail(Stage.GENERATE, result.reason)
        self._advance(WorkflowState.GENERATED)

        try:
            artifact = self._materializer.materialize(handle.path, result.text)
        except WriteError as e:
            return self._fail(Stage.MATERIALIZE, str(e))
        self._advance(WorkflowState.MATERIALIZED)

        try:
            outcome = self._repository.publish(handle, artifact.directory, self._message_factory())
        except PublishError as e:
            return self._fail(Stage.PUBLISH, str(e), artifact=artifact)
        self._advance(WorkflowState.PUBLISHED)

        logger.info(
            "Published %s in %.1fs", outcome.commit_sha[:12], (datetime.now() - started).total_seconds()
        )
        return WorkflowReport(state=WorkflowState.PUBLISHED, artifact=artifact, outcome=outcome)


def build_workflow(config: ChronicleConfig) -> PublishWorkflow:
    """
    Wire the default components from configuration.
    """
    client = NotDiamondClient(
        config.provider.api_key,
        api_base=config.provider.api_base,
        endpoint=config.provider.endpoint,
        timeout=config.provider.timeout,
    )
    return PublishWorkflow(
        config,
        repository=RepositoryStateManager(
            author_name=config.git_author_name,
            author_email=config.git_author_email,
        ),
        generator=ArtifactGenerator(client),
        materializer=ProjectMaterializer(
            source_filename=config.source_filename,
            readme_template=config.readme_template,
        ),
    )
