"""
Agent Context
=============
Process-wide wiring of every collaborator the orchestrator needs.

build_context(settings) constructs them once; tests build an AgentContext
by hand with fakes in place of the runner, the oracle client and git.
"""
import logging
import os
from dataclasses import dataclass
from typing import Optional

from janitor.agents.git_agent import GitAgent
from janitor.core.config import Settings
from janitor.llm.client import OracleClient
from janitor.services.learning_store import JsonLearningStore, LearningStore
from janitor.services.persistence import InMemoryRunRepository, JsonRunRepository
from janitor.services.scanner import Scanner
from janitor.services.tool_runner import ToolRunner
from janitor.services.validator import Validator
from janitor.services.workspace import Workspace

logger = logging.getLogger(__name__)


@dataclass
class AgentContext:
    settings: Settings
    client: OracleClient
    runner: ToolRunner
    scanner: Scanner
    validator: Validator
    git: GitAgent
    workspace: Workspace
    learning: LearningStore
    repository: InMemoryRunRepository

    async def close(self) -> None:
        await self.client.close()


def build_context(settings: Optional[Settings] = None) -> AgentContext:
    """Construct the default, file-backed context for the given settings."""
    settings = settings or Settings.from_env()
    data_dir = settings.data_dir
    if not os.path.isabs(data_dir):
        data_dir = os.path.join(settings.project_root, data_dir)
    # Keep run history and learning data out of the maintenance commit
    in_tree = os.path.relpath(os.path.abspath(data_dir), os.path.abspath(settings.project_root))
    git_exclude = () if in_tree.startswith(os.pardir) else (in_tree,)

    client = OracleClient(
        openai_api_key=settings.openai_api_key,
        anthropic_api_key=settings.anthropic_api_key,
        openai_base_url=settings.openai_base_url,
        anthropic_base_url=settings.anthropic_base_url,
        timeout_seconds=settings.oracle_timeout,
    )
    runner = ToolRunner(settings.project_root, timeout=settings.tool_timeout)
    scanner = Scanner(settings, runner)
    learning = JsonLearningStore(
        os.path.join(data_dir, "learning.json"),
        skip_threshold=settings.learning_skip_threshold,
        min_runs=settings.learning_skip_min_runs,
        min_success_rate=settings.learning_min_success_rate,
    )
    logger.info("Agent context ready (root=%s, data=%s)", settings.project_root, data_dir)
    return AgentContext(
        settings=settings,
        client=client,
        runner=runner,
        scanner=scanner,
        validator=Validator(scanner),
        git=GitAgent(settings.project_root, exclude=git_exclude),
        workspace=Workspace(settings.project_root),
        learning=learning,
        repository=JsonRunRepository(os.path.join(data_dir, "runs")),
    )
