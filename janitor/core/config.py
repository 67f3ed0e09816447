"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    OPENAI_API_KEY            — Key for the OpenAI-compatible oracle endpoint
    ANTHROPIC_API_KEY         — Key for the Anthropic oracle endpoint
    PROJECT_ROOT              — Source tree the agent maintains (default: cwd)
    DATA_DIR                  — Where runs, learning data and logs are kept
    MAX_TASKS_PER_RUN         — Issues attempted per run (default: 5)
    MAX_RETRIES               — Attempts per issue for escalating fixers (default: 3)
    RUN_COST_CEILING_USD      — Hard oracle spend ceiling per run (default: 0.50)
    DRY_RUN                   — Fix and validate but never commit (default: false)

Budget Philosophy:
    The ceiling is checked BEFORE every oracle call using a projected cost.
    A refused call is an ordinary failed attempt, never a crash. The run
    keeps going so zero-cost repairs (linter auto-fix) can still land.

Learning Thresholds:
    LEARNING_SKIP_THRESHOLD failures (with zero successes) spread across at
    least LEARNING_SKIP_MIN_RUNS distinct runs mark a fingerprint as not
    worth retrying. A learned strategy is only recommended when its success
    rate is at least LEARNING_MIN_SUCCESS_RATE percent.
"""
import os
import shlex
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_command(name: str, default: str) -> List[str]:
    return shlex.split(os.getenv(name, default))


OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
ANTHROPIC_BASE_URL = os.getenv("ANTHROPIC_BASE_URL", "https://api.anthropic.com/v1")

PROJECT_ROOT = os.getenv("PROJECT_ROOT", os.getcwd())
DATA_DIR = os.getenv("DATA_DIR", ".janitor")

# Run limits
MAX_TASKS_PER_RUN = int(os.getenv("MAX_TASKS_PER_RUN", 5))
MAX_RETRIES = int(os.getenv("MAX_RETRIES", 3))
RUN_COST_CEILING_USD = float(os.getenv("RUN_COST_CEILING_USD", 0.50))
DRY_RUN = _env_bool("DRY_RUN")

# Timeouts (seconds)
TOOL_TIMEOUT_SECONDS = int(os.getenv("TOOL_TIMEOUT_SECONDS", 120))
ORACLE_TIMEOUT_SECONDS = int(os.getenv("ORACLE_TIMEOUT_SECONDS", 60))

# Learning
ENABLE_LEARNING = _env_bool("ENABLE_LEARNING", True)
LEARNING_SKIP_THRESHOLD = int(os.getenv("LEARNING_SKIP_THRESHOLD", 5))
LEARNING_SKIP_MIN_RUNS = int(os.getenv("LEARNING_SKIP_MIN_RUNS", 2))
LEARNING_MIN_SUCCESS_RATE = float(os.getenv("LEARNING_MIN_SUCCESS_RATE", 60))

# Patch safety
MAX_SIZE_CHANGE_RATIO = float(os.getenv("MAX_SIZE_CHANGE_RATIO", 0.5))
ENABLE_SPECIALIZED_FIXERS = _env_bool("ENABLE_SPECIALIZED_FIXERS", True)

# Commit
COMMIT_TRAILER_AUTHOR = os.getenv("COMMIT_TRAILER_AUTHOR", "repo-janitor <janitor@localhost>")

# Tool commands (the target path is appended at call time)
LINT_COMMAND = _env_command("LINT_COMMAND", "ruff check --output-format=json --exit-zero")
LINT_FIX_COMMAND = _env_command("LINT_FIX_COMMAND", "ruff check --fix --exit-zero")
TYPECHECK_COMMAND = _env_command(
    "TYPECHECK_COMMAND",
    "mypy --show-column-numbers --no-error-summary --no-color-output --ignore-missing-imports",
)
SECURITY_COMMAND = _env_command("SECURITY_COMMAND", "bandit -f json -q -r")
OUTDATED_COMMAND = _env_command("OUTDATED_COMMAND", "pip list --outdated --format=json")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


# ---------------------------------------------------------------------------
# Settings snapshot
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Settings:
    """Immutable snapshot of the configuration used for one process."""
    project_root: str = PROJECT_ROOT
    data_dir: str = DATA_DIR
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    openai_base_url: str = OPENAI_BASE_URL
    anthropic_base_url: str = ANTHROPIC_BASE_URL
    max_tasks_per_run: int = MAX_TASKS_PER_RUN
    max_retries: int = MAX_RETRIES
    cost_ceiling_usd: float = RUN_COST_CEILING_USD
    dry_run: bool = DRY_RUN
    tool_timeout: int = TOOL_TIMEOUT_SECONDS
    oracle_timeout: int = ORACLE_TIMEOUT_SECONDS
    enable_learning: bool = ENABLE_LEARNING
    learning_skip_threshold: int = LEARNING_SKIP_THRESHOLD
    learning_skip_min_runs: int = LEARNING_SKIP_MIN_RUNS
    learning_min_success_rate: float = LEARNING_MIN_SUCCESS_RATE
    max_size_change_ratio: float = MAX_SIZE_CHANGE_RATIO
    enable_specialized_fixers: bool = ENABLE_SPECIALIZED_FIXERS
    commit_trailer_author: str = COMMIT_TRAILER_AUTHOR
    lint_command: List[str] = field(default_factory=lambda: list(LINT_COMMAND))
    lint_fix_command: List[str] = field(default_factory=lambda: list(LINT_FIX_COMMAND))
    typecheck_command: List[str] = field(default_factory=lambda: list(TYPECHECK_COMMAND))
    security_command: List[str] = field(default_factory=lambda: list(SECURITY_COMMAND))
    outdated_command: List[str] = field(default_factory=lambda: list(OUTDATED_COMMAND))

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the module-level environment values."""
        return cls(
            openai_api_key=OPENAI_API_KEY or "",
            anthropic_api_key=ANTHROPIC_API_KEY or "",
        )
