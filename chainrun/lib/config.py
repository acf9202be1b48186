"""
Configuration loaders for chainrun.

Runner settings come from chainrun.env (KEY=value). Every key is optional;
relative paths are resolved against the directory holding the env file.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from . import envparse
from . import validate

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "chainrun.env"

DEFAULTS = {
    "TASKS_DIR": "prompts",
    "LOGS_DIR": "logs",
    "REPO_PATH": ".",
    "GIT_REMOTE": "origin",
    "SECTION_TIMEOUT": "180",
    "CHECKPOINT_INTERVAL": "5",
    "SECTION_DELAY": "3",
    "TASK_DELAY": "5",
    "INLINE_PROMPT_LIMIT": "8000",
    "MAX_OUTPUT_BYTES": str(10 * 1024 * 1024),
    "CHECKPOINTS": "true",
}


@dataclass
class RunnerConfig:
    """Runner settings from chainrun.env"""
    base_dir: Path  # Directory the relative paths below were resolved against
    tasks_dir: Path
    logs_dir: Path
    status_file: Path
    repo_path: Path
    git_remote: str
    section_timeout: int  # Seconds per external tool invocation
    checkpoint_interval: int  # Checkpoint every N successful tasks
    section_delay: float
    task_delay: float
    inline_prompt_limit: int  # Chars; shorter prompts may go as a CLI arg
    max_output_bytes: int
    checkpoints_enabled: bool


def _resolve(base_dir: Path, value: str) -> Path:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path


def build_runner_config(env: dict, base_dir: Path) -> RunnerConfig:
    """Build RunnerConfig from a parsed env dict.

    Raises:
        ValidationError: if a value doesn't match runner_config.schema.json
    """
    validate.validate(env, "runner_config")

    values = {**DEFAULTS, **env}
    logs_dir = _resolve(base_dir, values["LOGS_DIR"])
    if "STATUS_FILE" in values:
        status_file = _resolve(base_dir, values["STATUS_FILE"])
    else:
        status_file = logs_dir / "task-status.json"

    return RunnerConfig(
        base_dir=base_dir,
        tasks_dir=_resolve(base_dir, values["TASKS_DIR"]),
        logs_dir=logs_dir,
        status_file=status_file,
        repo_path=_resolve(base_dir, values["REPO_PATH"]),
        git_remote=values["GIT_REMOTE"],
        section_timeout=int(values["SECTION_TIMEOUT"]),
        checkpoint_interval=int(values["CHECKPOINT_INTERVAL"]),
        section_delay=float(values["SECTION_DELAY"]),
        task_delay=float(values["TASK_DELAY"]),
        inline_prompt_limit=int(values["INLINE_PROMPT_LIMIT"]),
        max_output_bytes=int(values["MAX_OUTPUT_BYTES"]),
        checkpoints_enabled=values["CHECKPOINTS"].lower() == "true",
    )


def load_runner_config(config_path: Path | None = None) -> RunnerConfig:
    """Load chainrun.env and return RunnerConfig.

    With no explicit path, looks for chainrun.env in the current directory.
    A missing file means all defaults, relative to the current directory.
    """
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME
        if not config_path.exists():
            logger.debug(f"No {CONFIG_FILENAME} in {Path.cwd()}, using defaults")
            return build_runner_config({}, Path.cwd())

    config_path = Path(config_path).resolve()
    env = envparse.load_env(config_path)
    return build_runner_config(env, config_path.parent)
