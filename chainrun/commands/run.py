"""
chainrun run - Process the task chain.
"""

import logging

from chainrun.lib.config import RunnerConfig
from chainrun.lib.tools_config import ToolConfig, check_binary_available
from chainrun.runner.checkpoint import Checkpointer
from chainrun.runner.executor import TaskExecutor
from chainrun.runner.invocation import select_invocation
from chainrun.runner.orchestrator import Orchestrator
from chainrun.runner.status_store import StatusStore

logger = logging.getLogger(__name__)


def build_orchestrator(config: RunnerConfig, tool: ToolConfig, checkpoints: bool = True) -> Orchestrator:
    """Wire the orchestrator and its collaborators from configuration."""
    store = StatusStore(config.status_file)
    store.load()

    executor = TaskExecutor(
        tool=tool,
        logs_dir=config.logs_dir,
        timeout=config.section_timeout,
        invocation=select_invocation(inline_limit=config.inline_prompt_limit),
        cwd=config.repo_path,
        max_output_bytes=config.max_output_bytes,
    )
    checkpointer = Checkpointer(
        repo_path=config.repo_path,
        remote=config.git_remote,
        enabled=checkpoints and config.checkpoints_enabled,
    )
    return Orchestrator(
        tasks_dir=config.tasks_dir,
        store=store,
        executor=executor,
        checkpointer=checkpointer,
        checkpoint_interval=config.checkpoint_interval,
        section_delay=config.section_delay,
        task_delay=config.task_delay,
    )


def cmd_run(args, config: RunnerConfig, tool: ToolConfig) -> int:
    """Run the chain. Returns 0 on a clean pass, 1 if the pass halted."""
    if not check_binary_available(tool.binary):
        print(f"ERROR: Required tool '{tool.binary}' is not installed or not on PATH.")
        print("  Install it, or set tool.command in tools.yaml to a different CLI.")
        return 2

    orchestrator = build_orchestrator(config, tool, checkpoints=not args.no_checkpoint)
    summary = orchestrator.run()

    if summary.halted:
        print()
        print("Processing stopped. Inspect with 'chainrun status', fix the cause,")
        print("then 'chainrun clear-blocked' and 'chainrun run' to resume.")
        return 1
    return 0
