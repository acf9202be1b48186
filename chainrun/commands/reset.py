"""
chainrun reset / clear-blocked - Operator controls over the status file.

reset discards all progress so the next run starts from the first task.
clear-blocked removes blocked markers but keeps completion state, so a run
after a manual fix resumes at the first task that hasn't succeeded.
"""

from chainrun.lib.config import RunnerConfig
from chainrun.runner.orchestrator import Orchestrator
from chainrun.runner.status_store import StatusStore


def _orchestrator(config: RunnerConfig) -> Orchestrator:
    store = StatusStore(config.status_file)
    store.load()
    return Orchestrator(tasks_dir=config.tasks_dir, store=store, executor=None)


def cmd_reset(args, config: RunnerConfig, tool) -> int:
    _orchestrator(config).reset()
    print("Status reset. Run 'chainrun run' to start processing.")
    return 0


def cmd_clear_blocked(args, config: RunnerConfig, tool) -> int:
    cleared = _orchestrator(config).clear_blocked()
    print(f"Cleared blocked status from {cleared} task(s). Run 'chainrun run' to resume.")
    return 0
