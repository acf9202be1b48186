"""
chainrun status - Show per-task progress. Never modifies anything.
"""

from chainrun.lib.config import RunnerConfig
from chainrun.runner.orchestrator import Orchestrator
from chainrun.runner.status_store import StatusStore


def cmd_status(args, config: RunnerConfig, tool) -> int:
    store = StatusStore(config.status_file)
    store.load()
    orchestrator = Orchestrator(tasks_dir=config.tasks_dir, store=store, executor=None)

    print()
    print("Task Chain Status")
    print("=" * 60)
    for line in orchestrator.status_report():
        print(line)

    if any(s.completed and not s.success for s in store.all().values()):
        print()
        print("Fix failed tasks and run 'chainrun run' to resume")

    return 0
