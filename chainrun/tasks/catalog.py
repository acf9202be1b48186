"""
Task catalog.

Discovers numbered task files (01-setup.md, 02-auth.md, ...) and returns
them in chain order.
"""

import logging
import re
from pathlib import Path

from chainrun.lib.errors import CatalogNotFound, MalformedTask
from chainrun.tasks.models import TaskDefinition, TaskRef
from chainrun.tasks.sections import (
    EXPECTED_OUTPUT_HEADING,
    NEXT_STEPS_HEADING,
    NOTES_HEADING,
    extract_block,
    extract_instruction,
)

logger = logging.getLogger(__name__)

TASK_EXTENSION = ".md"
LEADING_DIGITS_RE = re.compile(r'^(\d+)')
EXCLUDED_NAME_PARTS = ("overview", "readme")


def is_task_file(name: str) -> bool:
    """True if a directory entry name looks like a chain task file."""
    lowered = name.lower()
    return (
        name.endswith(TASK_EXTENSION)
        and LEADING_DIGITS_RE.match(name) is not None
        and not any(part in lowered for part in EXCLUDED_NAME_PARTS)
    )


def list_tasks(directory: Path) -> list[TaskRef]:
    """Return task files in directory, ordered by their numeric prefix.

    Raises:
        CatalogNotFound: if directory doesn't exist
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise CatalogNotFound(f"Task directory not found: {directory}")

    refs = []
    for entry in directory.iterdir():
        if not entry.is_file() or not is_task_file(entry.name):
            continue
        order = int(LEADING_DIGITS_RE.match(entry.name).group(1))
        refs.append(TaskRef(id=entry.stem, order=order, path=entry))

    # Name breaks ties so "1-a.md" and "01-b.md" keep a stable order
    refs.sort(key=lambda r: (r.order, r.path.name))

    if refs:
        logger.info(f"Found {len(refs)} task files in {directory}")
    else:
        logger.warning(f"No task files found in {directory}")
    return refs


def load_task(ref: TaskRef) -> TaskDefinition:
    """Read a task file from disk and extract its blocks.

    Raises:
        MalformedTask: if the file can't be read or has no prompt block
    """
    try:
        text = ref.path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise MalformedTask(f"Could not read {ref.filename}: {e}") from None

    try:
        instruction = extract_instruction(text)
    except MalformedTask as e:
        raise MalformedTask(f"{ref.filename}: {e.message}") from None

    return TaskDefinition(
        ref=ref,
        text=text,
        instruction=instruction,
        expected_outcome=extract_block(text, EXPECTED_OUTPUT_HEADING),
        next_steps=extract_block(text, NEXT_STEPS_HEADING),
        notes=extract_block(text, NOTES_HEADING),
    )
