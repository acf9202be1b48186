"""
Task file parser for chainrun.

Extracts the prompt block from a task file and cuts it into sections.

Task file layout:

    # 03 - Matching

    ## Prompt to Claude:
    "Build the matching flow.

    %^Prompt1^% Create the match service with like/pass endpoints ...
    %^Prompt2^% Add the match modal and wire it into the swipe screen ...
    "

    ## Expected Output:
    ...

    ## Next Steps After Completion:
    ...

    ## Notes:
    ...

Section markers use the %^PromptN^% form so they can't be confused with
numbered lists, bullets or version strings inside ordinary prose.
"""

import logging
import re
from typing import Optional

from chainrun.lib.errors import MalformedTask
from chainrun.tasks.models import Section

logger = logging.getLogger(__name__)

SECTION_MARKER_RE = re.compile(r'^%\^Prompt\d+\^%')

# A marked section needs at least this much text besides its marker
MIN_SECTION_CONTENT_CHARS = 10

# Any level-2 heading ends the current block; ### subheadings stay inside it
NEXT_HEADING_RE = re.compile(r'^##(?!#)', re.MULTILINE)

PROMPT_HEADING = "Prompt"
EXPECTED_OUTPUT_HEADING = "Expected Output"
NEXT_STEPS_HEADING = "Next Steps"
NOTES_HEADING = "Notes"

QUOTE_PAIRS = [
    ('"', '"'),
    ("'", "'"),
    ("“", "”"),
]


def _heading_re(name: str) -> re.Pattern:
    return re.compile(
        rf'^##[ \t]+{re.escape(name)}\b[^\n:]*(?::|$)',
        re.MULTILINE | re.IGNORECASE,
    )


def extract_block(text: str, heading: str) -> Optional[str]:
    """Return the trimmed body under a level-2 heading, or None if absent.

    The body runs from the end of the heading to the next level-2 heading
    or end of text.
    """
    match = _heading_re(heading).search(text)
    if not match:
        return None

    rest = text[match.end():]
    next_heading = NEXT_HEADING_RE.search(rest)
    body = rest[:next_heading.start()] if next_heading else rest
    return body.strip()


def strip_quotes(block: str) -> str:
    """Remove one layer of enclosing quotation marks, then trim."""
    block = block.strip()
    for open_q, close_q in QUOTE_PAIRS:
        if len(block) >= 2 and block.startswith(open_q) and block.endswith(close_q):
            return block[1:-1].strip()
    return block


def extract_instruction(text: str) -> str:
    """Extract the prompt block from a task file.

    Raises:
        MalformedTask: if there is no prompt heading or the block is empty
    """
    block = extract_block(text, PROMPT_HEADING)
    if block is None:
        raise MalformedTask("No '## Prompt' heading found")

    instruction = strip_quotes(block)
    if not instruction:
        raise MalformedTask("Prompt block is empty")
    return instruction


def _section_content(section_text: str) -> str:
    """Text of a section without its leading marker."""
    return SECTION_MARKER_RE.sub("", section_text, count=1).strip()


def split_sections(instruction: str) -> list[Section]:
    """Split a prompt block into marked sections, in source order.

    A marker line starts a section and is kept as its first line. Lines
    before the first marker are discarded. Sections with almost no content
    are dropped as accidental matches. With no usable marker the whole
    block becomes the only section.
    """
    texts: list[str] = []
    current: list[str] | None = None
    markers_seen = 0

    def flush(lines: list[str]) -> None:
        section_text = "\n".join(lines).strip()
        if len(_section_content(section_text)) >= MIN_SECTION_CONTENT_CHARS:
            texts.append(section_text)
        else:
            logger.debug(f"Dropping near-empty section: {section_text[:40]!r}")

    for line in instruction.splitlines():
        if SECTION_MARKER_RE.match(line):
            markers_seen += 1
            if current is not None:
                flush(current)
            current = [line]
        elif current is not None:
            current.append(line)

    if current is not None:
        flush(current)

    if not texts:
        if markers_seen:
            logger.warning(
                f"All {markers_seen} section markers were empty, using entire prompt as one section"
            )
        else:
            logger.warning("No section markers found, using entire prompt as one section")
        logger.debug(f"Prompt preview: {instruction[:200]}...")
        return [Section(index=1, text=instruction.strip())]

    logger.info(f"Parsed {len(texts)} sections")
    return [Section(index=i, text=t) for i, t in enumerate(texts, 1)]
