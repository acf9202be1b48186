"""Tests for chainrun.tasks.sections module."""

import logging

import pytest

from chainrun.lib.errors import MalformedTask
from chainrun.tasks.sections import (
    extract_block,
    extract_instruction,
    split_sections,
    strip_quotes,
)


TASK_FILE = '''# 03 - Matching

## Prompt to Claude:
"Build the matching flow for the app.

%^Prompt1^% Create the match service with like and pass endpoints.
Include tests for both.
%^Prompt2^% Add the match modal and wire it into the swipe screen.
"

## Expected Output:
- Match service
- Match modal

## Next Steps After Completion:
Move on to messaging.

## Notes:
### Caveats
Keep the API backwards compatible.
'''


class TestExtractBlock:
    """Test extract_block function."""

    def test_extracts_until_next_heading(self):
        assert extract_block(TASK_FILE, "Expected Output") == "- Match service\n- Match modal"

    def test_heading_match_is_case_insensitive(self):
        assert extract_block(TASK_FILE, "next steps") == "Move on to messaging."

    def test_level3_heading_stays_inside_block(self):
        notes = extract_block(TASK_FILE, "Notes")
        assert notes.startswith("### Caveats")
        assert "backwards compatible" in notes

    def test_returns_none_when_missing(self):
        assert extract_block("# Title\n\nNo blocks here.\n", "Notes") is None


class TestStripQuotes:
    """Test strip_quotes function."""

    def test_strips_double_quotes(self):
        assert strip_quotes('"hello world"') == "hello world"

    def test_strips_single_quotes(self):
        assert strip_quotes("'hello'") == "hello"

    def test_strips_curly_quotes(self):
        assert strip_quotes("“hello”") == "hello"

    def test_leaves_unbalanced_quotes(self):
        assert strip_quotes('"hello') == '"hello'

    def test_strips_only_one_layer(self):
        assert strip_quotes('""inner""') == '"inner"'


class TestExtractInstruction:
    """Test extract_instruction function."""

    def test_extracts_prompt_without_quotes(self):
        instruction = extract_instruction(TASK_FILE)
        assert instruction.startswith("Build the matching flow")
        assert instruction.endswith("swipe screen.")
        assert "Expected Output" not in instruction

    def test_plain_prompt_heading(self):
        text = "## Prompt\nDo the thing properly.\n"
        assert extract_instruction(text) == "Do the thing properly."

    def test_missing_heading_raises(self):
        with pytest.raises(MalformedTask) as exc:
            extract_instruction("# Title\n\n## Notes:\nNothing\n")
        assert "No '## Prompt' heading" in exc.value.message

    def test_empty_block_raises(self):
        with pytest.raises(MalformedTask) as exc:
            extract_instruction('## Prompt to Claude:\n""\n\n## Notes:\nx\n')
        assert "empty" in exc.value.message


class TestSplitSections:
    """Test split_sections function."""

    def test_splits_on_markers_in_order(self):
        sections = split_sections(extract_instruction(TASK_FILE))
        assert [s.index for s in sections] == [1, 2]
        assert sections[0].text.startswith("%^Prompt1^% Create the match service")
        assert "Include tests for both." in sections[0].text
        assert sections[1].text.startswith("%^Prompt2^% Add the match modal")

    def test_text_before_first_marker_is_discarded(self):
        sections = split_sections(extract_instruction(TASK_FILE))
        assert all("Build the matching flow" not in s.text for s in sections)

    def test_no_markers_returns_whole_prompt(self, caplog):
        caplog.set_level(logging.WARNING)
        sections = split_sections("  Just do everything in one go.  ")
        assert len(sections) == 1
        assert sections[0].index == 1
        assert sections[0].text == "Just do everything in one go."
        assert "No section markers found" in caplog.text

    def test_near_empty_sections_are_dropped(self):
        instruction = (
            "%^Prompt1^% tiny\n"
            "%^Prompt2^% This section has plenty of real content.\n"
        )
        sections = split_sections(instruction)
        assert len(sections) == 1
        assert sections[0].index == 1
        assert "plenty of real content" in sections[0].text

    def test_all_markers_empty_falls_back_to_whole_prompt(self, caplog):
        caplog.set_level(logging.WARNING)
        instruction = "Intro text here.\n%^Prompt1^%\n%^Prompt2^% x\n"
        sections = split_sections(instruction)
        assert len(sections) == 1
        assert sections[0].text == instruction.strip()
        assert "section markers were empty" in caplog.text

    def test_marker_must_start_line(self):
        instruction = "See %^Prompt1^% inline, which is not a marker at all."
        sections = split_sections(instruction)
        assert len(sections) == 1
        assert sections[0].text == instruction

    def test_numbered_list_is_not_a_marker(self):
        instruction = "1. First step of the plan\n2. Second step of the plan\n"
        sections = split_sections(instruction)
        assert len(sections) == 1
