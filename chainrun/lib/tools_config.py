"""
External tool configuration.

Loads tools.yaml to decide which CLI command receives each section prompt.
If no config file exists, returns defaults that drive the Claude CLI.

Example tools.yaml:

    tool:
      command: claude --dangerously-skip-permissions
      unset_env: [ANTHROPIC_API_KEY]
      closing_directive: |
        INSTRUCTIONS:
        - Focus on implementing this specific section
        Please implement this section now.

The prompt itself is never part of the command template. The invocation
strategy decides whether it travels as a trailing argument or via stdin.
"""

import logging
import shlex
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

TOOLS_FILENAME = "tools.yaml"

DEFAULT_COMMAND = "claude --dangerously-skip-permissions"

DEFAULT_CLOSING_DIRECTIVE = """INSTRUCTIONS:
- Focus on implementing this specific section ({index}/{total})
- Keep in mind how it fits into the overall task above
- Do not redo work that earlier sections already completed

Please implement this section now."""


@dataclass
class ToolConfig:
    """External tool configuration from tools.yaml."""
    command: str = DEFAULT_COMMAND
    closing_directive: str = DEFAULT_CLOSING_DIRECTIVE
    unset_env: list[str] = field(default_factory=list)

    @property
    def argv(self) -> list[str]:
        """Command split into an argument list for subprocess."""
        return shlex.split(self.command)

    @property
    def binary(self) -> str:
        parts = self.argv
        return parts[0] if parts else ""


def load_tool_config(config_dir: Optional[Path]) -> ToolConfig:
    """Load tools.yaml and return ToolConfig.

    If config_dir is None, the file doesn't exist, or it can't be parsed,
    returns defaults.
    """
    if config_dir is None:
        return ToolConfig()

    config_path = config_dir / TOOLS_FILENAME
    if not config_path.exists():
        return ToolConfig()

    try:
        data = yaml.safe_load(config_path.read_text()) or {}
        tool = data.get("tool") or {}
        if not isinstance(tool, dict):
            raise TypeError("'tool' must be a mapping")
        return ToolConfig(
            command=tool.get("command", DEFAULT_COMMAND),
            closing_directive=tool.get("closing_directive", DEFAULT_CLOSING_DIRECTIVE),
            unset_env=list(tool.get("unset_env") or []),
        )
    except (yaml.YAMLError, TypeError, AttributeError) as e:
        logger.warning(f"Failed to parse {config_path}: {e}")
        return ToolConfig()


def check_binary_available(binary: str) -> bool:
    """Check if a binary is available in PATH."""
    return bool(binary) and shutil.which(binary) is not None
