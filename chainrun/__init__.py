"""chainrun - sequential task-chain runner for CLI agents."""

__version__ = "0.1.0"
