"""Generate pull requests from GitHub issues with an LLM planner and an AI coding tool."""

__version__ = "0.1.0"
