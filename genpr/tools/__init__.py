"""External tools driven by a gen-pr run: coding assistants and git."""

from .coding_tools import TOOL_REGISTRY, CodingToolRunner, ToolConfig, get_tool_name

__all__ = ["CodingToolRunner", "TOOL_REGISTRY", "ToolConfig", "get_tool_name"]
