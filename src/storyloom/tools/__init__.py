"""Model-facing tool catalogue and the parser that turns tool calls into intents."""

from .catalogue import TOOL_DEFINITIONS, TOOL_NAMES, build_tool_definitions, update_argument_name
from .parser import parse_tool_call

__all__ = [
    "TOOL_DEFINITIONS",
    "TOOL_NAMES",
    "build_tool_definitions",
    "update_argument_name",
    "parse_tool_call",
]
