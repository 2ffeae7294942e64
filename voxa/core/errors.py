"""
Error taxonomy for the command pipeline.

Parsing errors (AdapterError, ValidationError) are absorbed and degrade to the
fallback chain. Execution errors (SelectorResolutionError, UnknownToolError,
ExecutionError) are isolated per call and reported as failed ExecutionResults.
Nothing here is fatal to the host process.
"""
from typing import Any, Dict


class VoxaError(Exception):
    """Base class for pipeline errors"""

    error_type = "error"

    def to_error_dict(self) -> Dict[str, Any]:
        """Tool-style error dict: {"type": ..., "message": ...}"""
        return {"type": self.error_type, "message": str(self)}


class AdapterError(VoxaError):
    """Transport failure or malformed response from the language-model adapter"""

    error_type = "adapter_error"


class ValidationError(VoxaError):
    """A candidate tool call failed schema checks"""

    error_type = "invalid_args"


class SelectorResolutionError(VoxaError):
    """A semantic selector (newest/oldest/active/all) matched no entity"""

    error_type = "no_target"


class UnknownToolError(VoxaError):
    """Tool name is not in the tool registry"""

    error_type = "tool_not_found"

    def __init__(self, tool_name: str):
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name


class ExecutionError(VoxaError):
    """A tool's side-effecting dispatch failed"""

    error_type = "execution_error"
