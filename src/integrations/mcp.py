"""
FastMCP registration of the capability table.

Each ToolSpec becomes one MCP tool. FastMCP builds the input schema from the
function signature, so every tool function is given an explicit keyword-only
signature with parameter descriptions taken from the spec.
"""

import inspect
import logging
from typing import Annotated, Callable, Mapping

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

from .tools import ToolSpec

logger = logging.getLogger(__name__)

DEFAULT_SERVER_NAME = "email-tool-server"


def as_mcp_tool(spec: ToolSpec) -> Callable[..., str]:
    """
    Wrap a ToolSpec handler as an MCP tool function.

    Success returns the message as text content; Failure raises ToolError,
    which FastMCP reports as an error result carrying the message.
    """
    def tool(**arguments) -> str:
        result = spec.handler(**arguments)
        if not result.is_success:
            raise ToolError(result.message)
        return result.message

    annotations = {
        param: Annotated[str, Field(description=description)]
        for param, description in spec.parameters.items()
    }
    tool.__name__ = spec.name
    tool.__qualname__ = spec.name
    tool.__doc__ = spec.description
    tool.__annotations__ = {**annotations, 'return': str}
    tool.__signature__ = inspect.Signature(
        [
            inspect.Parameter(param, inspect.Parameter.KEYWORD_ONLY, annotation=annotation)
            for param, annotation in annotations.items()
        ],
        return_annotation=str,
    )
    return tool


def build_mcp_server(table: Mapping[str, ToolSpec], name: str = DEFAULT_SERVER_NAME) -> FastMCP:
    """
    Create a FastMCP server exposing every tool in the table.

    Args:
        table: Capability table from build_tool_table()
        name: Server identity reported to MCP clients

    Returns:
        FastMCP: Server ready to run()
    """
    mcp = FastMCP(name)
    for spec in table.values():
        mcp.tool(name=spec.name, description=spec.description)(as_mcp_tool(spec))
        logger.info(f"Registered MCP tool: {spec.name}")
    return mcp
