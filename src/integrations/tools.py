"""
Tool capability table.

Maps tool names to handlers and translates ActionResult values into the
tool-response envelope used by protocol layers:

    Success(message) -> {"isError": False, "content": [{"type": "text", "text": message}]}
    Failure(message) -> {"isError": True,  "content": [{"type": "text", "text": message}]}

Usage:
    from integrations import tools

    table = tools.build_tool_table(email_sender)
    envelope = tools.invoke_tool(table, "sendEmail", {"to": ..., ...})
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

from domain.email_sender import EmailSender
from domain.models import ActionResult, Failure

logger = logging.getLogger(__name__)


class UnknownToolError(Exception):
    """Raised when a tool name is not present in the capability table."""
    pass


@dataclass(frozen=True)
class ToolSpec:
    """
    A tool exposed to protocol layers.

    Attributes:
        name: Tool name as seen by callers
        description: Human-readable description (read by LLM clients)
        handler: Callable taking keyword arguments, returning ActionResult
        parameters: Parameter name -> description
    """
    name: str
    description: str
    handler: Callable[..., ActionResult]
    parameters: Mapping[str, str] = field(default_factory=dict)


EMAIL_PARAMETERS = {
    'to': 'Recipient email address',
    'sender': 'Sender email address',
    'subject': 'Email subject line',
    'body': 'Email body content',
}


def build_tool_table(email_sender: EmailSender) -> Dict[str, ToolSpec]:
    """
    Build the capability table once at startup.

    Args:
        email_sender: Configured EmailSender

    Returns:
        Dict of tool name -> ToolSpec
    """
    specs = [
        ToolSpec(
            name='sendEmail',
            description='Sends an email',
            handler=email_sender.send,
            parameters=EMAIL_PARAMETERS,
        ),
    ]
    return {spec.name: spec for spec in specs}


def to_tool_response(result: ActionResult) -> Dict[str, Any]:
    """Translate an ActionResult into a tool-response envelope."""
    return {
        'isError': not result.is_success,
        'content': [{'type': 'text', 'text': result.message}],
    }


def get_tool(table: Mapping[str, ToolSpec], name: str) -> ToolSpec:
    """
    Look up a tool by name.

    Raises:
        UnknownToolError: If the tool is not registered
    """
    try:
        return table[name]
    except KeyError:
        raise UnknownToolError(f"Unknown tool: {name}. Available: {sorted(table)}")


def validate_arguments(spec: ToolSpec, arguments: Mapping[str, Any]) -> Optional[str]:
    """
    Check arguments against the tool's declared parameters.

    Every declared parameter is a required string.

    Returns:
        Problem description, or None when the arguments are usable
    """
    if not isinstance(arguments, Mapping):
        return f"Invalid arguments for {spec.name}: arguments must be an object"

    missing = [p for p in spec.parameters if p not in arguments]
    unexpected = [a for a in arguments if a not in spec.parameters]
    not_text = [
        p for p in spec.parameters
        if p in arguments and not isinstance(arguments[p], str)
    ]
    if not missing and not unexpected and not not_text:
        return None

    problems = []
    if missing:
        problems.append(f"missing {', '.join(missing)}")
    if unexpected:
        problems.append(f"unexpected {', '.join(unexpected)}")
    if not_text:
        problems.append(f"expected string for {', '.join(not_text)}")
    return f"Invalid arguments for {spec.name}: {'; '.join(problems)}"


def invoke_tool(
    table: Mapping[str, ToolSpec],
    name: str,
    arguments: Mapping[str, Any],
) -> Dict[str, Any]:
    """
    Invoke a tool and return its envelope.

    Unknown tools and unexpected or missing arguments become error
    envelopes; nothing is raised to the protocol layer.

    Args:
        table: Capability table from build_tool_table()
        name: Tool name
        arguments: Keyword arguments for the handler

    Returns:
        Tool-response envelope dict
    """
    try:
        spec = get_tool(table, name)
    except UnknownToolError as e:
        logger.warning(str(e))
        return to_tool_response(Failure(str(e)))

    problem = validate_arguments(spec, arguments)
    if problem:
        logger.warning(problem)
        return to_tool_response(Failure(problem))

    logger.info(f"Invoking tool {name}")
    return to_tool_response(spec.handler(**arguments))
