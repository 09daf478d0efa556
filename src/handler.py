"""
AWS Lambda handler invoking tools from the capability table.

Thin orchestration layer: the tool name and arguments come from the event,
the tool's ActionResult comes back as a tool-response envelope.
"""

import json
import logging
import os
from typing import Any, Dict

from domain.email_sender import EmailSender
from domain.models import Failure
from integrations import tools
from services.transport import select_transport

# Configure logging
logger = logging.getLogger()
logger.setLevel(os.environ.get('LOG_LEVEL', 'INFO').upper())

# Environment variables
ENVIRONMENT = os.environ.get('ENVIRONMENT', 'dev')
MAIL_TRANSPORT = os.environ.get('MAIL_TRANSPORT', 'ses')

# Initialize once at module level (reused across invocations).
# Spans go to the global tracer provider (Lambda OTel layer, when present).
email_sender = EmailSender(select_transport(MAIL_TRANSPORT))
tool_table = tools.build_tool_table(email_sender)


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps(body)
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Invoke a tool by name.

    Expected event format:
    {
        "tool": "sendEmail",
        "arguments": {"to": "...", "sender": "...", "subject": "...", "body": "..."}
    }

    Returns:
        200 with the success envelope, 400 for unknown tools or bad arguments,
        502 when the action itself failed.
    """
    logger.info(f"Environment: {ENVIRONMENT}")

    name = event.get('tool')
    arguments = event.get('arguments') or {}

    if not name:
        return _response(400, tools.to_tool_response(Failure('tool is required')))
    if not isinstance(arguments, dict):
        return _response(400, tools.to_tool_response(Failure('arguments must be an object')))
    try:
        spec = tools.get_tool(tool_table, name)
    except tools.UnknownToolError as e:
        logger.warning(str(e))
        return _response(400, tools.to_tool_response(Failure(str(e))))

    problem = tools.validate_arguments(spec, arguments)
    if problem:
        logger.warning(problem)
        return _response(400, tools.to_tool_response(Failure(problem)))

    result = spec.handler(**arguments)
    if not result.is_success:
        logger.warning(f"Tool {name} returned error: {result.message}")
        return _response(502, tools.to_tool_response(result))

    logger.info(f"Tool {name} succeeded")
    return _response(200, tools.to_tool_response(result))


def health_check(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Simple health check endpoint for monitoring.
    """
    return _response(200, {
        'status': 'healthy',
        'environment': ENVIRONMENT,
        'transport': MAIL_TRANSPORT,
        'tools': sorted(tool_table)
    })
