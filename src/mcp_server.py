"""
MCP server exposing the sendEmail tool.

Composition root: configures logging and tracing, selects the mail
transport, builds the capability table and runs FastMCP.

Running:
    python src/mcp_server.py                      # stdio (default)
    MCP_TRANSPORT=sse python src/mcp_server.py    # SSE on MCP_HOST:MCP_PORT
    MCP_TRANSPORT=http python src/mcp_server.py   # streamable HTTP on MCP_HOST:MCP_PORT
"""

import logging
import os
import sys

from opentelemetry import trace

from domain.email_sender import EmailSender
from domain.traced_action import TracedActionExecutor
from integrations.mcp import build_mcp_server
from integrations.tools import build_tool_table
from services.tracing import configure_tracing
from services.transport import ConfigurationError, select_transport

logger = logging.getLogger()

# MCP_TRANSPORT value -> FastMCP run() transport name
RUN_TRANSPORTS = {
    'sse': 'sse',
    'http': 'streamable-http',
}


def configure_logging() -> None:
    """Log to STDERR; STDOUT carries the MCP stdio transport."""
    logger.setLevel(os.environ.get('LOG_LEVEL', 'INFO').upper())
    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stderr)
        formatter = logging.Formatter('%(asctime)s %(levelname)s %(name)s - %(message)s')
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)


def create_server():
    """Build the FastMCP server with all collaborators wired in."""
    provider = configure_tracing()
    executor = TracedActionExecutor(tracer=trace.get_tracer(__name__, tracer_provider=provider))
    email_sender = EmailSender(select_transport(), executor)
    return build_mcp_server(build_tool_table(email_sender))


def main() -> None:
    configure_logging()

    transport = os.environ.get('MCP_TRANSPORT', 'stdio').strip().lower()
    if transport != 'stdio' and transport not in RUN_TRANSPORTS:
        raise ConfigurationError(
            f"MCP_TRANSPORT has invalid value '{transport}'. Expected one of: stdio, sse, http"
        )

    mcp = create_server()
    logger.info(f"Starting MCP server: transport={transport}")

    if transport == 'stdio':
        mcp.run()
    else:
        mcp.run(
            transport=RUN_TRANSPORTS[transport],
            host=os.environ.get('MCP_HOST', '0.0.0.0'),
            port=int(os.environ.get('MCP_PORT', '8080')),
        )


if __name__ == "__main__":
    main()
