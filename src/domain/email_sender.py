"""
Email sending action - the traced operation exposed as the sendEmail tool.

This module wires a mail transport into the traced action executor:
1. Build EmailRequest from tool arguments
2. Start the sendEmail span (to/from/subject, body length only)
3. Hand the message to the transport
4. Return Success or Failure (never raises)
"""

import logging
from typing import Optional

from .models import ActionOutcome, ActionResult, Completed, EmailRequest, Failed
from .traced_action import TracedActionExecutor
from services.transport import Transport, TransportFailure

logger = logging.getLogger(__name__)

SPAN_NAME = "sendEmail"
SUCCESS_MESSAGE = "Email successfully sent"
FAILURE_PREFIX = "Failed to send email"
SUCCESS_EVENT = "Email sent successfully"


class EmailSender:
    """
    Sends email through a transport under a trace span.

    Transport and executor are supplied by the composition root and shared
    across calls; the sender itself keeps no per-call state.
    """

    def __init__(self, transport: Transport, executor: Optional[TracedActionExecutor] = None):
        """
        Initialize email sender.

        Args:
            transport: Callable send(recipient, sender, subject, body)
            executor: Traced executor (defaults to one using the global tracer)
        """
        self._transport = transport
        self._executor = executor or TracedActionExecutor()

    def send(self, to: str, sender: str, subject: str, body: str) -> ActionResult:
        """
        Send an email.

        Args:
            to: Recipient email address
            sender: Sender email address
            subject: Email subject line
            body: Email body content

        Returns:
            Success("Email successfully sent") or
            Failure("Failed to send email: <reason>")
        """
        return self.send_request(EmailRequest(to=to, sender=sender, subject=subject, body=body))

    def send_request(self, request: EmailRequest) -> ActionResult:
        """Send a pre-built EmailRequest."""
        return self._executor.execute(
            request,
            self._dispatch,
            name=SPAN_NAME,
            success_message=SUCCESS_MESSAGE,
            failure_prefix=FAILURE_PREFIX,
            success_event=SUCCESS_EVENT,
        )

    def _dispatch(self, request: EmailRequest) -> ActionOutcome:
        logger.info(f"Dispatching email: to={request.to}, subject={request.subject}")
        try:
            message_id = self._transport(request.to, request.sender, request.subject, request.body)
        except TransportFailure as e:
            return Failed(e)

        if message_id:
            return Completed(attributes={'email.message_id': message_id})
        return Completed()
