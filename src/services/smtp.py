"""
SMTP mail transport.

Builds a plain-text MIME message and hands it to an SMTP relay.
"""

import logging
import os
import smtplib
from email import policy
from email.message import EmailMessage
from typing import Optional

from .transport import ConfigurationError, TransportFailure

logger = logging.getLogger(__name__)


def _read_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _read_port() -> int:
    raw = os.environ.get('SMTP_PORT', '587')
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"SMTP_PORT must be an integer, got: '{raw}'")


SMTP_HOST = os.environ.get('SMTP_HOST', 'localhost')
SMTP_PORT = _read_port()
SMTP_USERNAME = os.environ.get('SMTP_USERNAME')
SMTP_PASSWORD = os.environ.get('SMTP_PASSWORD')
SMTP_SSL = _read_bool('SMTP_SSL', False)
SMTP_STARTTLS = _read_bool('SMTP_STARTTLS', not SMTP_SSL)
SMTP_TIMEOUT = float(os.environ.get('SMTP_TIMEOUT', '10'))


def build_message(recipient: str, sender: str, subject: str, body: str) -> EmailMessage:
    """
    Build a plain-text email message.

    Example:
        >>> msg = build_message("to@example.com", "from@example.com", "Hi", "Hello")
        >>> msg['Subject']
        'Hi'
    """
    msg = EmailMessage(policy=policy.default)
    msg['From'] = sender
    msg['To'] = recipient
    msg['Subject'] = subject
    msg.set_content(body)
    return msg


def _connect() -> smtplib.SMTP:
    if SMTP_SSL:
        return smtplib.SMTP_SSL(SMTP_HOST, SMTP_PORT, timeout=SMTP_TIMEOUT)
    return smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=SMTP_TIMEOUT)


def send_email(recipient: str, sender: str, subject: str, body: str) -> Optional[str]:
    """
    Send a plain-text email through the configured SMTP relay.

    Args:
        recipient: Destination address
        sender: Envelope and header sender
        subject: Subject line
        body: Plain-text body

    Returns:
        None (SMTP does not return a provider message id)

    Raises:
        TransportFailure: If the relay is unreachable or rejects the message
    """
    msg = build_message(recipient, sender, subject, body)

    try:
        with _connect() as server:
            if SMTP_STARTTLS and not SMTP_SSL:
                server.starttls()
            if SMTP_USERNAME:
                server.login(SMTP_USERNAME, SMTP_PASSWORD or '')
            refused = server.send_message(msg)
    except smtplib.SMTPException as e:
        logger.error(f"SMTP send failed: host={SMTP_HOST}:{SMTP_PORT}, error={e}")
        raise TransportFailure(str(e)) from e
    except OSError as e:
        logger.error(f"SMTP relay unreachable: host={SMTP_HOST}:{SMTP_PORT}, error={e}")
        raise TransportFailure(e.strerror or str(e)) from e

    if refused:
        raise TransportFailure(f"Recipient refused: {', '.join(refused)}")

    logger.info(f"SMTP relay accepted message: host={SMTP_HOST}:{SMTP_PORT}, to={recipient}")
    return None
