"""
Mail transport port and selection.

A transport is any callable with the signature
``send(recipient, sender, subject, body) -> Optional[str]`` that returns a
provider message id (or None) and raises TransportFailure when the message
could not be handed off.
"""

import logging
import os
from typing import Callable, Optional

logger = logging.getLogger(__name__)

Transport = Callable[[str, str, str, str], Optional[str]]


# ============================================================================
# Custom Exception Classes
# ============================================================================

class TransportFailure(Exception):
    """Raised when a transport cannot deliver a message to its provider."""
    pass


class ConfigurationError(Exception):
    """Raised when transport configuration is invalid or missing."""
    pass


# ============================================================================
# Transports
# ============================================================================

def log_only(recipient: str, sender: str, subject: str, body: str) -> Optional[str]:
    """
    Log the message instead of sending it.

    Used for local runs where no mail provider is reachable.
    """
    logger.info(
        f"[log transport] to={recipient}, from={sender}, subject={subject}, "
        f"body_length={len(body)}"
    )
    return None


def select_transport(name: Optional[str] = None) -> Transport:
    """
    Resolve the transport to use.

    Provider modules are imported lazily so that only the selected one
    creates its client.

    Args:
        name: "ses", "smtp" or "log" (defaults to MAIL_TRANSPORT, then "ses")

    Returns:
        Transport callable

    Raises:
        ConfigurationError: If the name is not a known transport
    """
    name = (name or os.environ.get('MAIL_TRANSPORT', 'ses')).strip().lower()

    if name == 'ses':
        from . import ses
        return ses.send_email
    if name == 'smtp':
        from . import smtp
        return smtp.send_email
    if name == 'log':
        return log_only

    raise ConfigurationError(
        f"MAIL_TRANSPORT has invalid value '{name}'. "
        f"Expected one of: ses, smtp, log"
    )
