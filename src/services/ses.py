"""
Amazon SES mail transport.

This module sends plain-text email through Amazon Simple Email Service.
"""

import logging
import os
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .transport import TransportFailure

logger = logging.getLogger(__name__)

# Configure SES client with timeouts to prevent infinite hangs
ses_config = Config(
    retries={
        'max_attempts': 1,  # 1 attempt total (no retries)
        'mode': 'standard'
    },
    connect_timeout=10,  # 10 seconds to establish connection
    read_timeout=30      # 30 seconds max for reading response
)

region = os.environ.get('AWS_REGION', os.environ.get('AWS_DEFAULT_REGION', 'us-west-2'))
configuration_set = os.environ.get('SES_CONFIGURATION_SET')

# Initialize SES client at module level (thread-safe, reused across invocations)
ses_client = boto3.client('ses', region_name=region, config=ses_config)
logger.info(f"SES client initialized: region={region}, connect=10s, read=30s, max_attempts=1")


def send_email(recipient: str, sender: str, subject: str, body: str) -> Optional[str]:
    """
    Send a plain-text email with SES.

    Args:
        recipient: Destination address
        sender: Source address (must be a verified SES identity)
        subject: Subject line
        body: Plain-text body

    Returns:
        str: SES message id

    Raises:
        TransportFailure: If SES rejects the message or cannot be reached

    Example:
        >>> message_id = send_email(
        ...     recipient="user@example.com",
        ...     sender="noreply@example.com",
        ...     subject="Hello",
        ...     body="Hi there"
        ... )
    """
    request = {
        'Source': sender,
        'Destination': {'ToAddresses': [recipient]},
        'Message': {
            'Subject': {'Data': subject, 'Charset': 'UTF-8'},
            'Body': {'Text': {'Data': body, 'Charset': 'UTF-8'}},
        },
    }
    if configuration_set:
        request['ConfigurationSetName'] = configuration_set

    try:
        response = ses_client.send_email(**request)
    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', 'Unknown')
        error_message = e.response.get('Error', {}).get('Message', str(e))
        logger.error(
            f"SES send_email failed: error_code={error_code}, "
            f"error_message={error_message}, to={recipient}"
        )
        raise TransportFailure(error_message) from e
    except BotoCoreError as e:
        logger.error(f"SES unreachable: {e}")
        raise TransportFailure(str(e)) from e

    message_id = response.get('MessageId')
    logger.info(f"SES accepted message: message_id={message_id}, to={recipient}")
    return message_id
