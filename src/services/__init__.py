"""
Collaborator services for the traced actions.

This package contains mail transports (SES, SMTP) and the OpenTelemetry
tracing setup.
"""

__all__ = ['transport', 'ses', 'smtp', 'tracing']
