"""
Pytest configuration and fixtures for all tests.
"""

import os
import sys
import pytest

# Add src to Python path before any imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

# Set up test environment variables before importing any modules
os.environ.setdefault('ENVIRONMENT', 'test')
os.environ.setdefault('LOG_LEVEL', 'INFO')
os.environ.setdefault('MAIL_TRANSPORT', 'log')
os.environ.setdefault('AWS_DEFAULT_REGION', 'us-west-2')
os.environ.setdefault('OTEL_TRACES_EXPORTER', 'none')

from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter


@pytest.fixture
def span_exporter():
    """In-memory exporter collecting every finished span."""
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(span_exporter):
    """Tracer provider exporting synchronously to the in-memory exporter."""
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    yield provider
    provider.shutdown()


@pytest.fixture
def tracer(tracer_provider):
    """Tracer bound to the test provider (the global provider is untouched)."""
    return tracer_provider.get_tracer("tests")


@pytest.fixture
def email_args():
    """Arguments of the reference email used across tests."""
    return {
        'to': 'a@x.com',
        'sender': 'b@x.com',
        'subject': 'Hi',
        'body': 'Hello',
    }
