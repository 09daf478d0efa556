"""
Tests for the traced action executor and span lifecycle.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

from opentelemetry import trace
from opentelemetry.trace import SpanKind, StatusCode

from domain.models import Completed, EmailRequest, ExecutionState, Failed, Failure, Success
from domain.traced_action import TracedActionExecutor, TracedExecution
from services.transport import TransportFailure


@pytest.fixture
def executor(tracer):
    return TracedActionExecutor(tracer=tracer)


@pytest.fixture
def request_value():
    return EmailRequest(to="a@x.com", sender="b@x.com", subject="Hi", body="Hello")


def _exception_events(span):
    return [e for e in span.events if e.name == "exception"]


class TestExecuteSuccess:
    """Test the success path."""

    def test_success_returns_success_and_ok_status(self, executor, request_value, span_exporter):
        """Scenario A: action returns normally."""
        result = executor.execute(
            request_value,
            lambda r: None,
            name="sendEmail",
            success_message="Email successfully sent",
            failure_prefix="Failed to send email",
        )

        assert result == Success("Email successfully sent")
        spans = span_exporter.get_finished_spans()
        assert len(spans) == 1
        span = spans[0]
        assert span.name == "sendEmail"
        assert span.status.status_code == StatusCode.OK
        assert span.attributes['email.to'] == "a@x.com"
        assert span.attributes['email.from'] == "b@x.com"
        assert span.attributes['email.subject'] == "Hi"
        assert span.attributes['email.body.length'] == 5
        assert 'email.body' not in span.attributes
        assert [e.name for e in span.events] == ["Email successfully sent"]

    def test_success_event_named_separately(self, executor, request_value, span_exporter):
        """Test the span event can differ from the returned message."""
        result = executor.execute(
            request_value,
            lambda r: None,
            success_message="Email successfully sent",
            success_event="Email sent successfully",
        )

        assert result == Success("Email successfully sent")
        span = span_exporter.get_finished_spans()[0]
        assert [e.name for e in span.events] == ["Email sent successfully"]

    def test_action_called_once_with_request(self, executor, request_value):
        """Test action receives the request exactly once."""
        calls = []

        executor.execute(request_value, calls.append)

        assert calls == [request_value]

    def test_completed_outcome_attributes_recorded(self, executor, request_value, span_exporter):
        """Test Completed attributes land on the span."""
        result = executor.execute(
            request_value,
            lambda r: Completed(attributes={'email.message_id': 'msg-1'}),
        )

        assert result.is_success
        span = span_exporter.get_finished_spans()[0]
        assert span.attributes['email.message_id'] == 'msg-1'

    def test_span_named_after_action(self, executor, request_value, span_exporter):
        """Test default span name is the action's function name."""
        def deliver(request):
            return None

        executor.execute(request_value, deliver)

        assert span_exporter.get_finished_spans()[0].name == "deliver"

    def test_span_is_current_during_action(self, executor, request_value):
        """Test the action runs with the executor's span as current span."""
        seen = {}

        def action(request):
            seen['span'] = trace.get_current_span()

        executor.execute(request_value, action, name="sendEmail")

        assert seen['span'].name == "sendEmail"
        assert trace.get_current_span() is not seen['span']


class TestExecuteFailure:
    """Test the failure paths."""

    def test_raised_failure_returns_failure(self, executor, request_value, span_exporter):
        """Scenario B: action raises TransportFailure."""
        def action(request):
            raise TransportFailure("connection refused")

        result = executor.execute(
            request_value,
            action,
            name="sendEmail",
            success_message="Email successfully sent",
            failure_prefix="Failed to send email",
        )

        assert result == Failure("Failed to send email: connection refused")
        span = span_exporter.get_finished_spans()[0]
        assert span.status.status_code == StatusCode.ERROR
        assert span.status.description == "Failed to send email: connection refused"
        events = _exception_events(span)
        assert len(events) == 1
        assert events[0].attributes['exception.type'].endswith("TransportFailure")
        assert events[0].attributes['exception.message'] == "connection refused"

    def test_failed_outcome_returns_failure(self, executor, request_value, span_exporter):
        """Test an action reporting Failed(error) without raising."""
        error = TransportFailure("mailbox unavailable")

        result = executor.execute(request_value, lambda r: Failed(error), failure_prefix="Failed")

        assert result == Failure("Failed: mailbox unavailable")
        span = span_exporter.get_finished_spans()[0]
        assert span.status.status_code == StatusCode.ERROR
        assert len(_exception_events(span)) == 1

    def test_failed_description_without_exception(self, executor, request_value, span_exporter):
        """Test Failed with a string records status but no exception event."""
        result = executor.execute(request_value, lambda r: Failed("quota exceeded"))

        assert isinstance(result, Failure)
        assert "quota exceeded" in result.message
        span = span_exporter.get_finished_spans()[0]
        assert span.status.status_code == StatusCode.ERROR
        assert _exception_events(span) == []

    def test_failure_never_propagates(self, executor, request_value):
        """Test unexpected errors become values too."""
        def action(request):
            raise RuntimeError("boom")

        result = executor.execute(request_value, action)

        assert result.is_success is False
        assert "boom" in result.message

    def test_none_request(self, executor, span_exporter):
        """Test a malformed request still yields a classified result."""
        result = executor.execute(None, lambda r: r.to)

        assert isinstance(result, Failure)
        span = span_exporter.get_finished_spans()[0]
        assert span.status.status_code == StatusCode.ERROR
        assert not any(k.startswith('email.') for k in span.attributes)


class TestEmptyBody:
    """Scenario C: empty body."""

    def test_empty_body_success(self, executor, span_exporter):
        """Test empty body is still dispatched and recorded as length 0."""
        calls = []
        request = EmailRequest(to="a@x.com", sender="b@x.com", subject="Hi", body="")

        result = executor.execute(request, calls.append)

        assert result.is_success
        assert calls == [request]
        assert span_exporter.get_finished_spans()[0].attributes['email.body.length'] == 0

    def test_empty_body_failure(self, executor, span_exporter):
        """Test empty body failure is classified like any other."""
        request = EmailRequest(to="a@x.com", sender="b@x.com", subject="Hi", body="")

        def action(r):
            raise TransportFailure("connection refused")

        result = executor.execute(request, action, failure_prefix="Failed to send email")

        assert result == Failure("Failed to send email: connection refused")
        span = span_exporter.get_finished_spans()[0]
        assert span.attributes['email.body.length'] == 0
        assert span.status.status_code == StatusCode.ERROR


class TestSpanClosure:
    """Test the span is closed exactly once on every exit path."""

    def test_interrupt_closes_span_and_propagates(self, executor, request_value, span_exporter):
        """Test BaseException (e.g. cancellation) still closes the span."""
        def action(request):
            raise KeyboardInterrupt()

        with pytest.raises(KeyboardInterrupt):
            executor.execute(request_value, action, name="sendEmail")

        spans = span_exporter.get_finished_spans()
        assert len(spans) == 1
        assert spans[0].status.status_code == StatusCode.ERROR
        assert "interrupted" in spans[0].status.description
        assert len(_exception_events(spans[0])) == 1
        assert trace.get_current_span() is trace.INVALID_SPAN

    def test_double_close_is_noop(self, tracer, span_exporter):
        """Test closing twice exports a single span."""
        with TracedExecution(tracer, "sendEmail") as execution:
            execution.run(lambda r: None, None)
            execution.succeed("done")

        execution.close()
        execution.close()

        assert execution.state is ExecutionState.CLOSED
        assert len(span_exporter.get_finished_spans()) == 1

    def test_state_transitions(self, tracer):
        """Test CREATED -> RUNNING -> SUCCEEDED -> CLOSED."""
        states = []
        execution = TracedExecution(tracer, "sendEmail")
        states.append(execution.state)

        with execution:
            execution.run(lambda r: states.append(execution.state), None)
            execution.succeed("done")
            states.append(execution.state)
        states.append(execution.state)

        assert states == [
            ExecutionState.CREATED,
            ExecutionState.RUNNING,
            ExecutionState.SUCCEEDED,
            ExecutionState.CLOSED,
        ]

    def test_classification_happens_once(self, tracer, span_exporter):
        """Test a second classification is ignored."""
        with TracedExecution(tracer, "sendEmail") as execution:
            execution.fail(TransportFailure("first"), "first failure")
            execution.succeed("late success")

        assert execution.state is ExecutionState.CLOSED
        span = span_exporter.get_finished_spans()[0]
        assert span.status.status_code == StatusCode.ERROR
        assert span.status.description == "first failure"

    def test_close_without_classification(self, tracer, span_exporter):
        """Test closing an unclassified execution marks it as an error."""
        execution = TracedExecution(tracer, "sendEmail")
        execution.close()

        span = span_exporter.get_finished_spans()[0]
        assert span.status.status_code == StatusCode.ERROR
        assert "closed before completion" in span.status.description


class TestSpanConfiguration:
    """Test span kind and parent linkage."""

    def test_default_kind_internal(self, executor, request_value, span_exporter):
        executor.execute(request_value, lambda r: None)

        assert span_exporter.get_finished_spans()[0].kind == SpanKind.INTERNAL

    def test_configured_kind(self, tracer, request_value, span_exporter):
        executor = TracedActionExecutor(tracer=tracer, span_kind=SpanKind.SERVER)

        executor.execute(request_value, lambda r: None)

        assert span_exporter.get_finished_spans()[0].kind == SpanKind.SERVER

    def test_parent_is_current_span(self, executor, tracer, request_value, span_exporter):
        """Test spans nest under the caller's current span by default."""
        with tracer.start_as_current_span("tools/call") as outer:
            executor.execute(request_value, lambda r: None, name="sendEmail")

        spans = {s.name: s for s in span_exporter.get_finished_spans()}
        assert spans["sendEmail"].parent.span_id == outer.get_span_context().span_id

    def test_explicit_parent(self, tracer, request_value, span_exporter):
        """Test an explicit parent context overrides the current span."""
        with tracer.start_as_current_span("request") as parent_span:
            parent = trace.set_span_in_context(parent_span)
        executor = TracedActionExecutor(tracer=tracer, parent=parent)

        executor.execute(request_value, lambda r: None, name="sendEmail")

        spans = {s.name: s for s in span_exporter.get_finished_spans()}
        assert spans["sendEmail"].parent.span_id == parent_span.get_span_context().span_id


class TestConcurrency:
    """Test concurrent invocations do not interfere."""

    def test_concurrent_invocations_are_independent(self, executor, span_exporter):
        """Test N concurrent calls produce N spans and N matching results."""
        barrier = threading.Barrier(8)

        def action(request):
            barrier.wait(timeout=5)
            if trace.get_current_span().attributes['email.subject'] != request.subject:
                raise AssertionError("span mixed up between invocations")
            if int(request.subject.split('-')[1]) % 2:
                raise TransportFailure(f"rejected {request.subject}")

        requests = [
            EmailRequest(to=f"user{i}@x.com", sender="b@x.com", subject=f"s-{i}", body="x" * i)
            for i in range(8)
        ]

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(
                lambda r: executor.execute(r, action, name="sendEmail", failure_prefix="Failed"),
                requests,
            ))

        for i, result in enumerate(results):
            if i % 2:
                assert result == Failure(f"Failed: rejected s-{i}")
            else:
                assert result.is_success

        spans = span_exporter.get_finished_spans()
        assert len(spans) == 8
        assert len({s.context.span_id for s in spans}) == 8
        for span in spans:
            i = int(span.attributes['email.subject'].split('-')[1])
            assert span.attributes['email.body.length'] == i
            expected = StatusCode.ERROR if i % 2 else StatusCode.OK
            assert span.status.status_code == expected


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
