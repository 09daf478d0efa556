"""
Traced execution of side-effecting actions.

Runs a caller-supplied action exactly once under an OpenTelemetry span and
returns an explicit ActionResult:
1. Start span (attributes derived from the request)
2. Invoke action with the request
3. Classify outcome (Completed / Failed / raised exception)
4. Record status on the span and close it

No exception raised by the action propagates out of execute(). The span is
closed on every exit path, including interrupts that are re-raised.
"""

import logging
from typing import Any, Callable, Mapping, Optional

from opentelemetry import context as context_api
from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.trace import SpanKind, Status, StatusCode, Tracer

from .models import (
    ActionOutcome,
    ActionResult,
    Completed,
    ExecutionState,
    Failed,
    Failure,
    Success,
    span_attributes,
)

logger = logging.getLogger(__name__)

Action = Callable[[Any], Optional[ActionOutcome]]

DEFAULT_SUCCESS_MESSAGE = "Action completed successfully"
DEFAULT_FAILURE_PREFIX = "Action failed"


class TracedExecution:
    """
    Scoped ownership of one span for one action invocation.

    The span starts on construction and becomes current on enter. Used as a
    context manager it is ended on exit whatever the exit path. Terminal
    classification (succeed/fail) happens at most once; close() may be
    called any number of times.

    State: CREATED -> RUNNING -> (SUCCEEDED | FAILED) -> CLOSED
    """

    def __init__(
        self,
        tracer: Tracer,
        name: str,
        kind: SpanKind = SpanKind.INTERNAL,
        attributes: Optional[Mapping[str, Any]] = None,
        parent: Optional[Context] = None,
    ):
        self.name = name
        self.state = ExecutionState.CREATED
        self.span = tracer.start_span(
            name,
            context=parent,
            kind=kind,
            attributes=dict(attributes or {}),
            record_exception=False,
            set_status_on_exception=False,
        )
        self._parent = parent
        self._token = None

    def __enter__(self) -> 'TracedExecution':
        # Make the span current so collaborator spans (e.g. botocore) nest under it
        self._token = context_api.attach(trace.set_span_in_context(self.span, self._parent))
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc is not None and self.state in (ExecutionState.CREATED, ExecutionState.RUNNING):
            # Interrupt or defect that bypassed classification
            self.span.record_exception(exc)
            self._classify(
                ExecutionState.FAILED,
                Status(StatusCode.ERROR, f"{self.name} interrupted: {type(exc).__name__}")
            )
        self.close()
        return False

    def run(self, action: Action, request: Any) -> Optional[ActionOutcome]:
        """Invoke the action once, marking the execution as running."""
        self.state = ExecutionState.RUNNING
        return action(request)

    def succeed(self, event: str, attributes: Optional[Mapping[str, Any]] = None) -> None:
        """Record a successful outcome: extra attributes, event, status OK."""
        if not self._classifiable(ExecutionState.SUCCEEDED):
            return
        if attributes:
            self.span.set_attributes(dict(attributes))
        self.span.add_event(event)
        self._classify(ExecutionState.SUCCEEDED, Status(StatusCode.OK))

    def fail(self, error: Any, message: str) -> None:
        """Record a failed outcome: exception first, then status ERROR."""
        if not self._classifiable(ExecutionState.FAILED):
            return
        if isinstance(error, BaseException):
            self.span.record_exception(error)
        self._classify(ExecutionState.FAILED, Status(StatusCode.ERROR, message))

    def close(self) -> None:
        """End the span. Safe to call more than once."""
        if self.state is ExecutionState.CLOSED:
            return
        if self.state in (ExecutionState.CREATED, ExecutionState.RUNNING):
            self.span.set_status(Status(StatusCode.ERROR, f"{self.name} closed before completion"))
        self.state = ExecutionState.CLOSED
        try:
            if self._token is not None:
                context_api.detach(self._token)
                self._token = None
        finally:
            self.span.end()

    def _classifiable(self, state: ExecutionState) -> bool:
        if self.state in (ExecutionState.CREATED, ExecutionState.RUNNING):
            return True
        logger.warning(
            f"Ignoring {state.value} classification for span '{self.name}' "
            f"already in state {self.state.value}"
        )
        return False

    def _classify(self, state: ExecutionState, status: Status) -> None:
        self.span.set_status(status)
        self.state = state


class TracedActionExecutor:
    """
    Runs actions under trace spans and converts their outcome into values.

    The executor is stateless: tracer, span kind and parent context are fixed
    at construction and every call owns its own span, so one instance can be
    shared by concurrent callers.
    """

    def __init__(
        self,
        tracer: Optional[Tracer] = None,
        span_kind: SpanKind = SpanKind.INTERNAL,
        parent: Optional[Context] = None,
    ):
        """
        Initialize executor.

        Args:
            tracer: Tracer used to create spans (defaults to the global provider's)
            span_kind: Kind assigned to every span
            parent: Explicit parent context (defaults to the current context)
        """
        self._tracer = tracer or trace.get_tracer(__name__)
        self._span_kind = span_kind
        self._parent = parent

    def execute(
        self,
        request: Any,
        action: Action,
        name: Optional[str] = None,
        success_message: str = DEFAULT_SUCCESS_MESSAGE,
        failure_prefix: str = DEFAULT_FAILURE_PREFIX,
        success_event: Optional[str] = None,
    ) -> ActionResult:
        """
        Execute an action once under a new span.

        Args:
            request: Immutable request passed to the action
            action: Callable performing the work; returns an ActionOutcome
                    (or any other value, meaning success) or raises
            name: Span name (defaults to the action's __name__)
            success_message: Message carried by Success
            failure_prefix: Prefix of the Failure message
            success_event: Span event added on success (defaults to success_message)

        Returns:
            Success(success_message) or Failure("<prefix>: <description>")
        """
        span_name = name or getattr(action, '__name__', 'action')

        with TracedExecution(
            self._tracer,
            span_name,
            kind=self._span_kind,
            attributes=span_attributes(request),
            parent=self._parent,
        ) as execution:
            try:
                outcome = execution.run(action, request)
            except Exception as e:
                logger.error(f"Action '{span_name}' raised {type(e).__name__}: {e}", exc_info=True)
                outcome = Failed(e)

            if isinstance(outcome, Failed):
                message = f"{failure_prefix}: {outcome.description}"
                execution.fail(outcome.error, message)
                logger.warning(f"Action '{span_name}' failed: {outcome.description}")
                return Failure(message)

            extra = outcome.attributes if isinstance(outcome, Completed) else None
            execution.succeed(success_event or success_message, extra)
            logger.info(f"Action '{span_name}' succeeded")
            return Success(success_message)
