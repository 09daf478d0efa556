"""
Data models for the traced action domain.

These type-safe data structures define clear contracts between the executor,
the actions it runs, and the tool layer that reports results.
"""

from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Union


def summarized(name: str = None):
    """
    Declare a request field that is recorded on spans as a length only.

    Args:
        name: Attribute name override (defaults to the field name)

    Returns:
        dataclasses.Field carrying the summary marker in its metadata
    """
    return field(metadata={'attribute': name, 'summarize': True})


def attribute(name: str):
    """Declare a request field recorded on spans under a different name."""
    return field(metadata={'attribute': name})


@dataclass(frozen=True)
class ActionRequest:
    """
    Immutable input to a traced action.

    Subclasses declare their fields as a frozen dataclass. Every field becomes
    one span attribute named ``<trace_prefix>.<name>``; fields declared with
    ``summarized()`` are recorded as ``<trace_prefix>.<name>.length``.
    Field contents are not validated here.
    """
    trace_prefix: ClassVar[str] = 'request'

    def span_attributes(self) -> Dict[str, Any]:
        """Build the span attributes describing this request."""
        return span_attributes(self)


def span_attributes(request: Any) -> Dict[str, Any]:
    """
    Derive span attributes from a request value.

    Values that are not dataclass instances yield no attributes, so a
    malformed request never prevents the span from being created.

    Args:
        request: Request value (normally an ActionRequest)

    Returns:
        Dict of attribute key to str/int value
    """
    if not is_dataclass(request) or isinstance(request, type):
        return {}

    prefix = getattr(request, 'trace_prefix', 'request')
    result = {}
    for f in fields(request):
        name = f.metadata.get('attribute') or f.name
        value = getattr(request, f.name)
        if f.metadata.get('summarize'):
            result[f'{prefix}.{name}.length'] = _length(value)
        elif isinstance(value, (str, bool, int, float)):
            result[f'{prefix}.{name}'] = value
        elif value is not None:
            result[f'{prefix}.{name}'] = str(value)
    return result


def _length(value: Any) -> int:
    if value is None:
        return 0
    try:
        return len(value)
    except TypeError:
        return len(str(value))


@dataclass(frozen=True)
class EmailRequest(ActionRequest):
    """
    Email to be dispatched by a mail transport.

    Attributes:
        to: Recipient email address
        sender: Sender email address
        subject: Email subject line
        body: Email body content (plain text)
    """
    trace_prefix: ClassVar[str] = 'email'

    to: str
    sender: str = attribute('from')
    subject: str
    body: str = summarized()


@dataclass(frozen=True)
class ActionResult:
    """
    Normalized result of a traced action.

    Exactly one of the two variants, ``Success`` or ``Failure``, is ever
    constructed. The message is suitable for direct display to a tool caller.
    """
    message: str

    @property
    def is_success(self) -> bool:
        return isinstance(self, Success)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r})"


@dataclass(frozen=True, repr=False)
class Success(ActionResult):
    """Action returned normally."""


@dataclass(frozen=True, repr=False)
class Failure(ActionResult):
    """Action failed; message includes the failure description."""


@dataclass(frozen=True)
class Completed:
    """
    Outcome returned by an action that finished its work.

    Attributes:
        attributes: Extra span attributes to record on success
    """
    attributes: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Failed:
    """
    Outcome returned by an action that could not do its work.

    Attributes:
        error: The exception raised by a collaborator, or a description
    """
    error: Union[BaseException, str]

    @property
    def description(self) -> str:
        """Human-readable failure description."""
        if isinstance(self.error, BaseException):
            return str(self.error) or type(self.error).__name__
        return self.error or 'unknown error'


ActionOutcome = Union[Completed, Failed]


class ExecutionState(Enum):
    """Lifecycle of a single traced execution."""
    CREATED = 'created'
    RUNNING = 'running'
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'
    CLOSED = 'closed'
