"""Exceptions raised by stackscope."""


class StackscopeError(Exception):
    """Base class for stackscope errors."""


class TemplateUnparseable(StackscopeError):
    """A template body is neither valid JSON nor valid YAML."""


class MalformedFilterInput(StackscopeError, ValueError):
    """A user-supplied filter could not be parsed."""


class TransientFetchError(StackscopeError):
    """A provider call inside a polling loop failed; the loop retries on its next tick."""


class DriftDetectionFailed(StackscopeError):
    """The provider reported DETECTION_FAILED."""

    def __init__(self, stack_name: str, reason: str | None):
        self.stack_name = stack_name
        self.reason = reason or "no reason given"
        super().__init__(f"drift detection failed for {stack_name}: {self.reason}")


class DriftDetectionTimeout(StackscopeError):
    """Drift detection did not reach a terminal state in time."""


class OperationCancelled(StackscopeError):
    """A polling loop was interrupted by the operator."""
