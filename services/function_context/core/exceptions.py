"""
Custom exception classes.

Represent errors raised while looking up, composing, converting and
routing functions.
"""


class FunctionContextError(Exception):
    """Base exception class for the function catalog."""

    pass


class FunctionNotFoundError(FunctionContextError):
    """Raised when a function definition cannot be resolved."""

    def __init__(self, definition: str):
        self.definition = definition
        super().__init__(f"Function not found: {definition}")


class DuplicateFunctionError(FunctionContextError):
    """Raised when a function name is already registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Function already registered: {name}")


class FunctionCompositionError(FunctionContextError):
    """Raised when a composed definition cannot be assembled."""

    def __init__(self, definition: str, reason: str):
        self.definition = definition
        self.reason = reason
        super().__init__(f"Cannot compose '{definition}': {reason}")


class ConversionError(FunctionContextError):
    """Raised when a value cannot be converted to the requested type."""

    def __init__(self, value_type: type, target_type: object, cause: Exception = None):
        self.value_type = value_type
        self.target_type = target_type
        self.cause = cause
        message = f"Cannot convert {value_type.__name__} to {target_type!r}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class RoutingError(FunctionContextError):
    """Raised when functionRouter cannot establish a route."""

    pass


class InvalidMimeTypeError(FunctionContextError, ValueError):
    """Raised when a content type string cannot be parsed."""

    def __init__(self, value: str, reason: str = ""):
        self.value = value
        message = f"Invalid mime type '{value}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
