"""Exceptions raised by the sign recognition pipeline."""


class SignRecognitionError(Exception):
    """Base sign recognition error."""
    pass


class ConfigurationError(SignRecognitionError, ValueError):
    """Invalid detector or matcher configuration."""
    pass


class InvalidOperationError(SignRecognitionError, RuntimeError):
    """Operation called on a sign that cannot support it."""
    pass
