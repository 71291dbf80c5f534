"""
Custom exceptions for the airspace traffic simulator.

Operator mistakes never raise inside the tick loop or the command engine;
these exceptions cover configuration and layout loading.
"""


class AtcSimError(Exception):
    """Base exception for all simulator errors."""
    pass


class ConfigurationError(AtcSimError):
    """Exception raised for configuration validation errors."""
    pass


class AirspaceLoadError(AtcSimError):
    """Exception raised when an airspace layout cannot be loaded."""
    pass


class CommandParseError(AtcSimError):
    """Exception raised by strict command parsing."""
    pass
