"""
Wallet session error types.
"""


class SessionError(Exception):
    """Wallet could not be opened, created, saved or reloaded"""


class ConfigurationError(SessionError):
    """Invalid startup options or an output file collision"""


class TransferParseError(ValueError):
    """Malformed transfer request"""
