"""
Exceptions raised by autocrud.

HTTP failures inside generated handlers are fastapi.HTTPException; these
cover mistakes in how routes or sessions are set up.
"""


class AutoCRUDError(Exception):
    """Base exception for autocrud"""
    pass


class ConfigurationError(AutoCRUDError):
    """Raised when a model or route registration cannot be configured"""
    pass
