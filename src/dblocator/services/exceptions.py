# src/dblocator/services/exceptions.py

class ServiceException(Exception):
    """Base exception for all service layer errors."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

class InvalidRequestError(ServiceException):
    """Raised for a malformed or ambiguous request, before any I/O."""
    pass

class NotFoundError(ServiceException):
    """Raised when a referenced tenant, server, type, database, user or connection does not exist."""
    pass

class ConflictError(ServiceException):
    """Raised on a duplicate unique field, a duplicate role grant, or a delete blocked by references."""
    pass

class NoEligibleUserError(ServiceException):
    """Raised when no database user satisfies the requested roles."""
    pass

class ProvisioningError(ServiceException):
    """Raised when dynamic SQL fails on a target. Earlier targets of the same fan-out stay mutated."""
    def __init__(self, message: str, target: str = None):
        self.target = target
        super().__init__(message)
