"""
Call Service Exceptions

Custom exceptions for call-related errors. API handlers map each family to
an HTTP status: validation 400, authorization 403, not found 404,
conflict 409, collaborator failures 502.
"""


class CallServiceError(Exception):
    """Base exception for call service errors"""
    pass


class CallValidationError(CallServiceError):
    """Raised for malformed or inconsistent call requests"""
    pass


class CallUnauthorizedError(CallServiceError):
    """Raised when the acting user may not perform the transition"""

    def __init__(self, message: str = "unauthorized"):
        super().__init__(message)


class ContactNotAuthorizedError(CallUnauthorizedError):
    """Raised when user tries to call someone not in contacts"""

    def __init__(self, message: str = "user is not in your contacts"):
        super().__init__(message)


class CallNotFoundError(CallServiceError):
    """Raised when call is not found"""
    pass


class UserNotFoundError(CallServiceError):
    """Raised when a referenced user does not exist"""
    pass


class CallConflictError(CallServiceError):
    """Raised when the call is no longer in a state that allows the transition"""
    pass


class UserBusyError(CallConflictError):
    """Raised when caller or callee is already in a call"""
    pass


class MediaCredentialError(CallServiceError):
    """Raised when a media room credential cannot be minted"""
    pass
