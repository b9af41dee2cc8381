from fastapi import HTTPException, status


class MinuteParkException(HTTPException):
    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An error occurred",
    ):
        super().__init__(status_code=status_code, detail=detail)


class AuthenticationError(MinuteParkException):
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class AuthorizationError(MinuteParkException):
    def __init__(self, detail: str = "Not enough permissions"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFoundError(MinuteParkException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictError(MinuteParkException):
    def __init__(self, detail: str = "Resource conflict"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class ValidationError(MinuteParkException):
    def __init__(self, detail: str = "Validation error"):
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class SessionAlreadyActiveError(ConflictError):
    def __init__(self, detail: str = "User already has an active session"):
        super().__init__(detail=detail)


class SessionNotActiveError(ConflictError):
    def __init__(self, detail: str = "Session is not active"):
        super().__init__(detail=detail)


class SpotUnavailableError(ConflictError):
    def __init__(self, detail: str = "Parking spot is not available"):
        super().__init__(detail=detail)


class TransactionStateError(ConflictError):
    def __init__(self, detail: str = "Transaction is not pending"):
        super().__init__(detail=detail)


class CannotCancelCompletedError(TransactionStateError):
    def __init__(self, detail: str = "Cannot cancel a completed transaction"):
        super().__init__(detail=detail)


class OperationTimeoutError(Exception):
    def __init__(self, message: str = "Operation timed out"):
        super().__init__(message)
        self.message = message
