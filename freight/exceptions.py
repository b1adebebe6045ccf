from fastapi import status

class FreightError(Exception):
    """Errors that map onto a structured API failure"""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

class NotFoundError(FreightError):
    status_code = status.HTTP_404_NOT_FOUND

class ForbiddenError(FreightError):
    status_code = status.HTTP_403_FORBIDDEN

# Duplicate session, bid, application, request or assignment
class ConflictError(FreightError):
    status_code = status.HTTP_409_CONFLICT

class InvalidStateError(FreightError):
    status_code = status.HTTP_400_BAD_REQUEST

class InvalidInputError(FreightError):
    status_code = 422
