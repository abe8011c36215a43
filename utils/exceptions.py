from rest_framework import status
from rest_framework.response import Response


class DomainError(Exception):
    """A business rule was violated; carries the HTTP status the API should answer with."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message, status_code=None, details=None):
        super().__init__(message)
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code

    def to_response(self):
        body = {'error': self.message}
        if self.details:
            body['details'] = self.details
        return Response(body, status=self.status_code)


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(DomainError):
    status_code = status.HTTP_409_CONFLICT


def validation_error_response(serializer):
    return Response(
        {'error': 'Validation failed', 'details': serializer.errors},
        status=status.HTTP_422_UNPROCESSABLE_ENTITY
    )
