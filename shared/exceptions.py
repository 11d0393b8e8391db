"""
Shared exceptions and custom exception handler.
Consolidates all domain exceptions for the application.
"""
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler


# === Base Exceptions ===

class AppException(Exception):
    """Base exception for application."""

    def __init__(self, message: str, code: str = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)


class NotFoundError(AppException):
    """Entity not found."""

    def __init__(self, entity_name: str, entity_id: str, code: str = None):
        super().__init__(
            message=f"{entity_name} with id '{entity_id}' not found",
            code=code or "ENTITY_NOT_FOUND"
        )
        self.entity_name = entity_name
        self.entity_id = entity_id


class ValidationError(AppException):
    """Validation failed."""

    def __init__(self, message: str, field: str = None, code: str = None):
        super().__init__(message=message, code=code or "VALIDATION_ERROR")
        self.field = field


class BusinessRuleError(AppException):
    """Business rule violated."""

    def __init__(self, message: str, rule: str = None):
        super().__init__(message=message, code="BUSINESS_RULE_VIOLATION")
        self.rule = rule


class ConflictError(AppException):
    """A concurrent write invalidated a precondition. Safe to retry."""

    def __init__(self, message: str, code: str = None):
        super().__init__(message=message, code=code or "CONFLICT")


class IntegrityViolationError(AppException):
    """Stored data breaks an invariant that should never be broken."""

    def __init__(self, message: str, code: str = None):
        super().__init__(message=message, code=code or "INTEGRITY_VIOLATION")


# === Exception Handler ===

def custom_exception_handler(exc, context):
    """Handle custom application exceptions."""
    # Call REST framework's default exception handler first
    response = exception_handler(exc, context)

    from rest_framework.exceptions import NotAuthenticated, AuthenticationFailed
    if isinstance(exc, (NotAuthenticated, AuthenticationFailed)):
        return Response(
            {
                'status': 401,
                'message': 'Authentication required.'
            },
            status=status.HTTP_401_UNAUTHORIZED
        )

    from rest_framework.exceptions import PermissionDenied
    if isinstance(exc, PermissionDenied):
        return Response(
            {
                'status': 403,
                'message': 'Permission denied.'
            },
            status=status.HTTP_403_FORBIDDEN
        )

    # Serializer errors keep their per-field detail
    from rest_framework.exceptions import ValidationError as DRFValidationError
    if isinstance(exc, DRFValidationError) and response is not None:
        if isinstance(response.data, dict) and 'detail' not in response.data:
            first_error = list(response.data.values())[0] if response.data else []
            error_message = (
                first_error[0]
                if isinstance(first_error, list) and first_error
                else 'Invalid request payload.'
            )
            return Response(
                {
                    'status': response.status_code,
                    'message': error_message,
                    'errors': response.data
                },
                status=response.status_code
            )

    # Convert DRF's default error format to our format if response exists
    if response is not None and isinstance(response.data, dict) and 'detail' in response.data:
        return Response(
            {
                'status': response.status_code,
                'message': response.data['detail']
            },
            status=response.status_code
        )

    if response is not None:
        return response

    if isinstance(exc, NotFoundError):
        return Response(
            {
                'error': exc.message,
                'code': exc.code,
                'entity': exc.entity_name,
                'entity_id': exc.entity_id,
            },
            status=status.HTTP_404_NOT_FOUND,
        )

    if isinstance(exc, ValidationError):
        return Response(
            {
                'error': exc.message,
                'code': exc.code,
                'field': exc.field,
            },
            status=status.HTTP_400_BAD_REQUEST,
        )

    if isinstance(exc, BusinessRuleError):
        return Response(
            {
                'error': exc.message,
                'code': exc.code,
                'rule': exc.rule,
            },
            status=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    if isinstance(exc, ConflictError):
        return Response(
            {
                'error': exc.message,
                'code': exc.code,
                'retryable': True,
            },
            status=status.HTTP_409_CONFLICT,
        )

    if isinstance(exc, IntegrityViolationError):
        return Response(
            {
                'error': exc.message,
                'code': exc.code,
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    # Handle generic AppException
    if isinstance(exc, AppException):
        return Response(
            {
                'error': exc.message,
                'code': exc.code,
            },
            status=status.HTTP_400_BAD_REQUEST,
        )

    return response
