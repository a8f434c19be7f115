# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Application exceptions.

Services raise these exceptions; ``status_code`` and ``error_type`` carry
the client/server classification a transport layer maps to its responses.
"""

from typing import Dict, Any, List
from pydantic import ValidationError

GENERIC_ERROR_DETAIL = "An internal error occurred while processing the grant operation"


class CustomException(Exception):
    """Base class for custom application exceptions."""

    def __init__(self, message: str, status_code: int = 500, error_type: str = "application-error"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type


class ValidationException(CustomException):
    """Exception for validation errors and failed preconditions."""

    def __init__(self, message: str, validation_errors: list = None):
        super().__init__(message, 400, "validation-error")
        self.validation_errors = validation_errors or []


class NotFoundException(CustomException):
    """Exception for resource not found errors."""

    def __init__(self, message: str):
        super().__init__(message, 404, "resource-not-found")


class ConflictException(CustomException):
    """Exception for concurrent modification conflicts."""

    def __init__(self, message: str):
        super().__init__(message, 409, "resource-conflict")


class InternalErrorException(CustomException):
    """Exception for unexpected failures, carrying only a generic message."""

    def __init__(self, message: str = GENERIC_ERROR_DETAIL):
        super().__init__(message, 500, "internal-server-error")


def format_validation_errors(validation_error: ValidationError) -> List[Dict[str, Any]]:
    """
    Format Pydantic validation errors as field-level error entries.

    Args:
        validation_error: Pydantic ValidationError

    Returns:
        List of formatted error dictionaries
    """
    errors = []

    for error in validation_error.errors():
        field_path = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field_path or "__root__",
            "message": error["msg"],
            "type": error["type"]
        })

    return errors


def validation_exception_from(validation_error: ValidationError, message: str = "Invalid input") -> ValidationException:
    """Wrap a Pydantic ValidationError in a ValidationException."""
    return ValidationException(message, format_validation_errors(validation_error))

