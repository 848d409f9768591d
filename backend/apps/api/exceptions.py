from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Tuple, Type, Union

from django.core.exceptions import (
    PermissionDenied as DjangoPermissionDenied,
    ValidationError as DjangoValidationError,
)
from django.db import DatabaseError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import (
    AuthenticationFailed,
    MethodNotAllowed,
    NotAuthenticated,
    NotFound,
    ParseError,
    PermissionDenied,
    UnsupportedMediaType,
    ValidationError,
)
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from apps.api.utils import error_response
from apps.carts.context import CartNotPopulatedError
from apps.common import get_logger

logger = get_logger(__name__).bind(component="api", layer="exception")

GENERIC_SERVER_MESSAGE = "Something went wrong"

# Checked in order; the first matching entry decides code and fallback message.
_KNOWN_EXCEPTIONS: Tuple[Tuple[Tuple[Type[Exception], ...], str, str], ...] = (
    ((ParseError,), "VALIDATION_ERROR", "Malformed request"),
    ((AuthenticationFailed,), "UNAUTHORIZED", "Authentication failed"),
    ((NotAuthenticated,), "UNAUTHORIZED", "Authentication required"),
    (
        (PermissionDenied, DjangoPermissionDenied),
        "FORBIDDEN",
        "You do not have permission to perform this action",
    ),
    ((NotFound, Http404), "NOT_FOUND", "Resource not found"),
    ((MethodNotAllowed,), "METHOD_NOT_ALLOWED", "Method not allowed"),
    ((UnsupportedMediaType,), "UNSUPPORTED_MEDIA_TYPE", "Unsupported media type"),
)


class ApplicationError(Exception):
    """
    Error raised from views or services when a ``CartError`` result cannot be
    returned, e.g. a cart view reached without an attached cart.

    Args:
        code: Machine readable error code.
        message: Human readable explanation of the error.
        status_code: Optional explicit HTTP status. If omitted, code mapping is used.
        details: Optional structured details for clients.
        hint: Optional hint for remediation.
        headers: Optional response headers.
    """

    def __init__(
        self,
        code: str,
        message: str,
        *,
        status_code: Optional[int] = None,
        details: Optional[Any] = None,
        hint: Optional[str] = None,
        headers: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        self.hint = hint
        self.headers = headers

    def to_response(self) -> Response:
        return error_response(
            self.code,
            self.message,
            self.details,
            http_status=self.status_code,
            hint=self.hint,
            headers=self.headers,
        )


def global_exception_handler(exc: Exception, context: Dict[str, Any]) -> Response:
    """
    DRF ``EXCEPTION_HANDLER``: every failure leaves the API in the
    ``{"error": {...}}`` envelope. Storage failures and anything DRF does not
    recognise become a generic SERVER_ERROR without internal details.
    """
    log = _bind_logger(context)

    if isinstance(exc, ApplicationError):
        log.info("Handled application error", code=exc.code, status=exc.status_code)
        return exc.to_response()

    if isinstance(exc, (DatabaseError, CartNotPopulatedError)):
        log.exception("Cart storage failure", error_type=type(exc).__name__)
        return _server_error()

    if isinstance(exc, DjangoValidationError):
        exc = ValidationError(_django_validation_detail(exc))

    response = drf_exception_handler(exc, context)
    if response is None:
        log.exception("Unhandled exception bubbled to global handler")
        return _server_error()

    status_code = response.status_code
    code, message, details = _describe(exc, response.data, status_code)
    if status_code >= 500:
        log.error("Converted server error", code=code, status=status_code)
    else:
        log.info("Converted API exception", code=code, status=status_code)
    headers = dict(response.headers) if getattr(response, "headers", None) else None
    return error_response(code, message, details, http_status=status_code, headers=headers)


def _server_error() -> Response:
    return error_response(
        "SERVER_ERROR",
        GENERIC_SERVER_MESSAGE,
        http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def _bind_logger(context: Dict[str, Any]):
    log = logger
    view = context.get("view")
    request = context.get("request")
    if view is not None:
        log = log.bind(view=type(view).__name__)
    if request is not None:
        log = log.bind(
            method=getattr(request, "method", None),
            path=getattr(request, "path", None),
        )
    return log


def _django_validation_detail(exc: DjangoValidationError) -> Union[Dict[str, Any], list]:
    if hasattr(exc, "message_dict"):
        return exc.message_dict
    return list(exc.messages)


def _describe(exc: Exception, payload: Any, status_code: int) -> Tuple[str, str, Optional[Any]]:
    """Map a DRF-handled exception to ``(code, message, details)``."""
    if status_code >= 500:
        return "SERVER_ERROR", GENERIC_SERVER_MESSAGE, None
    if isinstance(exc, ValidationError):
        return "VALIDATION_ERROR", "Validation failed", payload
    for types, code, fallback in _KNOWN_EXCEPTIONS:
        if isinstance(exc, types):
            return code, _message_from(payload, fallback), None
    details = payload if isinstance(payload, (dict, list)) and payload else None
    return "UNKNOWN_ERROR", _message_from(payload, "Request failed"), details


def _message_from(payload: Any, fallback: str) -> str:
    if isinstance(payload, str):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("detail"), str):
        return payload["detail"]
    if isinstance(payload, list) and payload and isinstance(payload[0], str):
        return payload[0]
    return fallback


__all__ = ["ApplicationError", "global_exception_handler"]
