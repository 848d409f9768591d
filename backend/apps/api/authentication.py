from typing import Any, Optional

from django.http import HttpRequest
from rest_framework_simplejwt.authentication import JWTAuthentication

from apps.common import get_logger

logger = get_logger(__name__).bind(component="api", layer="authentication")

_jwt_authenticator = JWTAuthentication()


def _is_usable(user: Any) -> bool:
    return bool(
        user is not None
        and getattr(user, "is_authenticated", False)
        and getattr(user, "pk", None) is not None
    )


def resolve_request_user(request: HttpRequest) -> Optional[Any]:
    """
    Return the authenticated user for ``request`` or ``None`` for anonymous callers.

    Django middleware runs before DRF authenticates the view, so besides the
    session user from ``AuthenticationMiddleware`` a bearer token is checked
    here directly. An invalid token raises ``InvalidToken`` or
    ``AuthenticationFailed``, the same errors DRF answers with 401 later.
    """
    user = getattr(request, "user", None)
    if _is_usable(user):
        return user

    meta = getattr(request, "META", {}) or {}
    if not meta.get("HTTP_AUTHORIZATION"):
        return None

    authenticated = _jwt_authenticator.authenticate(request)
    if not authenticated:
        return None
    user, _token = authenticated
    if not _is_usable(user):
        return None
    logger.debug("Authenticated user from bearer token", user_id=user.pk)
    return user
