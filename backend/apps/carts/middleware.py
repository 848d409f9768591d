from django.db import DatabaseError
from django.utils.deprecation import MiddlewareMixin
from rest_framework.exceptions import AuthenticationFailed

from apps.api.authentication import resolve_request_user
from apps.api.utils import json_error_response
from apps.common import get_logger
from .container import build_cart_service
from .context import session_key, store_session_cart

logger = get_logger(__name__).bind(component="carts", layer="middleware")


class CartAttachmentMiddleware(MiddlewareMixin):
    """
    Guarantees ``request.cart`` is a populated cart before any view that sets
    ``attaches_cart = True`` runs. Requires session and authentication
    middleware earlier in the stack.
    """

    service = build_cart_service()

    def process_view(self, request, view_func, view_args, view_kwargs):
        view_class = getattr(view_func, "view_class", None)
        if not getattr(view_class, "attaches_cart", False):
            return None
        try:
            user = resolve_request_user(request)
        except AuthenticationFailed as exc:
            # DRF rejects the request with 401 once the view authenticates
            logger.warning(
                "Skipping cart attachment for rejected credentials",
                path=getattr(request, "path", None),
                detail=str(exc),
            )
            return None
        stored = request.session.get(session_key())
        try:
            cart = self.service.attach(stored, user)
        except DatabaseError:
            logger.exception(
                "Cart attachment failed",
                path=getattr(request, "path", None),
                had_session_cart=stored is not None,
            )
            return json_error_response(
                "SERVER_ERROR", "Something went wrong", http_status=500
            )
        store_session_cart(request, cart)
        logger.debug(
            "Cart attached",
            cart_id=cart.id,
            user_id=cart.user_id,
            line_items=len(cart.items),
        )
        return None
