from typing import Sequence

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.api.exceptions import ApplicationError
from apps.api.schemas import ErrorResponseSerializer
from apps.api.utils import error_response
from apps.common import get_logger
from .commands import (
    ADD_KEYS,
    REMOVE_KEYS,
    UPDATE_KEYS,
    LineItemCommand,
    malformed_request_message,
    missing_keys,
)
from .container import build_cart_service
from .context import SessionCart, store_session_cart
from .mappers import CartMapper
from .serializers import (
    CartItemRemoveSerializer,
    CartItemWriteSerializer,
    CartReadSerializer,
)

logger = get_logger(__name__).bind(component="carts", layer="view")

_ERROR_RESPONSES = {
    400: OpenApiResponse(response=ErrorResponseSerializer),
    500: OpenApiResponse(response=ErrorResponseSerializer),
}


class CartView(APIView):
    """The session's cart. ``CartAttachmentMiddleware`` populates ``request.cart``."""

    permission_classes = [AllowAny]
    attaches_cart = True
    service = build_cart_service()
    mapper = CartMapper()
    log = logger.bind(view="CartView")

    def _cart(self, request) -> SessionCart:
        cart = getattr(request, "cart", None)
        if not isinstance(cart, SessionCart):
            self.log.error("Cart view reached without an attached cart")
            raise ApplicationError(
                "SERVER_ERROR",
                "Cart was not attached to the request",
                status_code=500,
            )
        return cart

    def _respond(self, request, cart: SessionCart) -> Response:
        store_session_cart(request, cart)
        return Response(CartReadSerializer(self.mapper.to_dto(cart)).data)

    def _command(self, request, required: Sequence[str], serializer_class):
        missing = missing_keys(request.data, required)
        if missing:
            self.log.warning(
                "Malformed cart request", method=request.method, missing=missing
            )
            return None, error_response(
                "VALIDATION_ERROR",
                malformed_request_message(request.method, missing),
                {"missing": missing},
            )
        serializer = serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)
        return LineItemCommand.from_validated(serializer.validated_data), None

    @extend_schema(
        summary="Get cart",
        description="Returns the cart attached to the current session.",
        responses={200: CartReadSerializer, 500: _ERROR_RESPONSES[500]},
    )
    def get(self, request):
        cart = self._cart(request)
        self.log.debug("Returning session cart", cart_id=cart.id)
        return Response(CartReadSerializer(self.mapper.to_dto(cart)).data)

    @extend_schema(
        summary="Add item to cart",
        description=(
            "Appends a line item for productId with the given quantity. The product's "
            "title, price and image are captured at this moment."
        ),
        request=CartItemWriteSerializer,
        responses={200: CartReadSerializer, **_ERROR_RESPONSES},
    )
    def post(self, request):
        cart = self._cart(request)
        command, invalid = self._command(request, ADD_KEYS, CartItemWriteSerializer)
        if invalid:
            return invalid
        updated, error = self.service.add_item(cart, command.product_id, command.quantity)
        if error:
            return error_response(error.code, error.message, error.details, http_status=error.status)
        return self._respond(request, updated)

    @extend_schema(
        summary="Update line item quantity",
        description="Sets the quantity of the first line item referencing productId.",
        request=CartItemWriteSerializer,
        responses={200: CartReadSerializer, **_ERROR_RESPONSES},
    )
    def put(self, request):
        cart = self._cart(request)
        command, invalid = self._command(request, UPDATE_KEYS, CartItemWriteSerializer)
        if invalid:
            return invalid
        updated, error = self.service.update_quantity(
            cart, command.product_id, command.quantity
        )
        if error:
            return error_response(error.code, error.message, error.details, http_status=error.status)
        return self._respond(request, updated)

    @extend_schema(
        summary="Remove item from cart",
        description="Removes the first line item referencing productId.",
        request=CartItemRemoveSerializer,
        responses={200: CartReadSerializer, **_ERROR_RESPONSES},
    )
    def delete(self, request):
        cart = self._cart(request)
        command, invalid = self._command(request, REMOVE_KEYS, CartItemRemoveSerializer)
        if invalid:
            return invalid
        updated, error = self.service.remove_item(cart, command.product_id)
        if error:
            return error_response(error.code, error.message, error.details, http_status=error.status)
        return self._respond(request, updated)
