import json
import types
import unittest
from unittest.mock import Mock, patch

from django.contrib.auth.models import AnonymousUser
from django.db import DatabaseError
from django.test import RequestFactory
from rest_framework_simplejwt.exceptions import InvalidToken

from apps.carts.context import SessionCart
from apps.carts.middleware import CartAttachmentMiddleware
from apps.carts.views import CartView


class _Session(dict):
    pass


def _plain_view(request):
    return None


class CartAttachmentMiddlewareTests(unittest.TestCase):
    def setUp(self):
        self.factory = RequestFactory()
        self.middleware = CartAttachmentMiddleware(lambda request: None)
        self.cart_view = CartView.as_view()

    def _request(self, user=None, session=None):
        request = self.factory.get("/api/cart/")
        request.session = _Session(session or {})
        request.user = user or AnonymousUser()
        return request

    def test_views_without_flag_are_skipped(self):
        service = Mock()
        request = self._request()
        with patch.object(CartAttachmentMiddleware, "service", service):
            response = self.middleware.process_view(request, _plain_view, (), {})
        self.assertIsNone(response)
        service.attach.assert_not_called()
        self.assertFalse(hasattr(request, "cart"))

    def test_attaches_cart_and_stores_reference_in_session(self):
        attached = SessionCart(id=4, user_id=None).with_items([])
        service = Mock()
        service.attach.return_value = attached
        request = self._request()
        with patch.object(CartAttachmentMiddleware, "service", service):
            response = self.middleware.process_view(request, self.cart_view, (), {})
        self.assertIsNone(response)
        service.attach.assert_called_once_with(None, None)
        self.assertIs(request.cart, attached)
        self.assertEqual(request.session["cart"], {"id": 4, "user": None, "lineItems": []})

    def test_passes_stored_payload_and_authenticated_user(self):
        user = types.SimpleNamespace(pk=7, id=7, is_authenticated=True, cart_id=4)
        stored = {"id": 4, "user": 7, "lineItems": [1]}
        service = Mock()
        service.attach.return_value = SessionCart(id=4, user_id=7).with_items([])
        request = self._request(user=user, session={"cart": stored})
        with patch.object(CartAttachmentMiddleware, "service", service):
            self.middleware.process_view(request, self.cart_view, (), {})
        service.attach.assert_called_once_with(stored, user)

    def test_storage_failure_returns_error_envelope(self):
        service = Mock()
        service.attach.side_effect = DatabaseError("db down")
        request = self._request()
        with patch.object(CartAttachmentMiddleware, "service", service):
            response = self.middleware.process_view(request, self.cart_view, (), {})
        self.assertEqual(response.status_code, 500)
        payload = json.loads(response.content)
        self.assertEqual(payload["error"]["code"], "SERVER_ERROR")
        self.assertNotIn("cart", request.session)

    def test_rejected_bearer_token_skips_attachment(self):
        service = Mock()
        request = self._request()
        with patch.object(CartAttachmentMiddleware, "service", service), patch(
            "apps.carts.middleware.resolve_request_user",
            side_effect=InvalidToken("Token is invalid or expired"),
        ):
            response = self.middleware.process_view(request, self.cart_view, (), {})
        self.assertIsNone(response)
        service.attach.assert_not_called()
        self.assertFalse(hasattr(request, "cart"))
        self.assertNotIn("cart", request.session)
