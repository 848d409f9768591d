from django.urls import path, include
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

urlpatterns = [
    path("cart/", include("apps.carts.urls")),
    path("auth/token/", TokenObtainPairView.as_view(), name="auth-token"),
    path(
        "auth/token/refresh/", TokenRefreshView.as_view(), name="auth-token-refresh"
    ),
]
