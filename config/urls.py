# config/urls.py
"""
URL Configuration for the Booking Platform
"""

from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

from shared.common.health import health_check, readiness_check

urlpatterns = [
    path('admin/', admin.site.urls),

    # API v1
    path('api/v1/', include('apps.api.urls')),

    # Health check
    path('health/', health_check, name='health'),
    path('ready/', readiness_check, name='ready'),

    # OpenAPI Schema
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
]
