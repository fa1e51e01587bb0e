# apps/api/views/catalog_views.py
"""
Catalog API Views

Routes, industries and subcategories. Readable by anyone, managed by admins.
"""

from rest_framework import filters, viewsets
from django_filters.rest_framework import DjangoFilterBackend

from apps.booking.models import Industry, IndustrySubcategory, Route
from apps.api.serializers import (
    IndustrySerializer,
    IndustrySubcategorySerializer,
    RouteSerializer,
)
from shared.common.pagination import CampaignGridPagination
from shared.common.permissions import IsAdminOrReadOnly
from .mixins import CurrentCustomerMixin


class RouteViewSet(CurrentCustomerMixin, viewsets.ModelViewSet):
    """ViewSet for mail routes."""

    queryset = Route.objects.all()
    serializer_class = RouteSerializer
    permission_classes = [IsAdminOrReadOnly]
    pagination_class = CampaignGridPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'city']
    search_fields = ['zip_code', 'name', 'city']
    ordering_fields = ['zip_code', 'name', 'household_count']
    ordering = ['zip_code']

    def get_queryset(self):
        queryset = super().get_queryset()
        if not self.is_admin():
            queryset = queryset.filter(status=Route.Status.ACTIVE)
        return queryset


class IndustryViewSet(CurrentCustomerMixin, viewsets.ModelViewSet):
    """ViewSet for industries with their subcategories."""

    queryset = Industry.objects.prefetch_related('subcategories')
    serializer_class = IndustrySerializer
    permission_classes = [IsAdminOrReadOnly]
    pagination_class = CampaignGridPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['status']
    search_fields = ['name']

    def get_queryset(self):
        queryset = super().get_queryset()
        if not self.is_admin():
            queryset = queryset.filter(status=Industry.Status.ACTIVE)
        return queryset


class IndustrySubcategoryViewSet(CurrentCustomerMixin, viewsets.ModelViewSet):
    """ViewSet for industry subcategories."""

    queryset = IndustrySubcategory.objects.select_related('industry')
    serializer_class = IndustrySubcategorySerializer
    permission_classes = [IsAdminOrReadOnly]
    pagination_class = CampaignGridPagination
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['industry', 'status']

    def get_queryset(self):
        queryset = super().get_queryset()
        if not self.is_admin():
            queryset = queryset.filter(status=IndustrySubcategory.Status.ACTIVE)
        return queryset
