# apps/api/views/customer_views.py
"""
Customer API Views

The current customer's loyalty, referral and notification data, and
the admin customer directory with CRM notes and tags.
"""

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, generics, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.booking.models import Customer, CustomerNotification
from apps.booking.services import CustomerService, LoyaltyService
from apps.api.serializers import (
    AdminCustomerSerializer,
    ApplyReferralSerializer,
    CustomerNoteSerializer,
    CustomerNotificationSerializer,
    CustomerSummarySerializer,
    CustomerTagSerializer,
)
from shared.common.permissions import IsAdmin
from .filters import CustomerFilter
from .mixins import CurrentCustomerMixin


class CustomerMeView(CurrentCustomerMixin, APIView):
    """Loyalty and referral summary for the caller."""

    def get(self, request):
        summary = CustomerService().get_summary(self.get_customer())
        return Response(CustomerSummarySerializer(summary).data)


class ApplyReferralView(CurrentCustomerMixin, APIView):
    """Apply a referral code to the caller's account."""

    def post(self, request):
        serializer = ApplyReferralSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        customer = self.get_customer()
        LoyaltyService().apply_referral_code(customer, serializer.validated_data['code'])

        summary = CustomerService().get_summary(customer)
        return Response(
            CustomerSummarySerializer(summary).data,
            status=status.HTTP_201_CREATED
        )


class CustomerNotificationListView(CurrentCustomerMixin, generics.ListAPIView):
    """In-app notifications for the caller, newest first."""

    serializer_class = CustomerNotificationSerializer

    def get_queryset(self):
        return CustomerNotification.objects.filter(
            customer=self.get_customer()
        ).order_by('-created_at')


class CustomerViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Customer directory with CRM notes and tags (admin only).

    ``GET/POST /customers/{id}/notes/`` and
    ``GET/POST/DELETE /customers/{id}/tags/``.
    """

    queryset = Customer.objects.prefetch_related('tags')
    serializer_class = AdminCustomerSerializer
    permission_classes = [IsAdmin]
    lookup_value_regex = '[0-9a-f-]{32,36}'
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = CustomerFilter
    search_fields = ['email', 'name', 'business_name']
    ordering_fields = ['email', 'created_at']
    ordering = ['email']

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.customer_service = CustomerService()

    @action(detail=True, methods=['get', 'post'])
    def notes(self, request, pk=None):
        customer = self.get_object()

        if request.method == 'POST':
            serializer = CustomerNoteSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            note = self.customer_service.add_note(
                customer.id, serializer.validated_data['note'], created_by=request.user.id
            )
            return Response(CustomerNoteSerializer(note).data, status=status.HTTP_201_CREATED)

        notes = self.customer_service.list_notes(customer.id)
        return Response(CustomerNoteSerializer(notes, many=True).data)

    @action(detail=True, methods=['get', 'post', 'delete'])
    def tags(self, request, pk=None):
        customer = self.get_object()

        if request.method == 'GET':
            return Response({'tags': self.customer_service.list_tags(customer.id)})

        data = request.data if request.data else request.query_params
        serializer = CustomerTagSerializer(data=data)
        serializer.is_valid(raise_exception=True)
        tag = serializer.validated_data['tag']

        if request.method == 'POST':
            self.customer_service.add_tag(customer.id, tag, created_by=request.user.id)
            return Response(
                {'tags': self.customer_service.list_tags(customer.id)},
                status=status.HTTP_201_CREATED
            )

        if not self.customer_service.remove_tag(customer.id, tag):
            raise NotFound(f"Customer is not tagged '{tag}'")
        return Response(status=status.HTTP_204_NO_CONTENT)
