# apps/api/views/booking_views.py
"""
Booking API Views

Booking, payment, approval, artwork and design endpoints.
"""

import logging

from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from apps.booking.models import Booking
from apps.booking.services import BookingService, CustomerService
from apps.api.serializers import (
    ArtworkReviewSerializer,
    ArtworkUploadSerializer,
    BookingCancelSerializer,
    BookingCreateSerializer,
    BookingDetailSerializer,
    BookingListSerializer,
    BookingQuoteSerializer,
    BookingRejectSerializer,
    BookingSerializer,
    DesignFeedbackSerializer,
    DesignRevisionSerializer,
    DesignRevisionUploadSerializer,
    PaymentCallbackSerializer,
    PriceBreakdownSerializer,
    WaitlistEntrySerializer,
)
from shared.common.exceptions import ForbiddenException
from shared.common.mixins import MultiSerializerMixin
from shared.common.permissions import IsAdmin, IsAdminOrService, IsOwnerOrAdmin
from .filters import BookingFilter
from .mixins import CurrentCustomerMixin

logger = logging.getLogger(__name__)


class BookingViewSet(
    MultiSerializerMixin,
    CurrentCustomerMixin,
    mixins.CreateModelMixin,
    viewsets.ReadOnlyModelViewSet
):
    """
    ViewSet for bookings.

    Customers see and act on their own bookings; admins see all of them.
    Bookings are never edited directly, every change goes through an
    explicit workflow action.
    """

    queryset = Booking.objects.select_related(
        'customer', 'campaign', 'route', 'industry', 'subcategory'
    )
    serializer_class = BookingSerializer
    serializer_classes = {
        'list': BookingListSerializer,
        'retrieve': BookingDetailSerializer,
        'create': BookingCreateSerializer,
        'quote': BookingQuoteSerializer,
        'cancel': BookingCancelSerializer,
        'reject': BookingRejectSerializer,
        'payment_callback': PaymentCallbackSerializer,
        'artwork': ArtworkUploadSerializer,
        'review_artwork': ArtworkReviewSerializer,
        'design_revisions': DesignRevisionUploadSerializer,
        'request_changes': DesignFeedbackSerializer,
    }
    permission_classes = [IsOwnerOrAdmin]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = BookingFilter
    search_fields = ['booking_number', 'business_name', 'contact_email']
    ordering_fields = ['created_at', 'booking_number', 'amount', 'status']
    ordering = ['-created_at']

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.booking_service = BookingService()

    def get_queryset(self):
        """Customers only see their own bookings."""
        queryset = super().get_queryset()
        if not self.has_any_role(['admin', 'service']):
            queryset = queryset.filter(customer_id=self.request.user.id)
        return queryset

    def get_permissions(self):
        if self.action in ['approve', 'reject', 'review_artwork']:
            return [IsAdmin()]
        if self.action == 'payment_callback':
            return [IsAdminOrService()]
        return super().get_permissions()

    def create(self, request, *args, **kwargs):
        """
        Book slots.

        Returns 201 with the booking, or 202 with the waitlist entry when
        the route or campaign is full.
        """
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = dict(serializer.validated_data)
        customer_id = data.pop('customer_id', None)

        if not self.is_admin():
            if data.get('override_price') is not None:
                raise ForbiddenException("Only administrators can override the price")
            if customer_id:
                raise ForbiddenException("Only administrators can book for another customer")

        if customer_id:
            customer = CustomerService().get_customer(customer_id)
        else:
            customer = self.get_customer()

        result = self.booking_service.create_booking(customer=customer, **data)

        if result.waitlisted:
            return Response({
                'waitlisted': True,
                'message': result.message,
                'waitlist_entry': WaitlistEntrySerializer(result.waitlist_entry).data,
            }, status=status.HTTP_202_ACCEPTED)

        return Response(
            BookingDetailSerializer(result.booking).data,
            status=status.HTTP_201_CREATED
        )

    @action(detail=False, methods=['post'])
    def quote(self, request):
        """Price a candidate booking without reserving anything."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        if data.get('override_price') is not None and not self.is_admin():
            raise ForbiddenException("Only administrators can override the price")

        breakdown = self.booking_service.quote(self.get_customer(), **data)
        return Response(PriceBreakdownSerializer(breakdown.to_dict()).data)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        """Cancel a booking and release its slots."""
        booking = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking, cancelled_now = self.booking_service.cancel(
            booking.id,
            actor_id=request.user.id,
            reason=serializer.validated_data['reason'],
            is_admin=self.is_admin(),
        )

        return Response({
            'cancelled_now': cancelled_now,
            'booking': BookingDetailSerializer(booking).data,
        })

    @action(detail=True, methods=['post'])
    def checkout(self, request, pk=None):
        """Open (or reopen) a checkout session."""
        booking = self.get_object()
        booking = self.booking_service.start_checkout(booking.id)
        return Response(BookingDetailSerializer(booking).data)

    @action(detail=True, methods=['post'], url_path='payment-callback')
    def payment_callback(self, request, pk=None):
        """Apply the payment gateway's result."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if data['result'] == 'paid':
            booking = self.booking_service.record_payment(
                pk,
                amount_paid=data.get('amount_paid'),
                reference=data['reference'],
            )
        else:
            booking = self.booking_service.record_payment_failure(pk, reason=data['reason'])

        return Response(BookingDetailSerializer(booking).data)

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        """Approve a booking."""
        booking = self.booking_service.approve(pk, admin_id=request.user.id)
        return Response(BookingDetailSerializer(booking).data)

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        """Reject a booking, cancelling it with a refund."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = self.booking_service.reject(
            pk, request.user.id, serializer.validated_data['note']
        )
        return Response(BookingDetailSerializer(booking).data)

    @action(
        detail=True,
        methods=['post'],
        parser_classes=[MultiPartParser, FormParser]
    )
    def artwork(self, request, pk=None):
        """Upload print-ready artwork."""
        booking = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = self.booking_service.upload_artwork(
            booking.id,
            serializer.validated_data['file'],
            uploader_id=request.user.id,
        )
        return Response(BookingDetailSerializer(booking).data)

    @action(detail=True, methods=['post'], url_path='review-artwork')
    def review_artwork(self, request, pk=None):
        """Approve or reject uploaded artwork."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = self.booking_service.review_artwork(
            pk,
            approved=serializer.validated_data['approved'],
            reason=serializer.validated_data['reason'],
        )
        return Response(BookingDetailSerializer(booking).data)

    @action(
        detail=True,
        methods=['get', 'post'],
        url_path='design-revisions',
        parser_classes=[MultiPartParser, FormParser, JSONParser]
    )
    def design_revisions(self, request, pk=None):
        """List design proofs, or upload a new one (admin)."""
        booking = self.get_object()

        if request.method == 'GET':
            revisions = booking.design_revisions.order_by('revision_number')
            return Response(DesignRevisionSerializer(revisions, many=True).data)

        if not self.is_admin():
            raise ForbiddenException("Only administrators can upload design proofs")

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        revision = self.booking_service.upload_design_revision(
            booking.id,
            serializer.validated_data['file'],
            uploader_id=request.user.id,
            notes=serializer.validated_data['notes'],
        )
        return Response(
            DesignRevisionSerializer(revision).data,
            status=status.HTTP_201_CREATED
        )

    @action(detail=True, methods=['post'], url_path='approve-design')
    def approve_design(self, request, pk=None):
        """Approve the latest design proof."""
        booking = self.get_object()
        booking = self.booking_service.approve_design(booking.id)
        return Response(BookingDetailSerializer(booking).data)

    @action(detail=True, methods=['post'], url_path='request-changes')
    def request_changes(self, request, pk=None):
        """Ask for another design revision."""
        booking = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = self.booking_service.request_design_changes(
            booking.id, serializer.validated_data['feedback']
        )
        return Response(BookingDetailSerializer(booking).data)
