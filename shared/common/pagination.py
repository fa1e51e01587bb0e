# shared/common/pagination.py
"""
Pagination for list endpoints.

Every page is wrapped in the same ``success`` envelope as single-object
responses.
"""

from typing import Any, Dict

from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class StandardPagination(PageNumberPagination):
    """Bookings, waitlist entries, rules and notifications."""

    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100

    def get_paginated_response(self, data: Any) -> Response:
        paginator = self.page.paginator
        return Response({
            'success': True,
            'count': paginator.count,
            'total_pages': paginator.num_pages,
            'current_page': self.page.number,
            'next': self.get_next_link(),
            'previous': self.get_previous_link(),
            'results': data,
        })

    def get_paginated_response_schema(self, schema: Dict) -> Dict:
        return {
            'type': 'object',
            'required': ['success', 'count', 'results'],
            'properties': {
                'success': {'type': 'boolean', 'example': True},
                'count': {'type': 'integer', 'example': 64},
                'total_pages': {'type': 'integer', 'example': 4},
                'current_page': {'type': 'integer', 'example': 1},
                'next': {'type': 'string', 'format': 'uri', 'nullable': True},
                'previous': {'type': 'string', 'format': 'uri', 'nullable': True},
                'results': schema,
            }
        }


class CampaignGridPagination(StandardPagination):
    """
    Routes and industries are drawn as one slot grid per campaign, so
    the whole catalogue normally fits on a single page.
    """

    page_size = 100
    max_page_size = 500
