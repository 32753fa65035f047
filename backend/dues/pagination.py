"""
Pagination that lets the client pick page_size, so the report and payment
screens can ask for a whole year of dues in one page.
"""
from rest_framework.pagination import PageNumberPagination


class FlexiblePageNumberPagination(PageNumberPagination):
    """PageNumberPagination that accepts page_size from query params."""
    page_size = 50
    page_size_query_param = 'page_size'
    max_page_size = 10000

    def get_paginated_response_with(self, data, **extra):
        response = self.get_paginated_response(data)
        response.data.update(extra)
        return response
