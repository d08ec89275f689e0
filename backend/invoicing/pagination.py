from rest_framework.pagination import PageNumberPagination


class DynamicPageSizePagination(PageNumberPagination):
    page_size = 12
    page_size_query_param = 'page_size'  # the frontend picks the page size
    max_page_size = 100
