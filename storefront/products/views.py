from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.viewsets import ModelViewSet, ReadOnlyModelViewSet
from rest_framework.permissions import AllowAny, IsAdminUser
from django.utils.decorators import method_decorator
from django.views.decorators.cache import cache_page
from drf_spectacular.utils import extend_schema, extend_schema_view, OpenApiParameter
from .filters import ProductFilter
from .models import Category, Product
from .serializers import (
    CategorySerializer,
    ProductListSerializer,
    ProductDetailSerializer,
    ProductCreateSerializer
)

FEATURED_LIMIT = 8


def storefront_products(user):
    return Product.objects.with_media().visible_to(user)


@extend_schema_view(
    list=extend_schema(
        summary="Category tree",
        description="Active categories, flat, with `parent` ids for building the menu. Cached for 15 minutes.",
        tags=['catalog'],
    ),
    retrieve=extend_schema(summary="Category by slug", tags=['catalog']),
)
class CategoryViewSet(ReadOnlyModelViewSet):
    """
    Shop sections such as Men > Shirts. Managed in the Django admin.
    """
    queryset = Category.objects.filter(is_active=True)
    serializer_class = CategorySerializer
    lookup_field = 'slug'
    permission_classes = [AllowAny]
    pagination_class = None
    search_fields = ['name', 'slug']

    @method_decorator(cache_page(60 * 15))
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @extend_schema(
        summary="Products in a category",
        description="Includes products of every sub-category.",
        tags=['catalog'],
        responses={200: ProductListSerializer(many=True)},
    )
    @action(detail=True)
    def products(self, request, slug=None):
        category = self.get_object()
        products = storefront_products(request.user).filter(
            category__in=category.get_descendants(include_self=True))
        serializer = ProductListSerializer(
            products, many=True, context=self.get_serializer_context())
        return Response(serializer.data)


@extend_schema_view(
    list=extend_schema(
        summary="Browse the catalog",
        description="""
        Newest garments first.

        - `category`: slug(s), comma separated, sub-categories included
        - `min_price` / `max_price`
        - `size`, `color`, `tag`: comma separated, any match
        - `in_stock`, `is_featured`: true/false
        - `search`: name, description or SKU
        - `ordering`: `price`, `name`, `created_at`, prefix `-` to reverse
        """,
        tags=['catalog'],
        parameters=[
            OpenApiParameter(name='category', required=False, type=str),
            OpenApiParameter(name='min_price', required=False, type=float),
            OpenApiParameter(name='max_price', required=False, type=float),
            OpenApiParameter(name='size', required=False, type=str),
            OpenApiParameter(name='color', required=False, type=str),
            OpenApiParameter(name='tag', required=False, type=str),
            OpenApiParameter(name='in_stock', required=False, type=bool),
            OpenApiParameter(name='is_featured', required=False, type=bool),
        ]
    ),
    retrieve=extend_schema(summary="Garment details", tags=['catalog']),
    create=extend_schema(summary="Add a garment (admin)", tags=['catalog']),
    update=extend_schema(summary="Replace a garment (admin)", tags=['catalog']),
    partial_update=extend_schema(summary="Edit a garment (admin)", tags=['catalog']),
    destroy=extend_schema(summary="Delete a garment (admin)", tags=['catalog']),
)
class ProductViewSet(ModelViewSet):
    """
    The catalog. Anyone can browse; only staff can change it.
    """
    lookup_field = 'slug'
    filterset_class = ProductFilter
    search_fields = ['name', 'description', 'sku']
    ordering_fields = ['price', 'created_at', 'name']
    ordering = ['-created_at']
    pagination_class = None
    queryset = Product.objects.none()  # For schema generation

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return Product.objects.none()
        return storefront_products(self.request.user)

    def get_serializer_class(self):
        if self.action in ('list', 'featured'):
            return ProductListSerializer
        if self.action in ('create', 'update', 'partial_update'):
            return ProductCreateSerializer
        return ProductDetailSerializer

    def get_permissions(self):
        if self.action in ('list', 'retrieve', 'featured'):
            return [AllowAny()]
        return [IsAdminUser()]

    @extend_schema(
        summary="Featured garments",
        description=f"Up to {FEATURED_LIMIT} featured, in-stock products for the home page.",
        tags=['catalog'],
    )
    @action(detail=False)
    def featured(self, request):
        products = self.get_queryset().featured().in_stock().order_by('-created_at')[:FEATURED_LIMIT]
        return Response(self.get_serializer(products, many=True).data)
