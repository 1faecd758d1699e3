from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_spectacular.utils import extend_schema, OpenApiExample
from products.serializers import ProductListSerializer

from .serializers import WishlistAddSerializer
from .services import Wishlist


class WishlistView(APIView):
    """
    The visitor's wishlist.

    Guests keep it in the session; it is merged into the account at sign-in.
    """
    permission_classes = [AllowAny]

    @extend_schema(
        summary="List wishlist",
        description="Returns the saved products, most recently saved first.",
        tags=['wishlist'],
        responses={200: ProductListSerializer(many=True)},
    )
    def get(self, request):
        products = Wishlist.for_request(request).products()
        serializer = ProductListSerializer(
            products, many=True, context={'request': request})
        return Response(serializer.data)

    @extend_schema(
        summary="Add to wishlist",
        description="Saving a product twice is not an error; the response says whether it was new.",
        tags=['wishlist'],
        request=WishlistAddSerializer,
        responses={201: None, 200: None, 400: None},
        examples=[
            OpenApiExample('Save a product', value={"product_id": 1}, request_only=True),
        ]
    )
    def post(self, request):
        serializer = WishlistAddSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        created = Wishlist.for_request(request).add(serializer.product)
        return Response(
            {"product_id": serializer.product.pk, "added": created},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK
        )


class WishlistItemView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(
        summary="Check wishlist",
        description="Whether a product is on the wishlist.",
        tags=['wishlist'],
    )
    def get(self, request, product_id):
        in_wishlist = Wishlist.for_request(request).contains(product_id)
        return Response({"product_id": product_id, "in_wishlist": in_wishlist})

    @extend_schema(
        summary="Remove from wishlist",
        tags=['wishlist'],
        responses={204: None, 404: None},
    )
    def delete(self, request, product_id):
        if not Wishlist.for_request(request).remove(product_id):
            return Response(
                {"detail": "Product is not on the wishlist."},
                status=status.HTTP_404_NOT_FOUND
            )
        return Response(status=status.HTTP_204_NO_CONTENT)
