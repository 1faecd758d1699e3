from asgiref.sync import async_to_sync
from django.contrib import messages
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_spectacular.utils import extend_schema, OpenApiExample

from .serializers import CartSerializer, AddCartLineSerializer, CartLineQuantitySerializer
from .services import ShoppingCart
from .state import LineNotFound


class CartMixin:
    """
    Shared plumbing for the cart endpoints.

    Guests are served from the session; signed-in users from the cart table.
    A mutation the database rejected is answered with 503 and the cart as it
    was before the call, plus the error notice.
    """
    permission_classes = [AllowAny]

    def get_cart(self, request):
        cart = ShoppingCart.for_request(request)
        loaded = async_to_sync(cart.load)()
        return cart, loaded

    def cart_response(self, request, cart, applied=True, status_code=status.HTTP_200_OK):
        data = dict(CartSerializer(cart).data)
        data['notices'] = [
            {'level': message.level_tag, 'message': message.message}
            for message in messages.get_messages(request)
        ]
        if not applied:
            status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return Response(data, status=status_code)

    def not_found(self, line_id):
        return Response(
            {"detail": f"Cart line {line_id} not found."},
            status=status.HTTP_404_NOT_FOUND
        )


class CartView(CartMixin, APIView):
    """
    The current visitor's cart.
    """

    @extend_schema(
        summary="Get cart contents",
        description="""
        Returns all cart lines with their quantities and the derived totals.

        - Guests: the cart stored in the session
        - Signed-in users: the cart stored on the account
        """,
        tags=['cart'],
        responses={200: CartSerializer},
    )
    def get(self, request):
        cart, loaded = self.get_cart(request)
        return self.cart_response(request, cart, applied=loaded)

    @extend_schema(
        summary="Clear cart",
        description="Removes every line. On failure the cart is restored unchanged.",
        tags=['cart'],
        responses={200: CartSerializer, 503: CartSerializer},
    )
    def delete(self, request):
        cart, loaded = self.get_cart(request)
        if not loaded:
            return self.cart_response(request, cart, applied=False)
        applied = async_to_sync(cart.clear)()
        return self.cart_response(request, cart, applied=applied)


class CartLineListView(CartMixin, APIView):

    @extend_schema(
        summary="Add item to cart",
        description="""
        Add a product (optionally with size and colour) to the cart.

        - If the same product, size and colour is already in the cart, its quantity is increased
        - Signed-in users only see the line once it has been saved
        """,
        tags=['cart'],
        request=AddCartLineSerializer,
        responses={201: CartSerializer, 400: None, 503: CartSerializer},
        examples=[
            OpenApiExample(
                'Add a shirt in M / Olive',
                value={
                    "product_id": 1,
                    "quantity": 2,
                    "size": "M",
                    "color": "Olive"
                },
                request_only=True
            ),
        ]
    )
    def post(self, request):
        serializer = AddCartLineSerializer(
            data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)

        cart, loaded = self.get_cart(request)
        if not loaded:
            return self.cart_response(request, cart, applied=False)
        applied = async_to_sync(cart.add_line)(serializer.to_line())
        return self.cart_response(
            request, cart, applied=applied, status_code=status.HTTP_201_CREATED)


class CartLineDetailView(CartMixin, APIView):

    @extend_schema(
        summary="Update item quantity",
        description="""
        Update the quantity of a cart line.

        Set `quantity: 0` to remove the line, or use DELETE.
        """,
        tags=['cart'],
        request=CartLineQuantitySerializer,
        responses={200: CartSerializer, 404: None, 503: CartSerializer},
        examples=[
            OpenApiExample(
                'Update quantity',
                value={"quantity": 3},
                request_only=True
            ),
        ]
    )
    def patch(self, request, line_id):
        serializer = CartLineQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        cart, loaded = self.get_cart(request)
        if not loaded:
            return self.cart_response(request, cart, applied=False)
        try:
            applied = async_to_sync(cart.set_quantity)(
                line_id, serializer.validated_data['quantity'])
        except LineNotFound:
            return self.not_found(line_id)
        return self.cart_response(request, cart, applied=applied)

    @extend_schema(
        summary="Remove item from cart",
        description="Remove a line from the cart completely.",
        tags=['cart'],
        responses={200: CartSerializer, 404: None, 503: CartSerializer},
    )
    def delete(self, request, line_id):
        cart, loaded = self.get_cart(request)
        if not loaded:
            return self.cart_response(request, cart, applied=False)
        try:
            applied = async_to_sync(cart.remove_line)(line_id)
        except LineNotFound:
            return self.not_found(line_id)
        return self.cart_response(request, cart, applied=applied)
