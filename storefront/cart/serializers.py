from rest_framework import serializers
from products.models import Product

from .state import CartLine


class CartLineSerializer(serializers.Serializer):
    """
    One cart line as the frontend sees it.
    Name, price and image are the snapshot taken when the line was added.
    """
    id = serializers.CharField(read_only=True)
    product_id = serializers.IntegerField(read_only=True)
    name = serializers.CharField(read_only=True)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    quantity = serializers.IntegerField(read_only=True)
    size = serializers.CharField(read_only=True, allow_null=True)
    color = serializers.CharField(read_only=True, allow_null=True)
    image = serializers.CharField(read_only=True)
    sub_total = serializers.DecimalField(
        source='subtotal',
        max_digits=10,
        decimal_places=2,
        read_only=True
    )


class CartSerializer(serializers.Serializer):
    """
    The whole cart: lines plus totals derived from them.
    """
    lines = CartLineSerializer(many=True, read_only=True)
    total_items = serializers.IntegerField(read_only=True)
    total_amount = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        read_only=True
    )
    is_authenticated = serializers.BooleanField(read_only=True)


class AddCartLineSerializer(serializers.Serializer):
    """
    Add a product to the cart.
    If the same product, size and colour is already in the cart its
    quantity is increased instead.
    """
    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1, default=1)
    size = serializers.CharField(
        max_length=20, required=False, allow_blank=True, allow_null=True)
    color = serializers.CharField(
        max_length=40, required=False, allow_blank=True, allow_null=True)

    def validate_product_id(self, value):
        """Ensure the product exists and is in stock"""
        try:
            product = Product.objects.prefetch_related('images').get(id=value)
        except Product.DoesNotExist:
            raise serializers.ValidationError("Product not found")
        if not product.is_active:
            raise serializers.ValidationError(
                "This product is not available.")
        if not product.in_stock:
            raise serializers.ValidationError(
                "This product is out of stock")
        self.product = product
        return value

    def validate(self, data):
        product = self.product
        size = data.get('size') or None
        color = data.get('color') or None
        if size and not product.offers(size=size):
            raise serializers.ValidationError(
                {"size": f"Size {size} is not available for {product.name}."})
        if color and not product.offers(color=color):
            raise serializers.ValidationError(
                {"color": f"Colour {color} is not available for {product.name}."})
        data['size'] = size
        data['color'] = color
        return data

    def to_line(self):
        """Snapshot the product into an unsaved CartLine (no id yet)."""
        product = self.product
        image = product.main_image
        return CartLine(
            id='',
            product_id=product.pk,
            name=product.name,
            price=product.current_price,
            quantity=self.validated_data['quantity'],
            size=self.validated_data['size'],
            color=self.validated_data['color'],
            image=image.image.url if image else '',
        )


class CartLineQuantitySerializer(serializers.Serializer):
    """Set a line's quantity. Zero removes the line."""
    quantity = serializers.IntegerField(min_value=0)
