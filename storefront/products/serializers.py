from rest_framework import serializers
from .models import Category, Product, ProductImage


class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ['id', 'name', 'slug', 'parent', 'description']


class ProductImageSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductImage
        fields = ['id', 'image', 'alt_text', 'is_featured']


class ProductListSerializer(serializers.ModelSerializer):
    """
    A product card in the shop grid.
    The image comes from the prefetched images, so listing costs no extra queries.
    """
    category_name = serializers.ReadOnlyField(source='category.name')
    category_slug = serializers.ReadOnlyField(source='category.slug')
    current_price = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    main_image = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'slug',
            'category_name', 'category_slug',
            'price', 'discount_price', 'current_price',
            'sizes', 'colors',
            'main_image', 'in_stock', 'is_featured',
        ]

    def get_main_image(self, obj):
        image = obj.main_image
        if image is None:
            return None
        request = self.context.get('request')
        return request.build_absolute_uri(image.image.url) if request else image.image.url


class ProductDetailSerializer(ProductListSerializer):
    """The product page: everything on the card plus the gallery and stock."""
    category = CategorySerializer(read_only=True)
    images = ProductImageSerializer(many=True, read_only=True)

    class Meta(ProductListSerializer.Meta):
        fields = ProductListSerializer.Meta.fields + [
            'description', 'category', 'tags', 'sku',
            'stock_quantity', 'images', 'created_at', 'updated_at',
        ]


class ProductCreateSerializer(serializers.ModelSerializer):
    """
    Admin form for a product. `category` is written as an id, and the slug
    is derived from the name when left out.
    """
    sizes = serializers.ListField(
        child=serializers.CharField(max_length=20), required=False)
    colors = serializers.ListField(
        child=serializers.CharField(max_length=40), required=False)
    tags = serializers.ListField(
        child=serializers.CharField(max_length=40), required=False)

    class Meta:
        model = Product
        fields = [
            'id', 'category', 'name', 'slug', 'description',
            'price', 'discount_price',
            'sizes', 'colors', 'tags',
            'sku', 'stock_quantity', 'is_active', 'is_featured',
        ]
        extra_kwargs = {'slug': {'required': False}}

    def validate(self, data):
        price = data.get('price', getattr(self.instance, 'price', None))
        discount = data.get('discount_price')
        if discount is not None and price is not None and discount >= price:
            raise serializers.ValidationError(
                {"discount_price": "Discount price must be lower than the price."})
        return data
