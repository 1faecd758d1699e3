from django.db import models
from django.utils.text import slugify
from django.utils.translation import gettext_lazy as _
from mptt.models import MPTTModel, TreeForeignKey


class SlugFromNameMixin:
    """Fill an empty `slug` from `name` on save."""

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.name)
        super().save(*args, **kwargs)


class Category(SlugFromNameMixin, MPTTModel):
    """
    A shop section. Sections nest, e.g. Men > Shirts > Linen.
    """
    parent = TreeForeignKey(
        'self',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='children'
    )
    name = models.CharField(max_length=100, unique=True)
    slug = models.SlugField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class MPTTMeta:
        order_insertion_by = ['name']

    class Meta:
        verbose_name_plural = 'categories'
        ordering = ['name']

    def __str__(self):
        return self.name


class ProductQuerySet(models.QuerySet):

    def with_media(self):
        return self.select_related('category').prefetch_related('images')

    def visible_to(self, user):
        """Staff see the whole catalog, everyone else only active garments."""
        if user is not None and user.is_staff:
            return self
        return self.filter(is_active=True)

    def in_stock(self):
        return self.filter(stock_quantity__gt=0)

    def featured(self):
        return self.filter(is_featured=True)


class Product(SlugFromNameMixin, models.Model):
    """
    A garment in the catalog.
    Sizes and colours are the variants a shopper picks when adding to cart.
    """
    category = TreeForeignKey(
        Category,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='products'
    )
    name = models.CharField(max_length=225)
    slug = models.SlugField(max_length=225, unique=True)
    description = models.TextField(blank=True)
    sku = models.CharField(max_length=50, unique=True, help_text=_("Stock keeping unit"))

    price = models.DecimalField(max_digits=10, decimal_places=2)
    discount_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text=_("Sale price; charged instead of the price when set.")
    )

    sizes = models.JSONField(
        default=list, blank=True, help_text=_("e.g. [\"S\", \"M\", \"L\"]"))
    colors = models.JSONField(
        default=list, blank=True, help_text=_("e.g. [\"Black\", \"Olive\"]"))
    tags = models.JSONField(default=list, blank=True)

    stock_quantity = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    is_featured = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ProductQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['slug']),
            models.Index(fields=['sku']),
            models.Index(fields=['is_active', 'is_featured'])
        ]

    def __str__(self):
        return self.name

    @property
    def current_price(self):
        return self.discount_price if self.discount_price else self.price

    @property
    def in_stock(self):
        return self.stock_quantity > 0

    @property
    def main_image(self):
        """
        Featured image, or the first one.
        Works from prefetched images, so it is safe inside async code.
        """
        images = list(self.images.all())
        return next((img for img in images if img.is_featured), images[0] if images else None)

    def offers(self, size=None, color=None):
        """True if the size/colour pair is one this product is sold in."""
        if size and size not in (self.sizes or []):
            return False
        if color and color not in (self.colors or []):
            return False
        return True


class ProductImage(models.Model):
    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name='images'
    )
    image = models.ImageField(upload_to='products/%Y/%m/')
    alt_text = models.CharField(max_length=225, blank=True)
    is_featured = models.BooleanField(
        default=False, help_text=_("Shown on the product card."))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-is_featured', 'created_at']

    def __str__(self):
        return f"Image for {self.product.name}"
