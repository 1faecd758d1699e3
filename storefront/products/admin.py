from django.contrib import admin
from mptt.admin import DraggableMPTTAdmin
from .models import Category, Product, ProductImage


@admin.register(Category)
class CategoryAdmin(DraggableMPTTAdmin):
    mptt_indent_field = "name"
    list_display = ('tree_actions', 'indented_title', 'slug', 'product_total', 'is_active')
    list_display_links = ('indented_title',)
    list_filter = ('is_active',)
    search_fields = ('name', 'slug')
    prepopulated_fields = {'slug': ('name',)}

    def get_queryset(self, request):
        # Counts include products filed under sub-categories.
        return Category.objects.add_related_count(
            super().get_queryset(request), Product, 'category',
            'products_cumulative', cumulative=True)

    @admin.display(description='Products')
    def product_total(self, obj):
        return obj.products_cumulative


class ProductImageInline(admin.TabularInline):
    model = ProductImage
    extra = 1


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ('name', 'category', 'get_variants', 'price', 'discount_price',
                    'stock_quantity', 'is_active', 'is_featured')
    list_select_related = ('category',)
    list_filter = ('is_active', 'is_featured', 'category', 'created_at')
    search_fields = ('name', 'sku', 'description')
    prepopulated_fields = {'slug': ('name',)}
    inlines = [ProductImageInline]
    list_editable = ('price', 'stock_quantity', 'is_active', 'is_featured')
    actions = ['mark_inactive']

    @admin.display(description='Sizes / Colours')
    def get_variants(self, obj):
        sizes = ', '.join(obj.sizes or []) or '-'
        colors = ', '.join(obj.colors or []) or '-'
        return f"{sizes} / {colors}"

    @admin.action(description='Hide selected products from the shop')
    def mark_inactive(self, request, queryset):
        updated = queryset.update(is_active=False)
        self.message_user(request, f"{updated} product(s) hidden.")
