from django.contrib import admin
from .models import CartItem


@admin.register(CartItem)
class CartItemAdmin(admin.ModelAdmin):
    """
    Admin interface for signed-in users' cart lines.
    Guest carts live in the session and are not visible here.
    """
    list_display = ('id', 'user', 'product', 'size', 'color', 'quantity',
                    'get_subtotal', 'updated_at')
    list_filter = ('created_at', 'updated_at')
    search_fields = ('id', 'product__name', 'user__email', 'user__username')
    readonly_fields = ('id', 'get_subtotal', 'created_at', 'updated_at')
    list_select_related = ('user', 'product')
    list_per_page = 25

    fieldsets = (
        ('Line', {
            'fields': ('id', 'user', 'product', 'size', 'color', 'quantity')
        }),
        ('Calculated Values', {
            'fields': ('get_subtotal',)
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def get_subtotal(self, obj):
        """Display the calculated subtotal"""
        if obj.pk and obj.product_id:
            return f"₹{obj.total_price:.2f}"
        return "-"
    get_subtotal.short_description = 'Subtotal'
