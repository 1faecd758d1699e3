from django import forms
from django.contrib import admin
from .models import Order, OrderItem


class OrderAdminForm(forms.ModelForm):

    class Meta:
        model = Order
        fields = '__all__'

    def clean_status(self):
        status = self.cleaned_data['status']
        order = self.instance
        # `instance` still holds the stored status until the form is saved.
        if order._state.adding or status == order.status or order.can_move_to(status):
            return status
        raise forms.ValidationError(
            f"Cannot move from {order.get_status_display()} to {Order.Status(status).label}.")


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ('product', 'product_name', 'size', 'color',
                       'unit_price', 'quantity', 'get_total')

    def get_total(self, obj):
        return f"₹{obj.total_price:.2f}"
    get_total.short_description = 'Total'


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ('id', 'shipping_name', 'user', 'status', 'payment_method',
                    'shipping_method', 'total', 'created_at', 'paid_at')
    list_filter = ('status', 'payment_method', 'shipping_method', 'created_at')
    search_fields = ('id', 'user__email', 'shipping_email', 'shipping_name', 'payment_id')
    readonly_fields = ('id', 'subtotal', 'shipping_cost', 'total',
                       'payment_id', 'created_at', 'paid_at')
    list_editable = ('status',)
    inlines = [OrderItemInline]
    form = OrderAdminForm
    list_per_page = 25
    ordering = ['-created_at']

    def get_changelist_form(self, request, **kwargs):
        kwargs.setdefault('form', OrderAdminForm)
        return super().get_changelist_form(request, **kwargs)
