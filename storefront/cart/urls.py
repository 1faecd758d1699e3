from django.urls import path
from .views import CartView, CartLineListView, CartLineDetailView

app_name = 'cart'

# The cart is always "the visitor's cart", so there is no cart id in the URL:
# guests are resolved through the session, signed-in users through the account.
urlpatterns = [
    path('cart/', CartView.as_view(), name='cart'),
    path('cart/lines/', CartLineListView.as_view(), name='cart-lines'),
    path('cart/lines/<str:line_id>/', CartLineDetailView.as_view(), name='cart-line-detail'),
]
