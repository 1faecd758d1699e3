from django.urls import path
from .views import WishlistView, WishlistItemView

app_name = 'wishlist'

urlpatterns = [
    path('wishlist/', WishlistView.as_view(), name='wishlist'),
    path('wishlist/<int:product_id>/', WishlistItemView.as_view(), name='wishlist-item'),
]
