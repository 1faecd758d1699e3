from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'orders'

router = DefaultRouter()
router.register('orders', views.OrderViewSet, basename='order')
router.register('admin/orders', views.AdminOrderViewSet, basename='admin-order')

urlpatterns = [
    path('', include(router.urls)),
    path('checkout/', views.CheckoutView.as_view(), name='checkout'),
    path('admin/stats/', views.AdminStatsView.as_view(), name='admin-stats'),
]
