from django.contrib import admin
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from users.views import RegisterView, UserDetailView
from logistics.views import (
    NotificationViewSet,
    OrderViewSet,
    PharmacyViewSet,
    RiderViewSet,
    WithdrawalRequestViewSet,
)

router = DefaultRouter()
router.register(r'orders', OrderViewSet, basename='order')
router.register(r'riders', RiderViewSet, basename='rider')
router.register(r'pharmacies', PharmacyViewSet)
router.register(r'withdrawals', WithdrawalRequestViewSet)
router.register(r'notifications', NotificationViewSet, basename='notification')

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include(router.urls)),
    path('api/v1/auth/register/', RegisterView.as_view(), name='register'),
    path('api/v1/auth/me/', UserDetailView.as_view(), name='user-detail'),
]
