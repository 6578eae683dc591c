from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import (
    AvailabilityViewSet,
    LocationViewSet,
    ShiftCategoryViewSet,
    ShiftTemplateViewSet,
    ShiftViewSet,
    StaffCategoryRateViewSet,
    SwapRequestViewSet,
)

router = DefaultRouter()
router.register(r'locations', LocationViewSet, basename='location')
router.register(r'categories', ShiftCategoryViewSet, basename='shift-category')
router.register(r'category-rates', StaffCategoryRateViewSet, basename='staff-category-rate')
router.register(r'shifts', ShiftViewSet, basename='shift')
router.register(r'templates', ShiftTemplateViewSet, basename='shift-template')
router.register(r'availability', AvailabilityViewSet, basename='availability')
router.register(r'swap-requests', SwapRequestViewSet, basename='swap-request')

urlpatterns = [
    path('', include(router.urls)),
]
