from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import PayPeriodViewSet, staff_costs

router = DefaultRouter()
router.register(r'pay-periods', PayPeriodViewSet, basename='pay-period')

urlpatterns = [
    path('staff-costs/', staff_costs, name='staff-costs'),
    path('', include(router.urls)),
]
