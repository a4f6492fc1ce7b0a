from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import AllocateNumberView, NumberingConfigViewSet


router = DefaultRouter()
router.register(r'configs', NumberingConfigViewSet)

urlpatterns = [
    path('allocate/', AllocateNumberView.as_view(), name='numbering-allocate'),
    path('', include(router.urls)),
]
