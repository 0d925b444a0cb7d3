from django.urls import path
from rest_framework.routers import DefaultRouter

from .views import ApprovalDecisionView, QuotationViewSet

router = DefaultRouter()
router.register(r'quotations', QuotationViewSet, basename='quotations')

urlpatterns = [
    path('approvals/<int:id>/decide/', ApprovalDecisionView.as_view(), name='approval-decide'),
]
urlpatterns += router.urls
