from django.urls import path

from .views import ExchangeRateValidateView, ExchangeRateView, MarginResolveView

urlpatterns = [
    path('exchange-rates/', ExchangeRateView.as_view(), name='exchange-rates'),
    path('exchange-rates/validate/', ExchangeRateValidateView.as_view(), name='exchange-rates-validate'),
    path('margin-rules/resolve/', MarginResolveView.as_view(), name='margin-rule-resolve'),
]
