from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'inventory'

router = DefaultRouter()
router.register(r'medications', views.MedicationViewSet, basename='medication')
router.register(r'movements', views.StockMovementViewSet, basename='movement')
router.register(r'reorder-suggestions', views.ReorderSuggestionViewSet, basename='reorder-suggestion')

urlpatterns = [
    # GET /api/inventory/batches/
    # GET /api/inventory/batches/fifo/
    path('batches/', views.batch_list, name='batches'),
    path('batches/fifo/', views.fifo_recommendations, name='fifo'),

    # GET /api/inventory/alerts/
    path('alerts/', views.alert_list, name='alerts'),

    path('summary/', views.stock_summary, name='summary'),
    path('valuation/', views.inventory_valuation, name='valuation'),
    path('historical-cost/', views.historical_cost, name='historical-cost'),

    path('', include(router.urls)),
]
