"""
Aidat — API URL Configuration
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

router = DefaultRouter()
router.register(r'apartments', views.ApartmentViewSet, basename='apartments')
router.register(r'payments', views.PaymentViewSet, basename='payments')
router.register(r'advance-payments', views.AdvancePaymentViewSet, basename='advance-payments')

urlpatterns = [
    # Auth
    path('auth/login/', views.LoginView.as_view(), name='login'),
    path('auth/session/', views.SessionView.as_view(), name='session'),

    path('', include(router.urls)),

    # Summary & Reports
    path('summary/', views.SummaryView.as_view(), name='summary'),
    path('dashboard/', views.DashboardView.as_view(), name='dashboard'),
    path('reports/', views.ReportView.as_view(), name='reports'),
    path('reports/export/', views.ReportExportView.as_view(), name='reports-export'),

    # WhatsApp
    path('messages/debtors/', views.DebtorListView.as_view(), name='message-debtors'),
    path('messages/draft/', views.MessageDraftView.as_view(), name='message-draft'),

    path('snapshot/reload/', views.SnapshotReloadView.as_view(), name='snapshot-reload'),
]
