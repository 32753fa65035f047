"""
Aidat — API Views
All endpoints of the apartment dues tracker. Every request works on a fresh
snapshot loaded by DuesService; list and summary responses say whether that
snapshot came from the store or from the local cache.
"""
import logging

from django.http import HttpResponse
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from . import messaging, reports
from .exceptions import DuesEngineError
from .serializers import (
    AdvanceBatchSerializer, AdvancePaymentSerializer, AdvancePlanSerializer,
    ApartmentSerializer, ApplyPaymentSerializer, ConfirmSerializer, DashboardSerializer,
    DebtorSerializer, DraftMessageSerializer, GenerateDuesSerializer, LoginSerializer,
    MessageDraftSerializer, MonthlySummarySerializer, MonthQuerySerializer,
    PaymentFilterSerializer, PaymentSerializer, PaymentUpdateSerializer,
    ReportQuerySerializer, ReportRowSerializer, ReportTotalsSerializer, SessionSerializer,
)
from .services import DuesService
from .session import ADMIN_ROLE, AdminSession, issue_admin_token

logger = logging.getLogger(__name__)


def get_service(request):
    return DuesService(session=AdminSession.from_request(request))


def source_fields(snapshot):
    data = {'source': snapshot.source}
    if snapshot.warning:
        data['warning'] = snapshot.warning
    return data


def engine_error_response(exc):
    return Response(exc.as_payload(), status=status.HTTP_400_BAD_REQUEST)


def confirmed(request):
    """Destructive calls carry confirm=true in the query string or the body."""
    if request.query_params.get('confirm', '').lower() in ('true', '1', 'yes'):
        return True
    serializer = ConfirmSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data['confirm']


class SnapshotListMixin:

    def list_response(self, records, serializer_class, snapshot):
        extra = source_fields(snapshot)
        page = self.paginate_queryset(records)
        if page is not None:
            data = serializer_class(page, many=True).data
            return self.paginator.get_paginated_response_with(data, **extra)
        return Response({'results': serializer_class(records, many=True).data, **extra})


# ═══════════════════════════════════════════════════════════
#  AUTH
# ═══════════════════════════════════════════════════════════

class LoginView(APIView):
    """POST /api/auth/login/"""
    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        token = issue_admin_token()
        session = AdminSession.from_token(token)
        logger.info('Admin session opened')
        return Response({
            'access': str(token),
            'role': ADMIN_ROLE,
            'expires_at': session.expires_at,
        })


class SessionView(APIView):
    """GET /api/auth/session/"""

    def get(self, request):
        return Response(SessionSerializer(AdminSession.from_request(request)).data)


# ═══════════════════════════════════════════════════════════
#  APARTMENTS
# ═══════════════════════════════════════════════════════════

class ApartmentViewSet(SnapshotListMixin, viewsets.GenericViewSet):
    """CRUD /api/apartments/"""
    serializer_class = ApartmentSerializer
    lookup_value_regex = r'\d+'

    def list(self, request):
        snapshot = get_service(request).snapshot
        return self.list_response(snapshot.apartments, ApartmentSerializer, snapshot)

    def retrieve(self, request, pk=None):
        apartment = get_service(request).snapshot.apartment(int(pk))
        return Response(ApartmentSerializer(apartment).data)

    def create(self, request):
        serializer = ApartmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        apartment = get_service(request).create_apartment(**serializer.validated_data)
        return Response(ApartmentSerializer(apartment).data, status=status.HTTP_201_CREATED)

    def update(self, request, pk=None, partial=False):
        serializer = ApartmentSerializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        apartment = get_service(request).update_apartment(int(pk), **serializer.validated_data)
        return Response(ApartmentSerializer(apartment).data)

    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk, partial=True)

    def destroy(self, request, pk=None):
        removed = get_service(request).delete_apartment(int(pk), confirm=confirmed(request))
        return Response({
            'detail': 'Daire ve tüm aidat kayıtları silindi.',
            'deleted_payments': removed,
        })

    @action(detail=True, methods=['get'])
    def payments(self, request, pk=None):
        """GET /api/apartments/{id}/payments/"""
        snapshot = get_service(request).snapshot
        snapshot.apartment(int(pk))
        return self.list_response(snapshot.payments_for(int(pk)), PaymentSerializer, snapshot)


# ═══════════════════════════════════════════════════════════
#  PAYMENTS
# ═══════════════════════════════════════════════════════════

class PaymentViewSet(SnapshotListMixin, viewsets.GenericViewSet):
    """CRUD /api/payments/ plus entry, bulk generation and revert."""
    serializer_class = PaymentSerializer
    lookup_value_regex = r'\d+'

    def list(self, request):
        filters = PaymentFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        month = filters.validated_data.get('month')
        apartment_id = filters.validated_data.get('apartment_id')

        snapshot = get_service(request).snapshot
        payments = snapshot.payments
        if month:
            payments = [p for p in payments if p.month == month]
        if apartment_id:
            payments = [p for p in payments if p.apartment_id == apartment_id]
        return self.list_response(payments, PaymentSerializer, snapshot)

    def retrieve(self, request, pk=None):
        payment = get_service(request).snapshot.payment(int(pk))
        return Response(PaymentSerializer(payment).data)

    def create(self, request):
        serializer = PaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = get_service(request).create_payment(**serializer.validated_data)
        return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        serializer = PaymentUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            payment = get_service(request).update_payment(int(pk), **serializer.validated_data)
        except DuesEngineError as exc:
            return engine_error_response(exc)
        return Response(PaymentSerializer(payment).data)

    def destroy(self, request, pk=None):
        get_service(request).delete_payment(int(pk), confirm=confirmed(request))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['post'], url_path='generate')
    def generate(self, request):
        """POST /api/payments/generate/"""
        serializer = GenerateDuesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            result = get_service(request).generate_monthly(data['month'], data['amount'],
                                                           data['due_date'])
        except DuesEngineError as exc:
            return engine_error_response(exc)

        if result.created_count:
            detail = f'{result.created_count} daire için {result.month} aidat kaydı oluşturuldu.'
        else:
            detail = 'Bu ay için tüm dairelerin aidat kayıtları zaten mevcut.'
        return Response({
            'detail': detail,
            'month': result.month,
            'created_count': result.created_count,
            'skipped': result.skipped,
            'payments': PaymentSerializer(result.created, many=True).data,
        }, status=status.HTTP_201_CREATED if result.created_count else status.HTTP_200_OK)

    @action(detail=True, methods=['post'], url_path='apply')
    def apply(self, request, pk=None):
        """POST /api/payments/{id}/apply/"""
        serializer = ApplyPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            payment = get_service(request).apply_payment(
                int(pk), serializer.validated_data['paid_amount'])
        except DuesEngineError as exc:
            return engine_error_response(exc)
        return Response(PaymentSerializer(payment).data)

    @action(detail=True, methods=['post'], url_path='mark-paid')
    def mark_paid(self, request, pk=None):
        """POST /api/payments/{id}/mark-paid/"""
        try:
            payment = get_service(request).mark_paid(int(pk))
        except DuesEngineError as exc:
            return engine_error_response(exc)
        return Response(PaymentSerializer(payment).data)

    @action(detail=True, methods=['post'], url_path='revert')
    def revert(self, request, pk=None):
        """POST /api/payments/{id}/revert/"""
        payment = get_service(request).revert_payment(int(pk), confirm=confirmed(request))
        return Response(PaymentSerializer(payment).data)


# ═══════════════════════════════════════════════════════════
#  ADVANCE PAYMENTS
# ═══════════════════════════════════════════════════════════

class AdvancePaymentViewSet(viewsets.GenericViewSet):
    """POST /api/advance-payments/ plus preview and history."""
    serializer_class = AdvancePaymentSerializer

    def create(self, request):
        serializer = AdvancePaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            plan, stored = get_service(request).record_advance(**serializer.validated_data)
        except DuesEngineError as exc:
            return engine_error_response(exc)
        return Response({
            'detail': f'{len(stored)} ay için peşin ödeme kaydedildi.',
            'plan': AdvancePlanSerializer(plan).data,
            'payments': PaymentSerializer(stored, many=True).data,
        }, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['post'], url_path='preview')
    def preview(self, request):
        """POST /api/advance-payments/preview/"""
        serializer = AdvancePaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            plan = get_service(request).plan_advance(**serializer.validated_data)
        except DuesEngineError as exc:
            return engine_error_response(exc)
        return Response(AdvancePlanSerializer(plan).data)

    @action(detail=False, methods=['get'], url_path='history')
    def history(self, request):
        """GET /api/advance-payments/history/"""
        service = get_service(request)
        return Response({
            'results': AdvanceBatchSerializer(service.advance_history(), many=True).data,
            **source_fields(service.snapshot),
        })


# ═══════════════════════════════════════════════════════════
#  SUMMARY / DASHBOARD
# ═══════════════════════════════════════════════════════════

class SummaryView(APIView):
    """GET /api/summary/?month=YYYY-MM"""

    def get(self, request):
        query = MonthQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        service = get_service(request)
        summary = service.summary(query.validated_data['month'])
        return Response({
            **MonthlySummarySerializer(summary).data,
            **source_fields(service.snapshot),
        })


class DashboardView(APIView):
    """GET /api/dashboard/?month=YYYY-MM"""

    def get(self, request):
        query = MonthQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        service = get_service(request)
        board = service.dashboard(query.validated_data['month'])
        return Response({
            **DashboardSerializer(board).data,
            **source_fields(service.snapshot),
        })


# ═══════════════════════════════════════════════════════════
#  REPORTS
# ═══════════════════════════════════════════════════════════

def _build_report(request):
    query = ReportQuerySerializer(data=request.query_params)
    query.is_valid(raise_exception=True)
    snapshot = get_service(request).snapshot
    report = reports.build_report(snapshot.apartments, snapshot.payments, query.to_query())
    return report, snapshot


class ReportView(APIView):
    """GET /api/reports/?period=&search=&status=&sort=&order="""

    def get(self, request):
        report, snapshot = _build_report(request)
        return Response({
            'period': report.query.period,
            'count': len(report.rows),
            'totals': ReportTotalsSerializer(report.totals).data,
            'results': ReportRowSerializer(report.rows, many=True).data,
            **source_fields(snapshot),
        })


class ReportExportView(APIView):
    """GET /api/reports/export/ — same filters as /reports/, as CSV."""

    def get(self, request):
        report, _ = _build_report(request)
        try:
            content = reports.export_csv(report)
        except DuesEngineError as exc:
            return engine_error_response(exc)
        response = HttpResponse(content, content_type='text/csv; charset=utf-8')
        filename = reports.export_filename(report.query.period)
        response['Content-Disposition'] = f'attachment; filename="{filename}"'
        return response


# ═══════════════════════════════════════════════════════════
#  MESSAGES
# ═══════════════════════════════════════════════════════════

class DebtorListView(APIView):
    """GET /api/messages/debtors/"""

    def get(self, request):
        snapshot = get_service(request).snapshot
        debtors = messaging.debtors(snapshot.apartments, snapshot.payments)
        return Response({
            'count': len(debtors),
            'results': DebtorSerializer(debtors, many=True).data,
            **source_fields(snapshot),
        })


class MessageDraftView(APIView):
    """POST /api/messages/draft/"""

    def post(self, request):
        serializer = MessageDraftSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        snapshot = get_service(request).snapshot
        try:
            draft = messaging.draft_message(snapshot.apartments, snapshot.payments,
                                            data['apartment_id'], data['template'],
                                            data['custom_text'])
        except DuesEngineError as exc:
            return engine_error_response(exc)
        return Response(DraftMessageSerializer(draft).data)


# ═══════════════════════════════════════════════════════════
#  SNAPSHOT
# ═══════════════════════════════════════════════════════════

class SnapshotReloadView(APIView):
    """POST /api/snapshot/reload/ — retry the full fetch from the store."""

    def post(self, request):
        snapshot = get_service(request).reload()
        return Response({
            'apartment_count': len(snapshot.apartments),
            'payment_count': len(snapshot.payments),
            **source_fields(snapshot),
        })
