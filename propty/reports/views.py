import csv
import logging
from datetime import datetime, timedelta
from decimal import Decimal

from django.core.cache import cache
from django.db.models import Avg, Count, DecimalField, OuterRef, Q, Subquery, Sum, Value
from django.db.models.functions import Coalesce, TruncMonth
from django.http import HttpResponse
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from propty.clients.models import Client, ClientPayment
from propty.core.cache_utils import (
    DASHBOARD_KPI_CACHE_TTL, REPORTS_CACHE_TTL, get_dashboard_cache_key, get_report_cache_key
)
from propty.core.permissions import can_access_reports, scope_to_company
from propty.marketers.models import Commission
from propty.projects.models import Project, Unit
from propty.projects.utils import allocation_rate, project_revenue, unit_status_counts
from propty.sales.models import Sale, Allocation, AllocationRequest

logger = logging.getLogger('propty.reports')

INACTIVE_SALE_STATUSES = ['cancelled', 'declined']
TOP_CLIENTS_LIMIT = 10


def get_date_range(request, default_days=30):
    """Parse date_from/date_to (YYYY-MM-DD); defaults to the last `default_days` days"""
    date_from = request.query_params.get('date_from', None)
    date_to = request.query_params.get('date_to', None)

    if not date_from:
        date_from = (timezone.now() - timedelta(days=default_days)).date()
    else:
        date_from = datetime.strptime(date_from, '%Y-%m-%d').date()

    if not date_to:
        date_to = timezone.now().date()
    else:
        date_to = datetime.strptime(date_to, '%Y-%m-%d').date()

    if date_from > date_to:
        raise ValueError('date_from must not be after date_to')
    return date_from, date_to


def money(value):
    return float(value or Decimal('0.00'))


def completed_payments(user):
    return scope_to_company(
        ClientPayment.objects.filter(status='completed').exclude(payment_type='refund'), user
    )


# Report builders, shared by the JSON views and the CSV exports

def build_sales_report(user, date_from, date_to):
    sales = scope_to_company(Sale.objects.all(), user).filter(
        sale_date__gte=date_from, sale_date__lte=date_to
    ).exclude(status__in=INACTIVE_SALE_STATUSES)

    totals = sales.aggregate(total=Sum('sale_amount'), average=Avg('sale_amount'), count=Count('id'))
    by_project = sales.order_by().values('project__id', 'project__name').annotate(
        total=Sum('sale_amount'), count=Count('id')
    ).order_by('-total')
    monthly = sales.order_by().annotate(month=TruncMonth('sale_date')).values('month').annotate(
        total=Sum('sale_amount'), count=Count('id')
    ).order_by('month')
    by_type = {
        row['sales_type']: row['count']
        for row in sales.order_by().values('sales_type').annotate(count=Count('id'))
    }

    return {
        'summary': {
            'total_sales': money(totals['total']),
            'sales_count': totals['count'],
            'average_sale': money(totals['average']),
        },
        'by_project': [
            {'project_id': row['project__id'], 'project_name': row['project__name'],
             'total': money(row['total']), 'count': row['count']}
            for row in by_project
        ],
        'monthly_breakdown': [
            {'month': row['month'].strftime('%Y-%m'), 'total': money(row['total']), 'count': row['count']}
            for row in monthly
        ],
        'by_sales_type': by_type,
        'rows': sales.select_related('client', 'project', 'unit', 'marketer').order_by('sale_date', 'id'),
    }


def build_allocations_report(user, date_from, date_to):
    allocations = scope_to_company(Allocation.objects.all(), user).filter(
        allocation_date__gte=date_from, allocation_date__lte=date_to
    )
    requests = scope_to_company(AllocationRequest.objects.all(), user).filter(
        submitted_at__date__gte=date_from, submitted_at__date__lte=date_to
    )

    allocations_by_status = {choice: 0 for choice, _ in Allocation.STATUS_CHOICES}
    for row in allocations.order_by().values('status').annotate(count=Count('id')):
        allocations_by_status[row['status']] = row['count']

    requests_by_type = {
        choice: {status_choice: 0 for status_choice, _ in AllocationRequest.STATUS_CHOICES}
        for choice, _ in AllocationRequest.REQUEST_TYPE_CHOICES
    }
    for row in requests.order_by().values('request_type', 'status').annotate(count=Count('id')):
        requests_by_type[row['request_type']][row['status']] = row['count']

    return {
        'allocations_by_status': allocations_by_status,
        'requests_by_type': requests_by_type,
        'total_allocations': allocations.count(),
        'total_requests': requests.count(),
    }


def build_commissions_report(user, date_from, date_to):
    commissions = scope_to_company(Commission.objects.all(), user).filter(
        created_at__date__gte=date_from, created_at__date__lte=date_to
    ).exclude(status='cancelled')

    per_marketer = commissions.order_by().values(
        'marketer__id', 'marketer__first_name', 'marketer__last_name'
    ).annotate(
        total=Sum('amount'),
        pending=Sum('amount', filter=Q(status='pending')),
        approved=Sum('amount', filter=Q(status='approved')),
        paid=Sum('amount', filter=Q(status='paid')),
        count=Count('id'),
    ).order_by('-total')

    marketers = [
        {
            'marketer_id': row['marketer__id'],
            'marketer_name': f"{row['marketer__first_name']} {row['marketer__last_name']}".strip(),
            'total': money(row['total']),
            'pending': money(row['pending']),
            'approved': money(row['approved']),
            'paid': money(row['paid']),
            'count': row['count'],
        }
        for row in per_marketer
    ]
    return {
        'summary': {
            'total': sum(row['total'] for row in marketers),
            'pending': sum(row['pending'] for row in marketers),
            'approved': sum(row['approved'] for row in marketers),
            'paid': sum(row['paid'] for row in marketers),
        },
        'marketers': marketers,
    }


def build_clients_report(user, date_from, date_to):
    clients = scope_to_company(Client.objects.all(), user)

    by_status = {choice: 0 for choice, _ in Client.STATUS_CHOICES}
    for row in clients.order_by().values('status').annotate(count=Count('id')):
        by_status[row['status']] = row['count']
    by_source = {choice: 0 for choice, _ in Client.REFERRAL_SOURCE_CHOICES}
    for row in clients.order_by().values('referral_source').annotate(count=Count('id')):
        by_source[row['referral_source']] = row['count']

    paid = ClientPayment.objects.filter(
        client=OuterRef('pk'), status='completed'
    ).exclude(payment_type='refund').order_by().values('client').annotate(total=Sum('amount')).values('total')
    ranked = clients.annotate(
        total_paid=Coalesce(Subquery(paid, output_field=DecimalField(max_digits=16, decimal_places=2)),
                            Value(Decimal('0.00')), output_field=DecimalField(max_digits=16, decimal_places=2)),
        units_count=Count('units', distinct=True),
    ).order_by('-total_paid', 'id')

    return {
        'total_clients': clients.count(),
        'new_clients': clients.filter(created_at__date__gte=date_from, created_at__date__lte=date_to).count(),
        'by_status': by_status,
        'by_referral_source': by_source,
        'top_clients': [
            {'client_id': client.id, 'full_name': client.full_name, 'email': client.email,
             'total_paid': money(client.total_paid), 'units_count': client.units_count}
            for client in ranked.filter(total_paid__gt=0)[:TOP_CLIENTS_LIMIT]
        ],
        'rows': ranked,
    }


def build_projects_report(user, date_from=None, date_to=None):
    projects = scope_to_company(Project.objects.all(), user).order_by('name')
    rows = []
    for project in projects:
        counts = unit_status_counts(project.units.all())
        rows.append({
            'project_id': project.id,
            'project_name': project.name,
            'location': project.location,
            'status': project.status,
            'total_units': sum(counts.values()),
            'units_by_status': counts,
            'allocation_rate': float(allocation_rate(counts)),
            'revenue': money(project_revenue(project.payments.all())),
        })
    return {'projects': rows}


# JSON views

def _report_view(request, builder, name):
    if not can_access_reports(request.user):
        return Response({'error': 'You do not have access to reports'}, status=status.HTTP_403_FORBIDDEN)
    try:
        date_from, date_to = get_date_range(request)
    except ValueError as e:
        return Response({'error': f'Invalid date range: {str(e)}'}, status=status.HTTP_400_BAD_REQUEST)

    cache_key = get_report_cache_key(request.user.company_id, name, date_from, date_to)
    data = cache.get(cache_key)
    if data is not None:
        logger.debug(f"Cache HIT for {name} report: {cache_key}")
        return Response(data)

    logger.info(f"User {request.user.username} requested {name} report ({date_from} - {date_to})")
    data = builder(request.user, date_from, date_to)
    data.pop('rows', None)
    data['period'] = {'from': date_from.isoformat(), 'to': date_to.isoformat()}
    cache.set(cache_key, data, REPORTS_CACHE_TTL)
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def sales_report(request):
    """Sales totals, per-project and monthly breakdown"""
    return _report_view(request, build_sales_report, 'sales')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def allocations_report(request):
    """Allocations by status and requests by type and status"""
    return _report_view(request, build_allocations_report, 'allocations')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def commissions_report(request):
    return _report_view(request, build_commissions_report, 'commissions')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def clients_report(request):
    return _report_view(request, build_clients_report, 'clients')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def projects_report(request):
    """Per-project unit counts and revenue"""
    return _report_view(request, build_projects_report, 'projects')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_kpis(request):
    """Headline figures for the dashboard, cached per company"""
    cache_key = get_dashboard_cache_key(request.user.company_id)
    data = cache.get(cache_key)
    if data is not None:
        logger.debug(f"Cache HIT for dashboard KPIs: {cache_key}")
        return Response(data)

    user = request.user
    units = scope_to_company(Unit.objects.all(), user, field='project__company')
    unit_counts = unit_status_counts(units)
    sales = scope_to_company(Sale.objects.all(), user).exclude(status__in=INACTIVE_SALE_STATUSES)
    this_month = timezone.localdate().replace(day=1)

    data = {
        'total_clients': scope_to_company(Client.objects.all(), user).count(),
        'total_projects': scope_to_company(Project.objects.all(), user).count(),
        'total_units': sum(unit_counts.values()),
        'units_by_status': unit_counts,
        'allocation_rate': float(allocation_rate(unit_counts)),
        'total_revenue': money(completed_payments(user).aggregate(total=Sum('amount'))['total']),
        'total_sales_value': money(sales.aggregate(total=Sum('sale_amount'))['total']),
        'sales_this_month': sales.filter(sale_date__gte=this_month).count(),
        'pending_approvals': scope_to_company(AllocationRequest.objects.all(), user).filter(
            status=AllocationRequest.STATUS_PENDING
        ).count(),
        'active_allocations': scope_to_company(Allocation.objects.all(), user).filter(status='active').count(),
        'pending_commissions': money(scope_to_company(Commission.objects.all(), user).filter(
            status__in=['pending', 'approved']
        ).aggregate(total=Sum('amount'))['total']),
    }
    cache.set(cache_key, data, DASHBOARD_KPI_CACHE_TTL)
    return Response(data)


# CSV exports

def _sales_csv(report):
    yield ['Sale Number', 'Sale Date', 'Client', 'Project', 'Unit', 'Marketer', 'Sales Type', 'Amount', 'Status']
    for sale in report['rows']:
        yield [sale.sale_number, sale.sale_date.isoformat(), sale.client.full_name, sale.project.name,
               sale.unit.unit_number, sale.marketer.full_name if sale.marketer else '', sale.sales_type,
               f"{sale.sale_amount:.2f}", sale.status]


def _commissions_csv(report):
    yield ['Marketer', 'Total', 'Pending', 'Approved', 'Paid', 'Count']
    for row in report['marketers']:
        yield [row['marketer_name'], f"{row['total']:.2f}", f"{row['pending']:.2f}", f"{row['approved']:.2f}",
               f"{row['paid']:.2f}", row['count']]


def _clients_csv(report):
    yield ['Client', 'Email', 'Phone', 'Status', 'Referral Source', 'Units', 'Total Paid']
    for client in report['rows']:
        yield [client.full_name, client.email, client.phone, client.status, client.referral_source,
               client.units_count, f"{money(client.total_paid):.2f}"]


def _projects_csv(report):
    yield ['Project', 'Location', 'Status', 'Total Units', 'Available', 'Reserved', 'Allocated', 'Sold',
           'Allocation Rate', 'Revenue']
    for row in report['projects']:
        counts = row['units_by_status']
        yield [row['project_name'], row['location'], row['status'], row['total_units'], counts.get('available', 0),
               counts.get('reserved', 0), counts.get('allocated', 0), counts.get('sold', 0),
               f"{row['allocation_rate']:.2f}", f"{row['revenue']:.2f}"]


EXPORTS = {
    'sales': (build_sales_report, _sales_csv),
    'commissions': (build_commissions_report, _commissions_csv),
    'clients': (build_clients_report, _clients_csv),
    'projects': (build_projects_report, _projects_csv),
}


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def report_export(request, report_type):
    """CSV download of a tabular report"""
    if report_type not in EXPORTS:
        return Response({'error': f"Unknown report '{report_type}'. Choose one of: {', '.join(EXPORTS)}"},
                        status=status.HTTP_404_NOT_FOUND)
    if not can_access_reports(request.user):
        return Response({'error': 'You do not have access to reports'}, status=status.HTTP_403_FORBIDDEN)
    try:
        date_from, date_to = get_date_range(request)
    except ValueError as e:
        return Response({'error': f'Invalid date range: {str(e)}'}, status=status.HTTP_400_BAD_REQUEST)

    builder, to_rows = EXPORTS[report_type]
    report = builder(request.user, date_from, date_to)

    response = HttpResponse(content_type='text/csv')
    response['Content-Disposition'] = f'attachment; filename="{report_type}-{date_from}-{date_to}.csv"'
    writer = csv.writer(response)
    for row in to_rows(report):
        writer.writerow(row)
    logger.info(f"User {request.user.username} exported {report_type} report")
    return response
