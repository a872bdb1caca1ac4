import logging
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import Count, Sum
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from propty.core.permissions import get_user_groups, is_admin_user, scope_to_company, get_company_object_or_404
from propty.core.utils import create_audit_log
from propty.sales.models import Sale, Allocation
from .filters import MarketerFilter, CommissionFilter
from .models import Marketer, Commission
from .serializers import MarketerSerializer, ProjectCommissionSerializer, CommissionSerializer

logger = logging.getLogger('propty.marketers')

INACTIVE_SALE_STATUSES = ['cancelled', 'declined']


def can_manage_commissions(user):
    return is_admin_user(user) or 'Accountant' in get_user_groups(user)


def get_sales_data(marketer):
    """Sales totals and recent sales of a marketer"""
    from propty.sales.serializers import SaleSerializer

    sales = Sale.objects.filter(marketer=marketer).exclude(status__in=INACTIVE_SALE_STATUSES)
    commission = marketer.commissions.exclude(status='cancelled').aggregate(total=Sum('amount'))['total']
    recent = Sale.objects.filter(marketer=marketer).select_related('client', 'project', 'unit').order_by('-sale_date', '-created_at')[:5]
    return {
        'total_sales': sales.count(),
        'total_amount': sales.aggregate(total=Sum('sale_amount'))['total'] or Decimal('0.00'),
        'commission': commission or Decimal('0.00'),
        'recent_sales': SaleSerializer(recent, many=True).data,
    }


# Marketer views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def marketer_list_create(request):
    """List marketers (filters search, status, role) or create one"""
    if request.method == 'GET':
        queryset = scope_to_company(Marketer.objects.all(), request.user)
        filterset = MarketerFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer = MarketerSerializer(filterset.qs, many=True)
        return Response(serializer.data)

    if not request.user.company_id:
        return Response({'error': 'Your account is not attached to a company'}, status=status.HTTP_400_BAD_REQUEST)
    serializer = MarketerSerializer(data=request.data)
    if serializer.is_valid():
        marketer = serializer.save(company=request.user.company)
        create_audit_log(request=request, action='create', model_name='Marketer', object_id=marketer.id,
                         object_name=marketer.full_name)
        logger.info(f"Marketer '{marketer.full_name}' created by {request.user.username}")
        return Response(MarketerSerializer(marketer).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def marketer_detail(request, pk):
    """Retrieve (with sales_data), update or delete a marketer"""
    marketer = get_company_object_or_404(Marketer.objects.all(), request.user, pk=pk)

    if request.method == 'GET':
        data = MarketerSerializer(marketer).data
        data['sales_data'] = get_sales_data(marketer)
        return Response(data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = MarketerSerializer(marketer, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if marketer.commissions.filter(status__in=['pending', 'approved']).exists():
            return Response({'error': 'Marketer has unpaid commissions; deactivate instead'},
                            status=status.HTTP_409_CONFLICT)
        marketer.delete()
        create_audit_log(request=request, action='delete', model_name='Marketer', object_id=pk,
                         object_name=marketer.full_name)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def marketer_commissions(request, pk):
    marketer = get_company_object_or_404(Marketer.objects.all(), request.user, pk=pk)
    commissions = marketer.commissions.select_related('sale', 'client', 'project', 'unit')
    commission_status = request.query_params.get('status')
    if commission_status:
        commissions = commissions.filter(status=commission_status)
    serializer = CommissionSerializer(commissions, many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def marketer_allocations(request, pk):
    """Allocations coming from this marketer's sales"""
    from propty.sales.serializers import AllocationSerializer

    marketer = get_company_object_or_404(Marketer.objects.all(), request.user, pk=pk)
    allocations = Allocation.objects.filter(sale__marketer=marketer).select_related('client', 'project', 'unit', 'sale')
    serializer = AllocationSerializer(allocations, many=True)
    return Response(serializer.data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def marketer_project_commissions(request, pk):
    """List or add per-project commission overrides"""
    marketer = get_company_object_or_404(Marketer.objects.all(), request.user, pk=pk)

    if request.method == 'GET':
        overrides = marketer.project_commissions.select_related('project').order_by('project__name')
        serializer = ProjectCommissionSerializer(overrides, many=True)
        return Response(serializer.data)

    serializer = ProjectCommissionSerializer(data=request.data, context={'company_id': marketer.company_id})
    if serializer.is_valid():
        try:
            with transaction.atomic():
                override = serializer.save(marketer=marketer)
        except IntegrityError:
            return Response({'error': 'This marketer already has a commission override for the project'},
                            status=status.HTTP_400_BAD_REQUEST)
        logger.info(f"Commission override for marketer {marketer.id} on project {override.project_id} "
                    f"set by {request.user.username}")
        return Response(ProjectCommissionSerializer(override).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


# Commission views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def commission_list(request):
    """List commissions; filters marketer, project, status"""
    queryset = scope_to_company(
        Commission.objects.select_related('marketer', 'sale', 'client', 'project', 'unit'), request.user
    )
    filterset = CommissionFilter(request.query_params, queryset=queryset)
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    commissions = filterset.qs
    totals = {
        row['status']: {'total': row['total'], 'count': row['count']}
        for row in commissions.order_by().values('status').annotate(total=Sum('amount'), count=Count('id'))
    }
    return Response({
        'results': CommissionSerializer(commissions, many=True).data,
        'totals': totals,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def commission_approve(request, pk):
    if not can_manage_commissions(request.user):
        return Response({'error': 'Only administrators or accountants can approve commissions'},
                        status=status.HTTP_403_FORBIDDEN)
    commission = get_company_object_or_404(Commission.objects.all(), request.user, pk=pk)
    if commission.status != 'pending':
        return Response({'error': f'Commission is {commission.status}, only pending commissions can be approved'},
                        status=status.HTTP_409_CONFLICT)
    commission.status = 'approved'
    commission.save(update_fields=['status', 'updated_at'])
    create_audit_log(request=request, action='commission_approve', model_name='Commission', object_id=commission.id,
                     object_name=commission.marketer.full_name, changes={'amount': str(commission.amount)})
    logger.info(f"Commission {commission.id} approved by {request.user.username}")
    return Response(CommissionSerializer(commission).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def commission_mark_paid(request, pk):
    if not can_manage_commissions(request.user):
        return Response({'error': 'Only administrators or accountants can pay commissions'},
                        status=status.HTTP_403_FORBIDDEN)
    commission = get_company_object_or_404(Commission.objects.all(), request.user, pk=pk)
    if commission.status != 'approved':
        return Response({'error': f'Commission is {commission.status}, only approved commissions can be paid'},
                        status=status.HTTP_409_CONFLICT)
    commission.status = 'paid'
    commission.paid_at = timezone.now()
    commission.save(update_fields=['status', 'paid_at', 'updated_at'])
    create_audit_log(request=request, action='commission_paid', model_name='Commission', object_id=commission.id,
                     object_name=commission.marketer.full_name, changes={'amount': str(commission.amount)})
    logger.info(f"Commission {commission.id} marked paid by {request.user.username}")
    return Response(CommissionSerializer(commission).data)
