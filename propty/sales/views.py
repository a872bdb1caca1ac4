import logging
from decimal import Decimal

from django.db.models import Count, Exists, OuterRef, Sum
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from propty.core.conf import get_setting
from propty.core.permissions import can_approve_allocations, scope_to_company, get_company_object_or_404
from propty.projects.models import Unit
from . import services
from .exceptions import AllocationError
from .filters import SaleFilter, AllocationFilter, AllocationRequestFilter
from .models import Sale, Allocation, AllocationRequest, AllocationHistory
from .otp import latest_otp
from .serializers import (
    SaleSerializer, SaleUpdateSerializer, SaleCreateSerializer,
    AllocationSerializer, AllocationRequestSerializer, AllocationHistorySerializer,
    NewAllocationSerializer, ReallocationSerializer, RevocationSerializer,
    OTPRequestSerializer, ApproveSerializer, DeclineSerializer
)

logger = logging.getLogger('propty.sales')


def allocation_error_response(request, error):
    level = logging.WARNING if error.status_code >= 403 else logging.INFO
    logger.log(level, f"{request.method} {request.path} rejected for {request.user.username}: {error.message}")
    return Response({'error': error.message}, status=error.status_code)


def run_workflow(request, operation, *args, **kwargs):
    """
    Call a workflow service and translate its outcome.

    Returns (result, None) on success, (None, Response) when the call failed.
    """
    try:
        return operation(*args, **kwargs), None
    except AllocationError as e:
        return None, allocation_error_response(request, e)
    except Exception as e:
        logger.error(f"Error in {operation.__name__} for {request.user.username}: {str(e)}", exc_info=True)
        return None, Response({'error': f'Failed to {operation.__name__.replace("_", " ")}: {str(e)}'},
                              status=status.HTTP_500_INTERNAL_SERVER_ERROR)


def _sales(user):
    return scope_to_company(Sale.objects.select_related('client', 'project', 'unit', 'marketer'), user)


def _allocations(user):
    return scope_to_company(
        Allocation.objects.select_related('client', 'project', 'unit', 'sale', 'approved_by', 'previous_allocation'),
        user
    )


def _requests(user):
    return scope_to_company(
        AllocationRequest.objects.select_related(
            'client', 'new_client', 'project', 'unit', 'new_unit', 'allocation', 'sale',
            'submitted_by', 'reviewed_by', 'resulting_allocation'
        ),
        user
    )


# Sale views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def sale_list_create(request):
    """List sales or record a new sale"""
    if request.method == 'GET':
        filterset = SaleFilter(request.query_params, queryset=_sales(request.user))
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer = SaleSerializer(filterset.qs, many=True)
        return Response(serializer.data)

    serializer = SaleCreateSerializer(data=request.data, context={'company_id': request.user.company_id})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    sale, error = run_workflow(request, services.record_sale, request.user, serializer.validated_data)
    if error:
        return error
    data = SaleSerializer(sale).data
    pending = sale.allocation_requests.filter(status=AllocationRequest.STATUS_PENDING).first()
    data['allocation_request'] = AllocationRequestSerializer(pending).data if pending else None
    return Response(data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def sale_detail(request, pk):
    """Retrieve, update details of, or delete a sale"""
    sale = get_company_object_or_404(_sales(request.user), request.user, pk=pk)

    if request.method == 'GET':
        return Response(SaleSerializer(sale).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SaleUpdateSerializer(sale, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(SaleSerializer(sale).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        _, error = run_workflow(request, services.delete_sale, request.user, sale)
        if error:
            return error
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def sales_summary(request):
    """Total sales value, number of sales and allocated plots"""
    sales = _sales(request.user)
    live_sales = sales.exclude(status__in=['cancelled', 'declined'])
    by_status = {choice: 0 for choice, _ in Sale.STATUS_CHOICES}
    for row in sales.order_by().values('status').annotate(count=Count('id')):
        by_status[row['status']] = row['count']

    units = scope_to_company(Unit.objects.all(), request.user, field='project__company')
    return Response({
        'total_sales_value': live_sales.aggregate(total=Sum('sale_amount'))['total'] or Decimal('0.00'),
        'sales_count': live_sales.count(),
        'allocated_plots': units.filter(status='allocated').count(),
        'sales_by_status': by_status,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def pending_allocations(request):
    """Sales still waiting for an allocation, flagged when one is already queued"""
    pending_request = AllocationRequest.objects.filter(sale=OuterRef('pk'), status=AllocationRequest.STATUS_PENDING)
    sales = _sales(request.user).filter(status='pending').annotate(has_pending_request=Exists(pending_request))
    data = []
    for sale in sales:
        row = SaleSerializer(sale).data
        row['has_pending_request'] = sale.has_pending_request
        data.append(row)
    return Response(data)


# Allocation views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def allocation_list(request):
    """List allocations; filters status, project, client, unit"""
    filterset = AllocationFilter(request.query_params, queryset=_allocations(request.user))
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    serializer = AllocationSerializer(filterset.qs, many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def allocation_detail(request, pk):
    allocation = get_company_object_or_404(_allocations(request.user), request.user, pk=pk)
    data = AllocationSerializer(allocation).data
    data['total_paid'] = services.total_paid_for_unit(allocation.client, allocation.unit)
    pending = allocation.requests.filter(status=AllocationRequest.STATUS_PENDING).first()
    data['pending_request'] = AllocationRequestSerializer(pending).data if pending else None
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def allocation_history(request, pk):
    """Events of an allocation and of the allocations it replaced"""
    allocation = get_company_object_or_404(_allocations(request.user), request.user, pk=pk)
    chain = [allocation.id]
    previous = allocation.previous_allocation
    while previous is not None:
        chain.append(previous.id)
        previous = previous.previous_allocation
    events = AllocationHistory.objects.filter(allocation_id__in=chain).select_related(
        'client', 'unit', 'performed_by', 'allocation', 'request'
    )
    return Response(AllocationHistorySerializer(events, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def allocation_transfers(request):
    """Reallocation history: allocations that replaced an earlier one"""
    transfers = _allocations(request.user).filter(previous_allocation__isnull=False)
    data = []
    for allocation in transfers:
        previous = allocation.previous_allocation
        data.append({
            'allocation': AllocationSerializer(allocation).data,
            'from_client': previous.client.full_name,
            'from_client_id': previous.client_id,
            'from_unit': previous.unit.unit_number,
            'to_client': allocation.client.full_name,
            'to_client_id': allocation.client_id,
            'to_unit': allocation.unit.unit_number,
            'transfer_date': allocation.allocation_date,
        })
    return Response(data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def allocation_new(request):
    """Submit a new allocation request"""
    serializer = NewAllocationSerializer(data=request.data, context={'company_id': request.user.company_id})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    request_obj, error = run_workflow(
        request, services.submit_allocation, request.user, data['client'], data['project'], data['unit'],
        sale=data.get('sale'), amount=data.get('amount'), priority=data.get('priority'),
        effective_date=data.get('effective_date'), notes=data.get('notes', ''),
    )
    if error:
        return error
    return Response(AllocationRequestSerializer(request_obj).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def allocation_reallocate(request, pk):
    """Submit a reallocation request for an active allocation"""
    allocation = get_company_object_or_404(_allocations(request.user), request.user, pk=pk)
    serializer = ReallocationSerializer(data=request.data, context={'company_id': allocation.company_id})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    request_obj, error = run_workflow(
        request, services.submit_reallocation, request.user, allocation, data['new_client'],
        new_unit=data.get('new_unit'), reason_category=data.get('reason_category', ''),
        reason=data.get('reason', ''), amount=data.get('amount'), priority=data.get('priority'),
        effective_date=data.get('effective_date'), notes=data.get('notes', ''),
    )
    if error:
        return error
    return Response(AllocationRequestSerializer(request_obj).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def allocation_revoke(request, pk):
    """Submit a revocation request for an active allocation"""
    allocation = get_company_object_or_404(_allocations(request.user), request.user, pk=pk)
    serializer = RevocationSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    request_obj, error = run_workflow(
        request, services.submit_revocation, request.user, allocation, data['reason'],
        refund_type=data.get('refund_type'), refund_amount=data.get('refund_amount'),
        reason_category=data.get('reason_category', ''), priority=data.get('priority'),
        effective_date=data.get('effective_date'), notes=data.get('notes', ''),
    )
    if error:
        return error
    return Response(AllocationRequestSerializer(request_obj).data, status=status.HTTP_201_CREATED)


# Approval queue views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def allocation_request_list(request):
    """
    Pending-approval queue.

    `status` defaults to pending; pass status=all for every request. Other
    filters: type, priority, project, search.
    """
    queryset = _requests(request.user)
    request_status = request.query_params.get('status') or AllocationRequest.STATUS_PENDING
    if request_status != 'all':
        queryset = queryset.filter(status=request_status)

    filterset = AllocationRequestFilter(request.query_params, queryset=queryset)
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)

    counts = {
        row['request_type']: row['count']
        for row in _requests(request.user).filter(status=AllocationRequest.STATUS_PENDING)
        .order_by().values('request_type').annotate(count=Count('id'))
    }
    return Response({
        'results': AllocationRequestSerializer(filterset.qs, many=True).data,
        'pending_counts': {choice: counts.get(choice, 0) for choice, _ in AllocationRequest.REQUEST_TYPE_CHOICES},
        'can_approve': can_approve_allocations(request.user),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def allocation_request_detail(request, pk):
    request_obj = get_company_object_or_404(_requests(request.user), request.user, pk=pk)
    data = AllocationRequestSerializer(request_obj).data
    data['history'] = AllocationHistorySerializer(
        request_obj.history.select_related('client', 'unit', 'performed_by'), many=True
    ).data
    data['can_approve'] = request_obj.is_pending and can_approve_allocations(request.user)
    return Response(data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def allocation_request_otp(request, pk):
    """Email an OTP to the caller for approving or declining a request"""
    request_obj = get_company_object_or_404(_requests(request.user), request.user, pk=pk)
    serializer = OTPRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    action = serializer.validated_data['action']
    otp, error = run_workflow(request, services.issue_otp, request.user, request_obj, action)
    if error:
        return error
    return Response({
        'message': f'OTP sent to {request.user.email}',
        'action': action,
        'expires_at': otp.expires_at,
        'resend_after_seconds': get_setting('OTP_RESEND_INTERVAL_SECONDS'),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def allocation_request_approve(request, pk):
    request_obj = get_company_object_or_404(_requests(request.user), request.user, pk=pk)
    serializer = ApproveSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    request_obj, error = run_workflow(
        request, services.approve, request.user, request_obj, serializer.validated_data['otp_code']
    )
    if error:
        return _with_attempts_left(error, request, request_obj_pk=pk, action='approve')
    return Response(AllocationRequestSerializer(request_obj).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def allocation_request_decline(request, pk):
    request_obj = get_company_object_or_404(_requests(request.user), request.user, pk=pk)
    serializer = DeclineSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    request_obj, error = run_workflow(
        request, services.decline, request.user, request_obj, data['otp_code'], data['reason']
    )
    if error:
        return _with_attempts_left(error, request, request_obj_pk=pk, action='decline')
    return Response(AllocationRequestSerializer(request_obj).data)


def _with_attempts_left(response, request, request_obj_pk, action):
    """Tell the approver how many guesses remain on their current OTP"""
    if response.status_code != status.HTTP_400_BAD_REQUEST:
        return response
    otp = latest_otp(request_obj_pk, request.user, action)
    if otp is not None:
        response.data['attempts_left'] = max(0, get_setting('OTP_MAX_ATTEMPTS') - otp.attempts)
    return response
