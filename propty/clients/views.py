import logging
from decimal import Decimal

from django.db.models import Count, ProtectedError, Sum
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from propty.core.permissions import scope_to_company, get_company_object_or_404
from propty.core.utils import create_audit_log
from propty.sales.models import Sale, Allocation
from .filters import ClientFilter
from .models import Client, ClientPayment
from .serializers import ClientSerializer, ClientListSerializer, ClientPaymentSerializer

logger = logging.getLogger('propty.clients')


def _get_client(request, pk):
    return get_company_object_or_404(Client.objects.select_related('assigned_marketer'), request.user, pk=pk)


# Client views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def client_list_create(request):
    """List clients (filters search, status, referral_source, assigned_marketer) or create one"""
    if request.method == 'GET':
        queryset = scope_to_company(Client.objects.select_related('assigned_marketer'), request.user)
        filterset = ClientFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        queryset = filterset.qs.annotate(units_count=Count('units')).order_by('-created_at')
        serializer = ClientListSerializer(queryset, many=True)
        return Response(serializer.data)

    if not request.user.company_id:
        return Response({'error': 'Your account is not attached to a company'}, status=status.HTTP_400_BAD_REQUEST)
    serializer = ClientSerializer(data=request.data, context={'company_id': request.user.company_id})
    if serializer.is_valid():
        client = serializer.save(company=request.user.company)
        create_audit_log(request=request, action='create', model_name='Client', object_id=client.id,
                         object_name=client.full_name)
        logger.info(f"Client '{client.full_name}' created by {request.user.username}")
        return Response(ClientSerializer(client).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def client_detail(request, pk):
    """Retrieve, update or delete a client"""
    client = _get_client(request, pk)

    if request.method == 'GET':
        serializer = ClientSerializer(client)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ClientSerializer(client, data=request.data, partial=request.method == 'PATCH',
                                      context={'company_id': client.company_id})
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, action='update', model_name='Client', object_id=client.id,
                             object_name=client.full_name, changes={'fields': sorted(request.data.keys())})
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        try:
            client.delete()
        except ProtectedError:
            return Response({'error': 'Cannot delete a client with sales or allocations'},
                            status=status.HTTP_409_CONFLICT)
        create_audit_log(request=request, action='delete', model_name='Client', object_id=pk,
                         object_name=client.full_name)
        logger.info(f"Client {pk} deleted by {request.user.username}")
        return Response(status=status.HTTP_204_NO_CONTENT)


# Payment views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def client_payments(request, pk):
    """List or record payments of a client"""
    from propty.sales.services import record_payment_received

    client = _get_client(request, pk)

    if request.method == 'GET':
        payments = client.payments.select_related('project', 'unit', 'sale', 'created_by')
        payment_status = request.query_params.get('status')
        if payment_status:
            payments = payments.filter(status=payment_status)
        serializer = ClientPaymentSerializer(payments, many=True)
        return Response(serializer.data)

    serializer = ClientPaymentSerializer(data=request.data, context={'client': client})
    if serializer.is_valid():
        extra = {}
        if serializer.validated_data.get('status') == 'completed' and not serializer.validated_data.get('paid_date'):
            extra['paid_date'] = timezone.localdate()
        payment = serializer.save(client=client, company_id=client.company_id, created_by=request.user, **extra)
        if payment.status == 'completed':
            record_payment_received(payment, request.user)
        create_audit_log(
            request=request,
            action='payment_add',
            model_name='ClientPayment',
            object_id=payment.id,
            object_name=client.full_name,
            object_reference=payment.reference or None,
            changes={'amount': str(payment.amount), 'payment_type': payment.payment_type, 'status': payment.status},
        )
        logger.info(f"Payment of {payment.amount} recorded for client {client.id} by {request.user.username}")
        return Response(ClientPaymentSerializer(payment).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def client_payment_mark_paid(request, pk, payment_pk):
    """Mark a pending payment (or refund) as completed"""
    from propty.sales.services import record_payment_received

    client = _get_client(request, pk)
    payment = get_company_object_or_404(client.payments.all(), request.user, pk=payment_pk)

    if payment.status == 'completed':
        return Response({'error': 'Payment is already marked as paid'}, status=status.HTTP_400_BAD_REQUEST)
    if payment.status == 'cancelled':
        return Response({'error': 'Cancelled payments cannot be marked as paid'}, status=status.HTTP_400_BAD_REQUEST)

    payment.status = 'completed'
    payment.paid_date = timezone.localdate()
    reference = request.data.get('reference')
    if reference:
        payment.reference = reference
    payment.save(update_fields=['status', 'paid_date', 'reference', 'updated_at'])
    record_payment_received(payment, request.user)

    create_audit_log(
        request=request,
        action='payment_mark_paid',
        model_name='ClientPayment',
        object_id=payment.id,
        object_name=client.full_name,
        object_reference=payment.reference or None,
        changes={'amount': str(payment.amount), 'payment_type': payment.payment_type},
    )
    logger.info(f"Payment {payment.id} of client {client.id} marked paid by {request.user.username}")
    return Response(ClientPaymentSerializer(payment).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def client_allocations(request, pk):
    """Allocations held (or previously held) by a client"""
    from propty.sales.serializers import AllocationSerializer

    client = _get_client(request, pk)
    allocations = Allocation.objects.filter(client=client).select_related('project', 'unit', 'sale', 'approved_by')
    allocation_status = request.query_params.get('status')
    if allocation_status:
        allocations = allocations.filter(status=allocation_status)
    serializer = AllocationSerializer(allocations, many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def client_summary(request, pk):
    """Financial summary of a client"""
    client = _get_client(request, pk)
    zero = Decimal('0.00')

    completed = client.payments.filter(status='completed')
    total_paid = completed.exclude(payment_type='refund').aggregate(total=Sum('amount'))['total'] or zero
    total_refunded = completed.filter(payment_type='refund').aggregate(total=Sum('amount'))['total'] or zero
    pending_refunds = client.payments.filter(status='pending', payment_type='refund').aggregate(
        total=Sum('amount'))['total'] or zero

    live_sales = Sale.objects.filter(client=client).exclude(status__in=['cancelled', 'declined'])
    total_sale_value = live_sales.aggregate(total=Sum('sale_amount'))['total'] or zero
    paid_on_live_sales = completed.filter(sale__in=live_sales).exclude(payment_type='refund').aggregate(
        total=Sum('amount'))['total'] or zero

    return Response({
        'client_id': client.id,
        'client_name': client.full_name,
        'total_paid': total_paid,
        'total_refunded': total_refunded,
        'pending_refunds': pending_refunds,
        'total_sale_value': total_sale_value,
        'outstanding_balance': max(total_sale_value - paid_on_live_sales, zero),
        'sales_count': live_sales.count(),
        'allocation_count': Allocation.objects.filter(client=client, status='active').count(),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def client_notices(request, pk):
    """Notices delivered to a client"""
    from propty.notices.serializers import ClientNoticeSerializer

    client = _get_client(request, pk)
    deliveries = client.notice_deliveries.select_related('notice').order_by('-created_at')
    serializer = ClientNoticeSerializer(deliveries, many=True)
    return Response(serializer.data)
