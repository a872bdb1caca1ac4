import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from propty.core.permissions import scope_to_company, get_company_object_or_404
from propty.core.utils import create_audit_log
from .models import Notice
from .serializers import NoticeSerializer, NoticeDeliverySerializer
from .services import NoticeAlreadySent, resolve_recipients, send_notice

logger = logging.getLogger('propty.notices')

PREVIEW_SAMPLE_SIZE = 10


def _notices(user):
    return scope_to_company(
        Notice.objects.select_related('project', 'created_by', 'sent_by').prefetch_related('recipients'), user
    )


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def notice_list_create(request):
    """Notice history (filter status) or create a draft notice"""
    if request.method == 'GET':
        notices = _notices(request.user)
        notice_status = request.query_params.get('status')
        if notice_status:
            notices = notices.filter(status=notice_status)
        serializer = NoticeSerializer(notices, many=True)
        return Response(serializer.data)

    if not request.user.company_id:
        return Response({'error': 'Your account is not attached to a company'}, status=status.HTTP_400_BAD_REQUEST)
    serializer = NoticeSerializer(data=request.data, context={'company_id': request.user.company_id})
    if serializer.is_valid():
        notice = serializer.save(company=request.user.company, created_by=request.user)
        create_audit_log(request=request, action='create', model_name='Notice', object_id=notice.id,
                         object_name=notice.title)
        logger.info(f"Notice '{notice.title}' drafted by {request.user.username}")
        return Response(NoticeSerializer(notice).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def notice_detail(request, pk):
    """Retrieve (with deliveries), update a draft, or delete a notice"""
    notice = get_company_object_or_404(_notices(request.user), request.user, pk=pk)

    if request.method == 'GET':
        data = NoticeSerializer(notice).data
        data['deliveries'] = NoticeDeliverySerializer(notice.deliveries.select_related('client'), many=True).data
        return Response(data)
    elif request.method in ('PUT', 'PATCH'):
        if notice.status != 'draft':
            return Response({'error': 'Only draft notices can be edited'}, status=status.HTTP_409_CONFLICT)
        serializer = NoticeSerializer(notice, data=request.data, partial=request.method == 'PATCH',
                                      context={'company_id': notice.company_id})
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        notice.delete()
        create_audit_log(request=request, action='delete', model_name='Notice', object_id=pk,
                         object_name=notice.title)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notice_preview(request, pk):
    """Who a notice would reach if sent now"""
    notice = get_company_object_or_404(_notices(request.user), request.user, pk=pk)
    recipients = resolve_recipients(notice)
    sample = recipients[:PREVIEW_SAMPLE_SIZE]
    return Response({
        'recipient_count': recipients.count(),
        'channels': notice.channels,
        'sample': [
            {'id': client.id, 'full_name': client.full_name, 'email': client.email, 'phone': client.phone}
            for client in sample
        ],
        'without_email': recipients.filter(email='').count(),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notice_send(request, pk):
    notice = get_company_object_or_404(_notices(request.user), request.user, pk=pk)
    try:
        notice = send_notice(request.user, notice)
    except NoticeAlreadySent as e:
        return Response({'error': e.message}, status=e.status_code)
    data = NoticeSerializer(notice).data
    data['deliveries'] = NoticeDeliverySerializer(notice.deliveries.select_related('client'), many=True).data
    return Response(data)
