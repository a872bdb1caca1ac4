"""Recipient resolution and delivery of client notices"""
import logging

from django.conf import settings
from django.core.mail import EmailMessage
from django.db import transaction
from django.utils import timezone
from rest_framework import status

from propty.clients.models import Client
from propty.core.utils import create_audit_log
from .models import Notice, NoticeDelivery

logger = logging.getLogger('propty.notices')


class NoticeAlreadySent(Exception):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, notice):
        self.message = f"Notice '{notice.title}' was already sent"
        super().__init__(self.message)


def resolve_recipients(notice):
    """Clients a notice goes to, according to its recipient_type"""
    if notice.recipient_type == 'selected':
        clients = notice.recipients.filter(company_id=notice.company_id)
    elif notice.recipient_type == 'project':
        clients = Client.objects.filter(
            company_id=notice.company_id, units__project_id=notice.project_id
        ).distinct()
    else:
        clients = Client.objects.filter(company_id=notice.company_id, status='active')
    return clients.order_by('last_name', 'first_name', 'id')


def _send_email(notice, client):
    email = EmailMessage(
        subject=notice.title,
        body=f"Dear {client.full_name},\n\n{notice.message}\n\n{notice.company.name}\n",
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[client.email],
    )
    if notice.attachment:
        notice.attachment.open('rb')
        try:
            email.attach(notice.attachment.name.rsplit('/', 1)[-1], notice.attachment.read())
        finally:
            notice.attachment.close()
    email.send(fail_silently=False)


def deliver(notice, client, channel):
    """Deliver one notice to one client over one channel and return the NoticeDelivery"""
    now = timezone.now()
    if channel == Notice.CHANNEL_EMAIL:
        if not client.email:
            return NoticeDelivery(notice=notice, client=client, channel=channel, status='skipped',
                                  error='Client has no email address')
        try:
            _send_email(notice, client)
        except Exception as e:
            logger.error(f"Email for notice {notice.id} to client {client.id} failed: {str(e)}")
            return NoticeDelivery(notice=notice, client=client, channel=channel, status='failed', error=str(e))
    return NoticeDelivery(notice=notice, client=client, channel=channel, status='delivered', delivered_at=now)


def send_notice(user, notice):
    """
    Deliver a draft notice to every resolved recipient on every channel.

    The notice ends up 'sent' when at least one delivery succeeded (or there
    was nothing to fail), otherwise 'failed'. Returns the notice.
    """
    with transaction.atomic():
        notice = Notice.objects.select_for_update().get(pk=notice.pk)
        if notice.status == 'sent':
            raise NoticeAlreadySent(notice)

        clients = list(resolve_recipients(notice))
        deliveries = [deliver(notice, client, channel) for client in clients for channel in notice.channels]
        notice.deliveries.all().delete()
        NoticeDelivery.objects.bulk_create(deliveries)

        attempted = [d for d in deliveries if d.status != 'skipped']
        failed = [d for d in attempted if d.status == 'failed']
        notice.status = 'failed' if attempted and len(failed) == len(attempted) else 'sent'
        notice.recipient_count = len(clients)
        notice.sent_by = user
        notice.sent_at = timezone.now()
        notice.save(update_fields=['status', 'recipient_count', 'sent_by', 'sent_at', 'updated_at'])

    create_audit_log(
        user=user,
        action='notice_send',
        model_name='Notice',
        object_id=notice.id,
        object_name=notice.title,
        changes={'recipients': len(clients), 'channels': notice.channels, 'failed': len(failed)},
        company=notice.company,
    )
    logger.info(f"Notice {notice.id} sent to {len(clients)} clients by {user.username} ({len(failed)} failed)")
    return notice
