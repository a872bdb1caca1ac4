"""
Sales and the allocation approval workflow.

Every change of unit ownership goes through this module: a sale reserves a
unit, an AllocationRequest queues the change, and an approver holding a
valid OTP approves or declines it. Approval re-checks the request under a
row lock so two approvers cannot both act on one request.
"""
import logging
from decimal import Decimal

from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction
from django.db.models import Q, Sum
from django.utils import timezone

from propty.clients.models import ClientPayment
from propty.core.conf import get_setting
from propty.core.permissions import can_approve_allocations
from propty.core.utils import create_audit_log, generate_document_number
from propty.marketers.commissions import calculate_commission, get_commission_terms
from propty.marketers.models import Commission
from propty.projects.models import Unit
from .exceptions import (
    AllocationError, ApprovalNotPermitted, DuplicateRequest, InvalidTransition, UnitUnavailable
)
from .models import Sale, Allocation, AllocationRequest, AllocationHistory
from .otp import OTP_ACTIONS, create_otp, verify_otp, consume_otp

logger = logging.getLogger('propty.sales')

ZERO = Decimal('0.00')


def total_paid_for_unit(client, unit):
    """Completed, non-refund payments a client made towards a unit"""
    total = ClientPayment.objects.filter(
        client=client, unit=unit, status='completed'
    ).exclude(payment_type='refund').aggregate(total=Sum('amount'))['total']
    return total or ZERO


def record_history(request_obj=None, allocation=None, unit=None, client=None, event=None,
                   description='', amount=None, user=None, previous_values=None, new_values=None):
    unit = unit or (allocation.unit if allocation else request_obj.unit)
    owner = allocation or request_obj
    company_id = owner.company_id if owner else unit.project.company_id
    return AllocationHistory.objects.create(
        company_id=company_id,
        allocation=allocation,
        request=request_obj,
        unit=unit,
        client=client,
        event=event,
        description=description,
        amount=amount,
        performed_by=user,
        previous_values=previous_values or {},
        new_values=new_values or {},
    )


def _lock_unit(unit):
    return Unit.objects.select_for_update().get(pk=unit.pk)


def _ensure_same_company(project, *clients):
    for client in clients:
        if client is not None and client.company_id != project.company_id:
            raise AllocationError('Client and project belong to different companies')


def _ensure_no_pending_request(units=(), allocation=None):
    conditions = Q()
    for unit in units:
        if unit is not None:
            conditions |= Q(unit=unit) | Q(new_unit=unit)
    if allocation is not None:
        conditions |= Q(allocation=allocation)
    if not conditions:
        return
    pending = AllocationRequest.objects.filter(conditions, status=AllocationRequest.STATUS_PENDING).first()
    if pending:
        raise DuplicateRequest(f"Request {pending.request_number} is already pending for this unit")


# Sales

@transaction.atomic
def record_sale(user, data):
    """
    Record a sale (offer) of an available unit.

    The unit is reserved for the client. A positive initial payment is stored
    as a completed deposit, a marketer earns a pending commission, and
    offer_allocation / instant_allocation sales go straight into the
    allocation approval queue.
    """
    client = data['client']
    project = data['project']
    unit = data['unit']

    if unit.project_id != project.id:
        raise UnitUnavailable(f"Unit {unit.unit_number} does not belong to project {project.name}")
    _ensure_same_company(project, client)

    unit = _lock_unit(unit)
    if unit.status != 'available':
        raise UnitUnavailable(f"Unit {unit.unit_number} is {unit.status}")

    sale_amount = data.get('sale_amount')
    if sale_amount is None:
        sale_amount = unit.price
    initial_payment = data.get('initial_payment') or ZERO
    if initial_payment > sale_amount:
        raise AllocationError('Initial payment cannot exceed the sale amount')

    sale_kwargs = {}
    if data.get('sale_date'):
        sale_kwargs['sale_date'] = data['sale_date']

    sale = Sale.objects.create(
        company_id=project.company_id,
        sale_number=generate_document_number(Sale, 'sale_number', 'SAL'),
        client=client,
        project=project,
        unit=unit,
        marketer=data.get('marketer'),
        sales_type=data.get('sales_type') or 'offer_only',
        sale_amount=sale_amount,
        initial_payment=initial_payment,
        payment_method=data.get('payment_method') or '',
        notes=data.get('notes') or '',
        created_by=user,
        **sale_kwargs
    )

    unit.status = 'reserved'
    unit.client = client
    unit.save(update_fields=['status', 'client', 'updated_at'])

    if initial_payment > 0:
        payment = ClientPayment.objects.create(
            company_id=project.company_id,
            client=client,
            sale=sale,
            project=project,
            unit=unit,
            amount=initial_payment,
            payment_method=sale.payment_method or 'bank-transfer',
            payment_type='deposit',
            status='completed',
            paid_date=sale.sale_date,
            reference=sale.sale_number,
            created_by=user,
        )
        record_payment_received(payment, user)

    if sale.marketer_id:
        commission_type, rate = get_commission_terms(sale.marketer, project)
        Commission.objects.create(
            company_id=project.company_id,
            marketer=sale.marketer,
            sale=sale,
            client=client,
            project=project,
            unit=unit,
            commission_type=commission_type,
            rate_snapshot=rate,
            amount=calculate_commission(sale.marketer, project, sale_amount),
        )

    create_audit_log(
        user=user,
        action='sale_record',
        model_name='Sale',
        object_id=sale.id,
        object_name=client.full_name,
        object_reference=sale.sale_number,
        changes={'unit': unit.unit_number, 'sale_amount': str(sale_amount), 'sales_type': sale.sales_type},
        company=sale.company,
    )
    logger.info(f"Sale {sale.sale_number} recorded for unit {unit.unit_number} by {user.username}")

    if sale.sales_type in Sale.AUTO_ALLOCATION_TYPES:
        submit_allocation(
            user, client, project, unit,
            sale=sale,
            amount=sale_amount,
            priority='high' if sale.sales_type == 'instant_allocation' else 'medium',
        )

    return sale


def record_payment_received(payment, user=None):
    """Add a payment_received event to the unit timeline"""
    if not payment.unit_id or payment.payment_type == 'refund':
        return None
    allocation = Allocation.objects.filter(unit_id=payment.unit_id, client_id=payment.client_id, status='active').first()
    return record_history(
        allocation=allocation,
        unit=payment.unit,
        client=payment.client,
        event='payment_received',
        description=f"{payment.get_payment_type_display()} of {payment.amount} received",
        amount=payment.amount,
        user=user,
    )


# Submitting requests

@transaction.atomic
def submit_allocation(user, client, project, unit, sale=None, amount=None, priority='medium',
                      effective_date=None, notes=''):
    """Queue allocation of an available (or reserved-for-this-client) unit"""
    if unit.project_id != project.id:
        raise UnitUnavailable(f"Unit {unit.unit_number} does not belong to project {project.name}")
    _ensure_same_company(project, client)

    unit = _lock_unit(unit)
    if unit.status == 'reserved':
        if unit.client_id != client.id:
            raise UnitUnavailable(f"Unit {unit.unit_number} is reserved for another client")
        if sale is None:
            sale = Sale.objects.filter(unit=unit, client=client, status='pending').order_by('-created_at').first()
    elif unit.status != 'available':
        raise UnitUnavailable(f"Unit {unit.unit_number} is {unit.status}")

    _ensure_no_pending_request(units=[unit])

    if amount is None:
        amount = sale.sale_amount if sale else unit.price

    request_obj = AllocationRequest.objects.create(
        company_id=project.company_id,
        request_number=generate_document_number(AllocationRequest, 'request_number', 'ALR'),
        request_type=AllocationRequest.TYPE_ALLOCATION,
        priority=priority or 'medium',
        client=client,
        project=project,
        unit=unit,
        sale=sale,
        amount=amount,
        effective_date=effective_date or timezone.localdate(),
        notes=notes or '',
        submitted_by=user,
    )
    record_history(
        request_obj=request_obj,
        client=client,
        event='submitted',
        description=f"Allocation of {unit.unit_number} to {client.full_name} submitted for approval",
        amount=amount,
        user=user,
    )
    create_audit_log(
        user=user,
        action='allocation_submit',
        model_name='AllocationRequest',
        object_id=request_obj.id,
        object_name=client.full_name,
        object_reference=request_obj.request_number,
        changes={'unit': unit.unit_number, 'project': project.name},
        company=request_obj.company,
    )
    logger.info(f"Allocation request {request_obj.request_number} submitted by {user.username}")
    return request_obj


@transaction.atomic
def submit_reallocation(user, allocation, new_client, new_unit=None, reason_category='', reason='',
                        amount=None, priority='medium', effective_date=None, notes=''):
    """Queue transfer of an active allocation to another client, optionally onto another unit"""
    allocation = Allocation.objects.select_for_update().get(pk=allocation.pk)
    if allocation.status != 'active':
        raise InvalidTransition(f"Allocation {allocation.allocation_number} is {allocation.status}")
    if new_client.id == allocation.client_id:
        raise AllocationError('The new client must be different from the current client')
    _ensure_same_company(allocation.project, new_client)

    if new_unit is not None and new_unit.pk == allocation.unit_id:
        new_unit = None
    if new_unit is not None:
        if new_unit.project_id != allocation.project_id:
            raise AllocationError('The new unit must be in the same project')
        new_unit = _lock_unit(new_unit)
        if new_unit.status != 'available':
            raise UnitUnavailable(f"Unit {new_unit.unit_number} is {new_unit.status}")

    _ensure_no_pending_request(units=[allocation.unit, new_unit], allocation=allocation)

    request_obj = AllocationRequest.objects.create(
        company_id=allocation.company_id,
        request_number=generate_document_number(AllocationRequest, 'request_number', 'ALR'),
        request_type=AllocationRequest.TYPE_REALLOCATION,
        priority=priority or 'medium',
        client=allocation.client,
        project=allocation.project,
        unit=allocation.unit,
        sale=allocation.sale,
        allocation=allocation,
        new_client=new_client,
        new_unit=new_unit,
        reason_category=reason_category or '',
        reason=reason or '',
        amount=amount if amount is not None else ZERO,
        effective_date=effective_date or timezone.localdate(),
        notes=notes or '',
        submitted_by=user,
    )
    record_history(
        request_obj=request_obj,
        allocation=allocation,
        client=allocation.client,
        event='submitted',
        description=f"Reallocation of {allocation.unit.unit_number} to {new_client.full_name} submitted for approval",
        user=user,
        new_values={'client': new_client.id, 'unit': (new_unit or allocation.unit).id},
    )
    create_audit_log(
        user=user,
        action='reallocation_submit',
        model_name='AllocationRequest',
        object_id=request_obj.id,
        object_name=new_client.full_name,
        object_reference=request_obj.request_number,
        changes={'allocation': allocation.allocation_number, 'from_client': allocation.client.full_name,
                 'to_client': new_client.full_name},
        company=request_obj.company,
    )
    logger.info(f"Reallocation request {request_obj.request_number} submitted by {user.username}")
    return request_obj


@transaction.atomic
def submit_revocation(user, allocation, reason, refund_type='none', refund_amount=None,
                      reason_category='', priority='medium', effective_date=None, notes=''):
    """
    Queue revocation of an active allocation.

    refund_type 'full' refunds everything the client paid for the unit,
    'partial' needs 0 < refund_amount <= total paid, 'none' refunds nothing.
    """
    if not (reason or '').strip():
        raise AllocationError('A reason is required to revoke an allocation')

    allocation = Allocation.objects.select_for_update().get(pk=allocation.pk)
    if allocation.status != 'active':
        raise InvalidTransition(f"Allocation {allocation.allocation_number} is {allocation.status}")

    total_paid = total_paid_for_unit(allocation.client, allocation.unit)
    refund_type = refund_type or 'none'
    if refund_type == 'full':
        refund = total_paid
    elif refund_type == 'partial':
        refund = Decimal(str(refund_amount)) if refund_amount not in (None, '') else ZERO
        if refund <= 0 or refund > total_paid:
            raise AllocationError(f"Partial refund must be greater than 0 and at most {total_paid}")
    elif refund_type == 'none':
        refund = ZERO
    else:
        raise AllocationError(f"Unknown refund type '{refund_type}'")

    _ensure_no_pending_request(units=[allocation.unit], allocation=allocation)

    request_obj = AllocationRequest.objects.create(
        company_id=allocation.company_id,
        request_number=generate_document_number(AllocationRequest, 'request_number', 'ALR'),
        request_type=AllocationRequest.TYPE_REVOCATION,
        priority=priority or 'medium',
        client=allocation.client,
        project=allocation.project,
        unit=allocation.unit,
        sale=allocation.sale,
        allocation=allocation,
        reason_category=reason_category or '',
        reason=reason.strip(),
        refund_type=refund_type,
        refund_amount=refund,
        amount=refund,
        effective_date=effective_date or timezone.localdate(),
        notes=notes or '',
        submitted_by=user,
    )
    record_history(
        request_obj=request_obj,
        allocation=allocation,
        client=allocation.client,
        event='submitted',
        description=f"Revocation of {allocation.allocation_number} submitted for approval",
        amount=refund,
        user=user,
    )
    create_audit_log(
        user=user,
        action='revocation_submit',
        model_name='AllocationRequest',
        object_id=request_obj.id,
        object_name=allocation.client.full_name,
        object_reference=request_obj.request_number,
        changes={'allocation': allocation.allocation_number, 'refund_type': refund_type, 'refund_amount': str(refund)},
        company=request_obj.company,
    )
    logger.info(f"Revocation request {request_obj.request_number} submitted by {user.username}")
    return request_obj


# Review

def check_approver(user, request_obj):
    if not can_approve_allocations(user):
        raise ApprovalNotPermitted()
    if user.company_id and user.company_id != request_obj.company_id:
        raise ApprovalNotPermitted()


def issue_otp(user, request_obj, action):
    """
    Email a fresh OTP for approving or declining a pending request.

    Returns the stored AllocationOTP; the plain code only leaves the server in
    the email.
    """
    if action not in OTP_ACTIONS:
        raise AllocationError(f"Unknown OTP action '{action}'")
    check_approver(user, request_obj)
    if not request_obj.is_pending:
        raise InvalidTransition()
    if not user.email:
        raise AllocationError('Your account has no email address to receive the OTP')

    with transaction.atomic():
        otp, code = create_otp(request_obj, user, action)
        minutes = max(1, get_setting('OTP_TTL_SECONDS') // 60)
        send_mail(
            subject=f"Your OTP to {action} {request_obj.request_number}",
            message=(
                f"Hello {user.get_full_name() or user.username},\n\n"
                f"Use this code to {action} the {request_obj.get_request_type_display().lower()} request "
                f"{request_obj.request_number} for {request_obj.client.full_name}.\n\n"
                f"Code: {code}\n\n"
                f"It expires in {minutes} minutes. If you did not ask for it, ignore this email.\n"
            ),
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[user.email],
            fail_silently=False,
        )

    create_audit_log(
        user=user,
        action='otp_issue',
        model_name='AllocationRequest',
        object_id=request_obj.id,
        object_reference=request_obj.request_number,
        changes={'action': action},
        company=request_obj.company,
    )
    logger.info(f"OTP issued to {user.username} to {action} {request_obj.request_number}")
    return otp


def _verify(user, request_obj, action, otp_code):
    try:
        return verify_otp(request_obj, user, action, otp_code)
    except AllocationError as e:
        create_audit_log(
            user=user,
            action='otp_failed',
            model_name='AllocationRequest',
            object_id=request_obj.id,
            object_reference=request_obj.request_number,
            changes={'action': action, 'error': e.message},
            company=request_obj.company,
        )
        raise


def _lock_pending(request_obj, otp):
    locked = AllocationRequest.objects.select_for_update().get(pk=request_obj.pk)
    if not locked.is_pending:
        raise InvalidTransition(f"Request {locked.request_number} was already {locked.status}")
    if not consume_otp(otp):
        raise InvalidTransition('This OTP has already been used')
    return locked


def approve(user, request_obj, otp_code):
    """Approve a pending request with a valid OTP and apply its effect"""
    check_approver(user, request_obj)
    if not request_obj.is_pending:
        raise InvalidTransition(f"Request {request_obj.request_number} was already {request_obj.status}")
    otp = _verify(user, request_obj, 'approve', otp_code)

    with transaction.atomic():
        request_obj = _lock_pending(request_obj, otp)
        apply = {
            AllocationRequest.TYPE_ALLOCATION: _apply_allocation,
            AllocationRequest.TYPE_REALLOCATION: _apply_reallocation,
            AllocationRequest.TYPE_REVOCATION: _apply_revocation,
        }[request_obj.request_type]
        resulting_allocation = apply(user, request_obj)

        request_obj.status = AllocationRequest.STATUS_APPROVED
        request_obj.reviewed_by = user
        request_obj.reviewed_at = timezone.now()
        request_obj.resulting_allocation = resulting_allocation
        request_obj.save(update_fields=['status', 'reviewed_by', 'reviewed_at', 'resulting_allocation'])

        create_audit_log(
            user=user,
            action='request_approve',
            model_name='AllocationRequest',
            object_id=request_obj.id,
            object_name=request_obj.client.full_name,
            object_reference=request_obj.request_number,
            changes={'request_type': request_obj.request_type,
                     'allocation': resulting_allocation.allocation_number if resulting_allocation else None},
            company=request_obj.company,
        )

    logger.info(f"Request {request_obj.request_number} ({request_obj.request_type}) approved by {user.username}")
    return request_obj


def _apply_allocation(user, request_obj):
    unit = _lock_unit(request_obj.unit)
    reserved_for_client = unit.status == 'reserved' and unit.client_id == request_obj.client_id
    if unit.status != 'available' and not reserved_for_client:
        raise UnitUnavailable(f"Unit {unit.unit_number} is {unit.status}")

    allocation = Allocation.objects.create(
        company_id=request_obj.company_id,
        allocation_number=generate_document_number(Allocation, 'allocation_number', 'ALC'),
        sale=request_obj.sale,
        client=request_obj.client,
        project=request_obj.project,
        unit=unit,
        allocation_date=request_obj.effective_date,
        approved_by=user,
        notes=request_obj.notes,
    )

    previous = {'status': unit.status, 'client': unit.client_id}
    unit.status = 'allocated'
    unit.client = request_obj.client
    unit.save(update_fields=['status', 'client', 'updated_at'])

    if request_obj.sale_id:
        sale = Sale.objects.select_for_update().get(pk=request_obj.sale_id)
        sale.status = 'allocated'
        sale.pipeline_stage = 'allocation'
        sale.save(update_fields=['status', 'pipeline_stage', 'updated_at'])

    record_history(
        request_obj=request_obj,
        allocation=allocation,
        client=request_obj.client,
        event='allocated',
        description=f"{unit.unit_number} allocated to {request_obj.client.full_name}",
        amount=request_obj.amount,
        user=user,
        previous_values=previous,
        new_values={'status': 'allocated', 'client': request_obj.client_id},
    )
    return allocation


def _apply_reallocation(user, request_obj):
    old = Allocation.objects.select_for_update().get(pk=request_obj.allocation_id)
    if old.status != 'active':
        raise InvalidTransition(f"Allocation {old.allocation_number} is {old.status}")

    old_unit = _lock_unit(old.unit)
    target_unit = old_unit
    if request_obj.new_unit_id and request_obj.new_unit_id != old.unit_id:
        target_unit = _lock_unit(request_obj.new_unit)
        if target_unit.status != 'available':
            raise UnitUnavailable(f"Unit {target_unit.unit_number} is {target_unit.status}")
        old_unit.status = 'available'
        old_unit.client = None
        old_unit.save(update_fields=['status', 'client', 'updated_at'])

    old.status = 'reallocated'
    old.save(update_fields=['status', 'updated_at'])

    allocation = Allocation.objects.create(
        company_id=old.company_id,
        allocation_number=generate_document_number(Allocation, 'allocation_number', 'ALC'),
        sale=old.sale,
        client=request_obj.new_client,
        project=old.project,
        unit=target_unit,
        allocation_date=request_obj.effective_date,
        previous_allocation=old,
        approved_by=user,
        notes=request_obj.notes,
    )

    target_unit.status = 'allocated'
    target_unit.client = request_obj.new_client
    target_unit.save(update_fields=['status', 'client', 'updated_at'])

    record_history(
        request_obj=request_obj,
        allocation=allocation,
        unit=target_unit,
        client=request_obj.new_client,
        event='reallocated',
        description=(
            f"{old.unit.unit_number} of {old.client.full_name} reallocated to "
            f"{request_obj.new_client.full_name} on {target_unit.unit_number}"
        ),
        amount=request_obj.amount,
        user=user,
        previous_values={'allocation': old.allocation_number, 'client': old.client_id, 'unit': old.unit_id},
        new_values={'allocation': allocation.allocation_number, 'client': request_obj.new_client_id,
                    'unit': target_unit.id},
    )
    return allocation


def _apply_revocation(user, request_obj):
    allocation = Allocation.objects.select_for_update().get(pk=request_obj.allocation_id)
    if allocation.status != 'active':
        raise InvalidTransition(f"Allocation {allocation.allocation_number} is {allocation.status}")

    allocation.status = 'revoked'
    allocation.revoked_at = timezone.now()
    allocation.save(update_fields=['status', 'revoked_at', 'updated_at'])

    unit = _lock_unit(allocation.unit)
    unit.status = 'available'
    unit.client = None
    unit.save(update_fields=['status', 'client', 'updated_at'])

    if request_obj.refund_amount and request_obj.refund_amount > 0:
        ClientPayment.objects.create(
            company_id=allocation.company_id,
            client=allocation.client,
            sale=allocation.sale,
            project=allocation.project,
            unit=unit,
            amount=request_obj.refund_amount,
            payment_type='refund',
            status='pending',
            reference=request_obj.request_number,
            notes=f"Refund for revoked allocation {allocation.allocation_number}",
            created_by=user,
        )

    if allocation.sale_id:
        sale = Sale.objects.select_for_update().get(pk=allocation.sale_id)
        sale.status = 'cancelled'
        sale.save(update_fields=['status', 'updated_at'])
        Commission.objects.filter(sale=sale, status='pending').update(status='cancelled', updated_at=timezone.now())

    record_history(
        request_obj=request_obj,
        allocation=allocation,
        unit=unit,
        client=allocation.client,
        event='revoked',
        description=f"Allocation {allocation.allocation_number} revoked: {request_obj.reason}",
        amount=request_obj.refund_amount,
        user=user,
        previous_values={'status': 'active', 'client': allocation.client_id},
        new_values={'status': 'revoked', 'refund_type': request_obj.refund_type,
                    'refund_amount': str(request_obj.refund_amount)},
    )
    return None


def decline(user, request_obj, otp_code, reason):
    """Decline a pending request with a valid OTP; units are left untouched"""
    if not (reason or '').strip():
        raise AllocationError('A reason is required to decline a request')
    check_approver(user, request_obj)
    if not request_obj.is_pending:
        raise InvalidTransition(f"Request {request_obj.request_number} was already {request_obj.status}")
    otp = _verify(user, request_obj, 'decline', otp_code)

    with transaction.atomic():
        request_obj = _lock_pending(request_obj, otp)
        request_obj.status = AllocationRequest.STATUS_DECLINED
        request_obj.decline_reason = reason.strip()
        request_obj.reviewed_by = user
        request_obj.reviewed_at = timezone.now()
        request_obj.save(update_fields=['status', 'decline_reason', 'reviewed_by', 'reviewed_at'])

        if request_obj.request_type == AllocationRequest.TYPE_ALLOCATION and request_obj.sale_id:
            Sale.objects.filter(pk=request_obj.sale_id).update(status='declined', updated_at=timezone.now())

        record_history(
            request_obj=request_obj,
            allocation=request_obj.allocation,
            client=request_obj.client,
            event='declined',
            description=f"{request_obj.get_request_type_display()} request declined: {request_obj.decline_reason}",
            user=user,
        )
        create_audit_log(
            user=user,
            action='request_decline',
            model_name='AllocationRequest',
            object_id=request_obj.id,
            object_name=request_obj.client.full_name,
            object_reference=request_obj.request_number,
            changes={'request_type': request_obj.request_type, 'reason': request_obj.decline_reason},
            company=request_obj.company,
        )

    logger.info(f"Request {request_obj.request_number} declined by {user.username}")
    return request_obj


@transaction.atomic
def delete_sale(user, sale):
    """
    Delete a sale that never reached allocation.

    The reserved unit is released and queued allocation requests for the
    sale must be resolved first.
    """
    sale = Sale.objects.select_for_update().get(pk=sale.pk)
    if sale.status not in ('pending', 'declined', 'cancelled'):
        raise InvalidTransition(f"Sale {sale.sale_number} is {sale.status} and cannot be deleted")
    if sale.allocations.exists():
        raise InvalidTransition(f"Sale {sale.sale_number} has allocations and cannot be deleted")
    if sale.allocation_requests.filter(status=AllocationRequest.STATUS_PENDING).exists():
        raise DuplicateRequest(f"Sale {sale.sale_number} has a pending allocation request")

    unit = _lock_unit(sale.unit)
    if unit.status == 'reserved' and unit.client_id == sale.client_id:
        unit.status = 'available'
        unit.client = None
        unit.save(update_fields=['status', 'client', 'updated_at'])

    sale_number = sale.sale_number
    sale_id = sale.id
    create_audit_log(
        user=user,
        action='delete',
        model_name='Sale',
        object_id=sale_id,
        object_name=sale.client.full_name,
        object_reference=sale_number,
        company=sale.company,
    )
    sale.delete()
    logger.info(f"Sale {sale_number} deleted by {user.username}")
