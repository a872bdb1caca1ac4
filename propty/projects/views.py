import logging

from django.db import transaction
from django.db.models import Count, Q, ProtectedError
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from propty.clients.models import ClientPayment
from propty.core.permissions import scope_to_company, get_company_object_or_404
from propty.core.utils import create_audit_log
from propty.sales.models import Sale, AllocationHistory
from .filters import ProjectFilter, UnitFilter
from .models import Project, Block, Unit
from .serializers import ProjectSerializer, ProjectListSerializer, BlockSerializer, UnitSerializer
from .utils import unit_status_counts, allocation_rate, project_revenue, OCCUPIED_STATUSES

logger = logging.getLogger('propty.projects')

UNIT_COMPANY_FIELD = 'project__company'


def _annotate_unit_counts(queryset):
    return queryset.annotate(
        total_units_count=Count('units', distinct=True),
        available_units_count=Count('units', filter=Q(units__status='available'), distinct=True),
        allocated_units_count=Count('units', filter=Q(units__status='allocated'), distinct=True),
    )


def _company_units(user):
    return scope_to_company(Unit.objects.select_related('project', 'block', 'client'), user, field=UNIT_COMPANY_FIELD)


# Project views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def project_list_create(request):
    """List company projects or create one with nested blocks"""
    if request.method == 'GET':
        queryset = scope_to_company(Project.objects.all(), request.user)
        filterset = ProjectFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        queryset = _annotate_unit_counts(filterset.qs).order_by('-created_at')
        serializer = ProjectListSerializer(queryset, many=True)
        return Response(serializer.data)

    if not request.user.company_id:
        return Response({'error': 'Your account is not attached to a company'}, status=status.HTTP_400_BAD_REQUEST)
    serializer = ProjectSerializer(data=request.data)
    if serializer.is_valid():
        project = serializer.save(company=request.user.company)
        create_audit_log(
            request=request,
            action='create',
            model_name='Project',
            object_id=project.id,
            object_name=project.name,
            changes={'blocks': project.blocks.count(), 'units': project.units.count()},
        )
        logger.info(f"Project '{project.name}' created by {request.user.username}")
        return Response(ProjectSerializer(project).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def project_detail(request, pk):
    """Retrieve, update or delete a project"""
    project = get_company_object_or_404(Project.objects.prefetch_related('blocks'), request.user, pk=pk)

    if request.method == 'GET':
        serializer = ProjectSerializer(project)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ProjectSerializer(project, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if project.units.filter(status__in=OCCUPIED_STATUSES).exists():
            return Response(
                {'error': 'Cannot delete a project with allocated or sold units'},
                status=status.HTTP_409_CONFLICT
            )
        try:
            project.delete()
        except ProtectedError:
            return Response(
                {'error': 'Cannot delete a project that has sales or allocations'},
                status=status.HTTP_409_CONFLICT
            )
        create_audit_log(request=request, action='delete', model_name='Project', object_id=pk, object_name=project.name)
        logger.info(f"Project {pk} deleted by {request.user.username}")
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def projects_stats(request):
    """Company-wide project and unit totals"""
    projects = scope_to_company(Project.objects.all(), request.user)
    units = scope_to_company(Unit.objects.all(), request.user, field=UNIT_COMPANY_FIELD)
    payments = scope_to_company(ClientPayment.objects.all(), request.user)

    projects_by_status = {choice: 0 for choice, _ in Project.STATUS_CHOICES}
    for row in projects.order_by().values('status').annotate(count=Count('id')):
        projects_by_status[row['status']] = row['count']

    counts = unit_status_counts(units)
    return Response({
        'total_projects': projects.count(),
        'projects_by_status': projects_by_status,
        'total_units': sum(counts.values()),
        'units_by_status': counts,
        'total_revenue': project_revenue(payments),
        'allocation_rate': allocation_rate(counts),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def project_stats(request, pk):
    """Unit counts, revenue and allocation rate of one project"""
    project = get_company_object_or_404(Project.objects.all(), request.user, pk=pk)
    counts = unit_status_counts(project.units.all())
    return Response({
        'project_id': project.id,
        'project_name': project.name,
        'units_by_status': counts,
        'total_units': sum(counts.values()),
        'allocated_units': counts['allocated'],
        'available_units': counts['available'],
        'reserved_units': counts['reserved'],
        'sold_units': counts['sold'],
        'revenue': project_revenue(ClientPayment.objects.filter(project=project)),
        'allocation_rate': allocation_rate(counts),
    })


# Block views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def block_list_create(request, project_pk):
    """List or create blocks of a project"""
    project = get_company_object_or_404(Project.objects.all(), request.user, pk=project_pk)

    if request.method == 'GET':
        blocks = project.blocks.annotate(units_count=Count('units')).order_by('name')
        serializer = BlockSerializer(blocks, many=True)
        return Response(serializer.data)

    serializer = BlockSerializer(data=request.data, context={'project': project})
    if serializer.is_valid():
        block = serializer.save(project=project)
        logger.info(f"Block '{block.name}' added to project {project.id} by {request.user.username}")
        return Response(BlockSerializer(block).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def block_detail(request, project_pk, pk):
    """Retrieve, update or delete a block"""
    project = get_company_object_or_404(Project.objects.all(), request.user, pk=project_pk)
    block = get_company_object_or_404(Block.objects.filter(project=project), request.user, field='project__company', pk=pk)

    if request.method == 'GET':
        serializer = BlockSerializer(block)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = BlockSerializer(block, data=request.data, partial=request.method == 'PATCH',
                                     context={'project': project})
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if block.units.filter(status__in=OCCUPIED_STATUSES).exists():
            return Response({'error': 'Cannot delete a block with allocated or sold units'},
                            status=status.HTTP_409_CONFLICT)
        block.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Unit views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def unit_list_create(request, project_pk):
    """List or create units of a project"""
    project = get_company_object_or_404(Project.objects.all(), request.user, pk=project_pk)

    if request.method == 'GET':
        queryset = project.units.select_related('block', 'client', 'project')
        filterset = UnitFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer = UnitSerializer(filterset.qs, many=True)
        return Response(serializer.data)

    serializer = UnitSerializer(data=request.data, context={'project': project})
    if serializer.is_valid():
        if project.units.filter(unit_number=serializer.validated_data['unit_number']).exists():
            return Response({'unit_number': ['A unit with this number already exists in the project']},
                            status=status.HTTP_400_BAD_REQUEST)
        unit = serializer.save(project=project)
        return Response(UnitSerializer(unit).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def unit_detail(request, project_pk, pk):
    """Retrieve, update or delete a unit"""
    project = get_company_object_or_404(Project.objects.all(), request.user, pk=project_pk)
    unit = get_company_object_or_404(_company_units(request.user).filter(project=project), request.user,
                                     field=UNIT_COMPANY_FIELD, pk=pk)
    return _unit_detail_response(request, unit)


def _unit_detail_response(request, unit):
    if request.method == 'GET':
        serializer = UnitSerializer(unit)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = UnitSerializer(unit, data=request.data, partial=request.method == 'PATCH',
                                    context={'project': unit.project})
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if unit.status != 'available':
            return Response({'error': f'Cannot delete a unit that is {unit.status}'}, status=status.HTTP_409_CONFLICT)
        try:
            unit.delete()
        except ProtectedError:
            return Response({'error': 'Cannot delete a unit that has sales or allocations'},
                            status=status.HTTP_409_CONFLICT)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH', 'POST'])
@permission_classes([IsAuthenticated])
def unit_bulk_update(request, project_pk):
    """
    Partially update many units of a project at once.

    Body: {"units": [{"id": 1, "price": "5000000.00"}, ...]}. Either every
    unit is updated or none is.
    """
    project = get_company_object_or_404(Project.objects.all(), request.user, pk=project_pk)
    items = request.data.get('units')
    if not isinstance(items, list) or not items:
        return Response({'error': 'units must be a non-empty list'}, status=status.HTTP_400_BAD_REQUEST)

    units_by_id = {unit.id: unit for unit in project.units.filter(id__in=[item.get('id') for item in items if isinstance(item, dict)])}
    errors = {}
    serializers_to_save = []
    for index, item in enumerate(items):
        unit = units_by_id.get(item.get('id')) if isinstance(item, dict) else None
        if unit is None:
            errors[str(index)] = {'id': ['Unit not found in this project']}
            continue
        data = {key: value for key, value in item.items() if key != 'id'}
        serializer = UnitSerializer(unit, data=data, partial=True, context={'project': project})
        if serializer.is_valid():
            serializers_to_save.append(serializer)
        else:
            errors[str(index)] = serializer.errors

    if errors:
        return Response({'errors': errors}, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        updated = [serializer.save() for serializer in serializers_to_save]

    logger.info(f"Bulk updated {len(updated)} units of project {project.id} by {request.user.username}")
    return Response({'updated': len(updated), 'units': UnitSerializer(updated, many=True).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def project_sales(request, pk):
    """Sales history of a project"""
    from propty.sales.serializers import SaleSerializer

    project = get_company_object_or_404(Project.objects.all(), request.user, pk=pk)
    sales = Sale.objects.filter(project=project).select_related('client', 'unit', 'marketer', 'project')
    serializer = SaleSerializer(sales, many=True)
    return Response(serializer.data)


# Plot views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def plot_list(request):
    """All plots/units of the company; filters status, block, project, search"""
    filterset = UnitFilter(request.query_params, queryset=_company_units(request.user))
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    serializer = UnitSerializer(filterset.qs.order_by('project_id', 'unit_number'), many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def plots_by_project(request, project_pk):
    project = get_company_object_or_404(Project.objects.all(), request.user, pk=project_pk)
    filterset = UnitFilter(request.query_params, queryset=_company_units(request.user).filter(project=project))
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    serializer = UnitSerializer(filterset.qs, many=True)
    return Response(serializer.data)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def plot_detail(request, pk):
    unit = get_company_object_or_404(_company_units(request.user), request.user, field=UNIT_COMPANY_FIELD, pk=pk)
    return _unit_detail_response(request, unit)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def unit_timeline(request, pk):
    """Allocation history of a plot, newest first"""
    from propty.sales.serializers import AllocationHistorySerializer

    unit = get_company_object_or_404(_company_units(request.user), request.user, field=UNIT_COMPANY_FIELD, pk=pk)
    events = AllocationHistory.objects.filter(unit=unit).select_related('client', 'performed_by', 'allocation', 'request')
    return Response({
        'unit': UnitSerializer(unit).data,
        'events': AllocationHistorySerializer(events, many=True).data,
    })
