import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils.dateparse import parse_date
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError, AuthenticationFailed
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .models import Company, Setting, AuditLog
from .permissions import (
    IsCompanyAdmin, IsPlatformSuperuser, get_user_groups, is_admin_user,
    can_approve_allocations, can_access_reports, scope_to_company, get_company_object_or_404
)
from .serializers import (
    CompanySerializer, UserSerializer, UserCreateSerializer, RegisterSerializer,
    SettingSerializer, AuditLogSerializer
)

User = get_user_model()
logger = logging.getLogger('propty.core')


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['groups'] = list(user.groups.values_list('name', flat=True))
        token['company_id'] = user.company_id
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Custom token refresh serializer that handles deleted users gracefully"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except ObjectDoesNotExist:
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """Company sign-up: creates the company and its Director account"""
    serializer = RegisterSerializer(data=request.data)
    if serializer.is_valid():
        user = serializer.save()
        logger.info(f"Registered company '{user.company.name}' with director {user.username}")
        token = CustomTokenObtainPairSerializer.get_token(user)
        return Response({
            'user': UserSerializer(user).data,
            'access': str(token.access_token),
            'refresh': str(token),
        }, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Get current user with groups, company and capability flags"""
    user = request.user
    user_data = UserSerializer(user).data
    user_data['groups'] = get_user_groups(user)
    if user.company_id:
        user_data['company'] = CompanySerializer(user.company).data
    user_data['is_admin'] = is_admin_user(user)
    user_data['can_approve_allocations'] = can_approve_allocations(user)
    user_data['can_access_reports'] = can_access_reports(user)
    return Response(user_data)


# Company views (platform superusers only)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsPlatformSuperuser])
def company_list_create(request):
    """List all companies or create a new company"""
    if request.method == 'GET':
        companies = Company.objects.all()
        search = request.query_params.get('search')
        if search:
            companies = companies.filter(Q(name__icontains=search) | Q(email__icontains=search))
        serializer = CompanySerializer(companies, many=True)
        return Response(serializer.data)
    else:
        serializer = CompanySerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsPlatformSuperuser])
def company_detail(request, pk):
    """Retrieve, update or delete a company"""
    company = get_object_or_404(Company, pk=pk)

    if request.method == 'GET':
        serializer = CompanySerializer(company)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CompanySerializer(company, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        company.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# User views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsCompanyAdmin])
def user_list_create(request):
    """List the company's users or create a new user in the company"""
    if request.method == 'GET':
        users = scope_to_company(User.objects.all(), request.user).order_by('username')
        serializer = UserSerializer(users, many=True)
        return Response(serializer.data)
    else:
        serializer = UserCreateSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save(company=request.user.company)
            logger.info(f"User {request.user.username} created user {user.username}")
            return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsCompanyAdmin])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    user = get_company_object_or_404(User.objects.all(), request.user, pk=pk)

    if request.method == 'GET':
        serializer = UserSerializer(user)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = UserSerializer(user, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if user.pk == request.user.pk:
            return Response({'error': 'You cannot delete your own account'}, status=status.HTTP_400_BAD_REQUEST)
        user.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Setting views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def setting_list_create(request):
    """List all company settings or create a new setting"""
    if request.method == 'GET':
        settings_qs = scope_to_company(Setting.objects.all(), request.user).order_by('key')
        serializer = SettingSerializer(settings_qs, many=True)
        return Response(serializer.data)
    else:
        if not is_admin_user(request.user):
            return Response({'error': 'Only administrators can change settings'}, status=status.HTTP_403_FORBIDDEN)
        serializer = SettingSerializer(data=request.data)
        if serializer.is_valid():
            try:
                with transaction.atomic():
                    serializer.save(company=request.user.company)
            except IntegrityError:
                return Response({'error': 'A setting with this key already exists'}, status=status.HTTP_400_BAD_REQUEST)
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def setting_detail(request, pk):
    """Retrieve, update or delete a setting"""
    setting = get_company_object_or_404(Setting.objects.all(), request.user, pk=pk)

    if request.method == 'GET':
        serializer = SettingSerializer(setting)
        return Response(serializer.data)

    if not is_admin_user(request.user):
        return Response({'error': 'Only administrators can change settings'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = SettingSerializer(setting, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            try:
                with transaction.atomic():
                    serializer.save()
            except IntegrityError:
                return Response({'error': 'A setting with this key already exists'}, status=status.HTTP_400_BAD_REQUEST)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        setting.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# AuditLog views
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCompanyAdmin])
def audit_log_list(request):
    """List audit logs with optional filters"""
    queryset = scope_to_company(AuditLog.objects.select_related('user'), request.user)

    action = request.query_params.get('action')
    model_name = request.query_params.get('model_name')
    date_from = parse_date(request.query_params.get('date_from') or '')
    date_to = parse_date(request.query_params.get('date_to') or '')

    if action:
        queryset = queryset.filter(action=action)
    if model_name:
        queryset = queryset.filter(model_name__iexact=model_name)
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    serializer = AuditLogSerializer(queryset[:500], many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCompanyAdmin])
def audit_log_detail(request, pk):
    """Retrieve an audit log entry"""
    log = get_company_object_or_404(AuditLog.objects.all(), request.user, pk=pk)
    serializer = AuditLogSerializer(log)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def global_search(request):
    """
    Search clients, projects, units and sales of the caller's company.

    Every match is a case-insensitive substring match; each section returns at
    most `limit` rows (default 10).
    """
    from propty.clients.models import Client
    from propty.projects.models import Project, Unit
    from propty.sales.models import Sale

    query = (request.query_params.get('q') or '').strip()
    try:
        limit = max(1, min(int(request.query_params.get('limit', 10)), 50))
    except ValueError:
        limit = 10

    if not query:
        return Response({'query': query, 'clients': [], 'projects': [], 'units': [], 'sales': []})

    clients = scope_to_company(Client.objects.all(), request.user).filter(
        Q(first_name__icontains=query) | Q(last_name__icontains=query) |
        Q(email__icontains=query) | Q(phone__icontains=query)
    )[:limit]
    projects = scope_to_company(Project.objects.all(), request.user).filter(
        Q(name__icontains=query) | Q(location__icontains=query)
    )[:limit]
    units = scope_to_company(Unit.objects.select_related('project'), request.user, field='project__company').filter(
        Q(unit_number__icontains=query) | Q(unit_name__icontains=query)
    )[:limit]
    sales = scope_to_company(Sale.objects.select_related('client', 'project'), request.user).filter(
        Q(sale_number__icontains=query) | Q(client__first_name__icontains=query) |
        Q(client__last_name__icontains=query)
    )[:limit]

    return Response({
        'query': query,
        'clients': [
            {'id': c.id, 'name': c.full_name, 'email': c.email, 'phone': c.phone}
            for c in clients
        ],
        'projects': [
            {'id': p.id, 'name': p.name, 'location': p.location, 'status': p.status}
            for p in projects
        ],
        'units': [
            {'id': u.id, 'unit_number': u.unit_number, 'project': u.project.name, 'status': u.status}
            for u in units
        ],
        'sales': [
            {'id': s.id, 'sale_number': s.sale_number, 'client': s.client.full_name,
             'project': s.project.name, 'status': s.status}
            for s in sales
        ],
    })
