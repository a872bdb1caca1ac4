from rest_framework import serializers

from propty.clients.models import Client
from .models import Notice, NoticeDelivery


class NoticeSerializer(serializers.ModelSerializer):
    recipients = serializers.PrimaryKeyRelatedField(queryset=Client.objects.all(), many=True, required=False)
    project_name = serializers.CharField(source='project.name', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True)
    sent_by_username = serializers.CharField(source='sent_by.username', read_only=True)

    class Meta:
        model = Notice
        fields = ['id', 'title', 'message', 'channels', 'recipient_type', 'project', 'project_name', 'recipients',
                  'attachment', 'status', 'recipient_count', 'created_by', 'created_by_username', 'sent_by',
                  'sent_by_username', 'sent_at', 'created_at', 'updated_at']
        read_only_fields = ['status', 'recipient_count', 'created_by', 'sent_by', 'sent_at', 'created_at',
                            'updated_at']

    def validate_title(self, value):
        if not value.strip():
            raise serializers.ValidationError("Title is required")
        return value.strip()

    def validate_message(self, value):
        if not value.strip():
            raise serializers.ValidationError("Message is required")
        return value

    def validate_channels(self, value):
        if not isinstance(value, list) or not value:
            raise serializers.ValidationError("Select at least one channel")
        unknown = [channel for channel in value if channel not in Notice.CHANNELS]
        if unknown:
            raise serializers.ValidationError(f"Unknown channel(s): {', '.join(map(str, unknown))}")
        # Keep order, drop duplicates
        return list(dict.fromkeys(value))

    def validate_project(self, value):
        company_id = self.context.get('company_id')
        if value and company_id and value.company_id != company_id:
            raise serializers.ValidationError("Project not found")
        return value

    def validate_recipients(self, value):
        company_id = self.context.get('company_id')
        if company_id and any(client.company_id != company_id for client in value):
            raise serializers.ValidationError("Client not found")
        return value

    def validate(self, attrs):
        def current(field, default=None):
            if field in attrs:
                return attrs[field]
            if self.instance is not None:
                if field == 'recipients':
                    return list(self.instance.recipients.all())
                return getattr(self.instance, field)
            return default

        recipient_type = current('recipient_type', 'all')
        if recipient_type == 'selected' and not current('recipients', []):
            raise serializers.ValidationError({'recipients': "Select at least one client"})
        if recipient_type == 'project' and not current('project'):
            raise serializers.ValidationError({'project': "Select the project whose clients receive the notice"})
        if self.instance is None and 'channels' not in attrs:
            raise serializers.ValidationError({'channels': "Select at least one channel"})
        return attrs


class NoticeDeliverySerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.full_name', read_only=True)

    class Meta:
        model = NoticeDelivery
        fields = ['id', 'notice', 'client', 'client_name', 'channel', 'status', 'error', 'delivered_at',
                  'created_at']
        read_only_fields = fields


class ClientNoticeSerializer(serializers.ModelSerializer):
    """A notice as delivered to one client"""
    title = serializers.CharField(source='notice.title', read_only=True)
    message = serializers.CharField(source='notice.message', read_only=True)
    sent_at = serializers.DateTimeField(source='notice.sent_at', read_only=True)

    class Meta:
        model = NoticeDelivery
        fields = ['id', 'notice', 'title', 'message', 'channel', 'status', 'delivered_at', 'sent_at']
        read_only_fields = fields
