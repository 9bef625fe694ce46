from rest_framework import serializers

from .models import BarrierAccessLog, BarrierAction, GuestAccess


class GuestAccessCreateSerializer(serializers.Serializer):
    guest_name = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    guest_phone = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")
    vehicle_number = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")
    # El rango lo valida el emisor con la configuración vigente
    duration_minutes = serializers.IntegerField(required=False, allow_null=True, default=None)


class GuestAccessDetailSerializer(serializers.ModelSerializer):
    residential_name = serializers.CharField(source="residential.name", read_only=True)
    qr_payload = serializers.CharField(read_only=True)

    class Meta:
        model = GuestAccess
        fields = (
            "uuid", "access_code", "qr_payload", "qr_code_url", "status",
            "guest_name", "guest_phone", "vehicle_number",
            "duration_minutes", "created_at", "expires_at",
            "entered_at", "exited_at",
            "owner_notified", "chairman_notified", "overstay_notified",
            "residential_name",
        )
        read_only_fields = fields


class BarrierScanRequestSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=64)
    action = serializers.ChoiceField(choices=BarrierAction.choices)
    barrier_id = serializers.UUIDField(required=False, allow_null=True)
    vehicle_number = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")


class BarrierOpenRequestSerializer(serializers.Serializer):
    vehicle_number = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")


class CredentialStatusSerializer(serializers.Serializer):
    """Serializa services.CredentialStatus (consulta del residente)."""
    id = serializers.UUIDField()
    status = serializers.CharField()
    access_code = serializers.CharField()
    qr_payload = serializers.CharField()
    qr_code_url = serializers.CharField()
    guest_name = serializers.CharField()
    vehicle_number = serializers.CharField()
    duration_minutes = serializers.IntegerField()
    created_at = serializers.DateTimeField()
    expires_at = serializers.DateTimeField()
    entered_at = serializers.DateTimeField(allow_null=True)
    exited_at = serializers.DateTimeField(allow_null=True)
    owner_notified = serializers.BooleanField()
    chairman_notified = serializers.BooleanField()
    overstay_notified = serializers.BooleanField()


class BarrierAccessLogSerializer(serializers.ModelSerializer):
    barrier_name = serializers.CharField(source="barrier.name", read_only=True, default=None)
    guest_name = serializers.SerializerMethodField()
    user_name = serializers.SerializerMethodField()

    class Meta:
        model = BarrierAccessLog
        fields = (
            "uuid", "action", "vehicle_number", "created_at",
            "barrier", "barrier_name",
            "guest_access", "guest_name",
            "user", "user_name",
        )

    def get_guest_name(self, obj):
        if obj.guest_access_id:
            return obj.guest_access.guest_name
        return None

    def get_user_name(self, obj):
        if obj.user_id:
            return obj.user.get_full_name() or obj.user.username
        return None
