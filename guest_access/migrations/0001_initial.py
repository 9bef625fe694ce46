import uuid

import django.db.models.deletion
import django.db.models.expressions
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("core", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Barrier",
            fields=[
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=100)),
                ("location", models.CharField(blank=True, default="", max_length=200)),
                ("device_type", models.CharField(blank=True, default="", max_length=50)),
                ("device_ip", models.GenericIPAddressField(blank=True, null=True)),
                ("device_port", models.PositiveIntegerField(blank=True, null=True)),
                ("api_key", models.CharField(blank=True, default="", max_length=255)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "residential",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="barriers",
                        to="core.residential",
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="GuestAccess",
            fields=[
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("guest_name", models.CharField(blank=True, default="", max_length=100)),
                ("guest_phone", models.CharField(blank=True, default="", max_length=20)),
                ("vehicle_number", models.CharField(blank=True, default="", max_length=20)),
                ("access_code", models.CharField(editable=False, max_length=16)),
                ("duration_minutes", models.PositiveIntegerField()),
                ("expires_at", models.DateTimeField()),
                ("entered_at", models.DateTimeField(blank=True, null=True)),
                ("exited_at", models.DateTimeField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pendiente"),
                            ("active", "Dentro"),
                            ("completed", "Completado"),
                            ("expired", "Expirado"),
                            ("cancelled", "Cancelado"),
                        ],
                        default="pending",
                        max_length=10,
                    ),
                ),
                ("owner_notified", models.BooleanField(default=False)),
                ("chairman_notified", models.BooleanField(default=False)),
                ("overstay_notified", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                (
                    "created_by",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="created_guest_accesses",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "residential",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="guest_accesses",
                        to="core.residential",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["access_code"], name="guest_access_code_idx"),
                    models.Index(fields=["status", "expires_at"], name="guest_access_status_exp_idx"),
                    models.Index(fields=["residential", "status"], name="guest_access_res_status_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status__in", ["pending", "active"])),
                        fields=("access_code",),
                        name="guest_access_live_code_unique",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("expires_at__gt", django.db.models.expressions.F("created_at"))),
                        name="guest_access_expires_after_creation",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("exited_at__isnull", True),
                            ("exited_at__gte", django.db.models.expressions.F("entered_at")),
                            _connector="OR",
                        ),
                        name="guest_access_exit_after_entry",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="BarrierAccessLog",
            fields=[
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("action", models.CharField(choices=[("entry", "Entrada"), ("exit", "Salida")], max_length=5)),
                ("vehicle_number", models.CharField(blank=True, default="", max_length=20)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                (
                    "barrier",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="access_logs",
                        to="guest_access.barrier",
                    ),
                ),
                (
                    "guest_access",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="access_logs",
                        to="guest_access.guestaccess",
                    ),
                ),
                (
                    "residential",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="barrier_logs",
                        to="core.residential",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="barrier_logs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["residential", "created_at"], name="barrier_log_res_created_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("guest_access__isnull", True), ("user__isnull", False)),
                            models.Q(("guest_access__isnull", False), ("user__isnull", True)),
                            _connector="OR",
                        ),
                        name="barrier_log_single_subject",
                    ),
                ],
            },
        ),
    ]
