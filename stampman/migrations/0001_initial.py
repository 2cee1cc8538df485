# Initial schema: Customer stamp cards and the activity log

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Customer",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("name", models.CharField(max_length=100, verbose_name="name")),
                (
                    "phone_full",
                    models.CharField(
                        help_text="Digits only (ex: 01099998888)",
                        max_length=20,
                        unique=True,
                        verbose_name="phone",
                    ),
                ),
                (
                    "phone_last4",
                    models.CharField(
                        db_index=True,
                        editable=False,
                        max_length=4,
                        verbose_name="last 4 digits",
                    ),
                ),
                ("stamps", models.PositiveIntegerField(default=0, verbose_name="stamps")),
                (
                    "free_item_available",
                    models.BooleanField(
                        db_index=True,
                        default=False,
                        verbose_name="free item available",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at"),
                ),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
            ],
            options={
                "verbose_name": "customer",
                "verbose_name_plural": "customers",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(
                        fields=["phone_last4", "-created_at"],
                        name="stampman_cust_last4_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ActivityEntry",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "reason",
                    models.CharField(
                        choices=[
                            ("stamp_added", "Stamp added"),
                            ("free_item_redeemed", "Free item redeemed"),
                            (
                                "purchase_with_free_available",
                                "Purchase with free item available",
                            ),
                        ],
                        max_length=40,
                        verbose_name="reason",
                    ),
                ),
                (
                    "stamps_after",
                    models.PositiveIntegerField(
                        help_text="Stamp count after this transaction",
                        verbose_name="stamps after",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at"),
                ),
                (
                    "created_by",
                    models.CharField(blank=True, max_length=100, verbose_name="created by"),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        db_constraint=False,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="activity",
                        to="stampman.customer",
                        verbose_name="customer",
                    ),
                ),
            ],
            options={
                "verbose_name": "activity entry",
                "verbose_name_plural": "activity entries",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(
                        fields=["customer", "-created_at"],
                        name="stampman_act_cust_idx",
                    ),
                ],
            },
        ),
    ]
