# Initial schema for the loyalty program

import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="LoyaltyTier",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=50, verbose_name="name")),
                (
                    "tier_level",
                    models.PositiveSmallIntegerField(
                        help_text="1 = entry tier, higher = better",
                        unique=True,
                        verbose_name="level",
                    ),
                ),
                (
                    "min_points",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Qualifying points needed to reach this tier",
                        verbose_name="minimum points",
                    ),
                ),
                (
                    "discount_percentage",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0"),
                        max_digits=5,
                        verbose_name="discount %",
                    ),
                ),
                ("benefits", models.JSONField(blank=True, default=list, verbose_name="benefits")),
                ("color", models.CharField(blank=True, max_length=7, verbose_name="color")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
            ],
            options={
                "verbose_name": "loyalty tier",
                "verbose_name_plural": "loyalty tiers",
                "ordering": ["tier_level"],
            },
        ),
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "code",
                    models.CharField(
                        help_text="Unique customer code (e.g. CUST-001)",
                        max_length=50,
                        unique=True,
                        verbose_name="code",
                    ),
                ),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("name", models.CharField(max_length=200, verbose_name="name")),
                ("email", models.EmailField(blank=True, db_index=True, max_length=254, verbose_name="email")),
                ("is_active", models.BooleanField(db_index=True, default=True, verbose_name="active")),
                (
                    "points_balance",
                    models.IntegerField(
                        default=0,
                        help_text="Points available for redemption",
                        verbose_name="points balance",
                    ),
                ),
                (
                    "total_points_earned",
                    models.IntegerField(
                        default=0,
                        help_text="Lifetime points earned (never decreases)",
                        verbose_name="total points earned",
                    ),
                ),
                (
                    "total_points_spent",
                    models.IntegerField(
                        default=0,
                        help_text="Lifetime points spent, expired or deducted",
                        verbose_name="total points spent",
                    ),
                ),
                (
                    "referral_code",
                    models.CharField(
                        editable=False,
                        help_text="Generated once at creation, never changes",
                        max_length=20,
                        unique=True,
                        verbose_name="referral code",
                    ),
                ),
                ("version", models.PositiveIntegerField(default=0, editable=False, verbose_name="version")),
                ("metadata", models.JSONField(blank=True, default=dict, verbose_name="metadata")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                (
                    "tier",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="customers",
                        to="rewardman.loyaltytier",
                        verbose_name="tier",
                    ),
                ),
            ],
            options={
                "verbose_name": "customer",
                "verbose_name_plural": "customers",
                "ordering": ["name", "code"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(points_balance__gte=0),
                        name="rewardman_customer_balance_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            points_balance=models.F("total_points_earned") - models.F("total_points_spent")
                        ),
                        name="rewardman_customer_balance_matches_totals",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PointsTransaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("earned", "Earned"),
                            ("spent", "Spent"),
                            ("expired", "Expired"),
                            ("adjustment", "Adjustment"),
                        ],
                        max_length=20,
                        verbose_name="kind",
                    ),
                ),
                ("points_earned", models.PositiveIntegerField(default=0, verbose_name="points earned")),
                ("points_spent", models.PositiveIntegerField(default=0, verbose_name="points spent")),
                (
                    "balance_after",
                    models.IntegerField(
                        help_text="Customer balance right after this transaction",
                        verbose_name="balance after",
                    ),
                ),
                (
                    "reference_type",
                    models.CharField(
                        choices=[
                            ("order", "Order"),
                            ("redemption", "Redemption"),
                            ("referral", "Referral"),
                            ("manual", "Manual"),
                            ("expiration", "Expiration"),
                        ],
                        max_length=20,
                        verbose_name="reference type",
                    ),
                ),
                (
                    "reference",
                    models.CharField(
                        blank=True,
                        help_text="External ID (e.g. order:123, reward:7)",
                        max_length=100,
                        verbose_name="reference",
                    ),
                ),
                ("description", models.CharField(max_length=255, verbose_name="description")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                ("created_by", models.CharField(blank=True, max_length=100, verbose_name="created by")),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="point_transactions",
                        to="rewardman.customer",
                        verbose_name="customer",
                    ),
                ),
            ],
            options={
                "verbose_name": "points transaction",
                "verbose_name_plural": "points transactions",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["customer", "-created_at"], name="rewardman_tx_cust_created_idx"),
                    models.Index(fields=["reference_type", "kind"], name="rewardman_tx_reftype_kind_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=(
                            models.Q(points_earned__gt=0, points_spent=0)
                            | models.Q(points_earned=0, points_spent__gt=0)
                        ),
                        name="rewardman_transaction_one_sided",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LoyaltyReward",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200, verbose_name="name")),
                ("description", models.TextField(blank=True, verbose_name="description")),
                (
                    "reward_type",
                    models.CharField(
                        choices=[
                            ("discount", "Discount"),
                            ("product", "Product"),
                            ("service", "Service"),
                            ("cashback", "Cashback"),
                        ],
                        db_index=True,
                        default="discount",
                        max_length=20,
                        verbose_name="type",
                    ),
                ),
                ("points_required", models.PositiveIntegerField(verbose_name="points required")),
                ("reward_value", models.DecimalField(decimal_places=2, max_digits=10, verbose_name="value")),
                ("min_tier_required", models.PositiveSmallIntegerField(default=1, verbose_name="minimum tier level")),
                (
                    "stock_quantity",
                    models.IntegerField(
                        blank=True,
                        help_text="Empty = unlimited",
                        null=True,
                        verbose_name="stock",
                    ),
                ),
                ("is_active", models.BooleanField(db_index=True, default=True, verbose_name="active")),
                ("valid_from", models.DateTimeField(default=django.utils.timezone.now, verbose_name="valid from")),
                ("valid_until", models.DateTimeField(blank=True, null=True, verbose_name="valid until")),
                ("terms_conditions", models.TextField(blank=True, verbose_name="terms and conditions")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
            ],
            options={
                "verbose_name": "loyalty reward",
                "verbose_name_plural": "loyalty rewards",
                "ordering": ["-created_at", "-id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(points_required__gt=0),
                        name="rewardman_reward_cost_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(reward_value__gt=0),
                        name="rewardman_reward_value_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Referral",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "referrer_code",
                    models.CharField(
                        help_text="Referral code used at signup (snapshot)",
                        max_length=20,
                        verbose_name="referrer code",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("rewarded", "Rewarded"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                        verbose_name="status",
                    ),
                ),
                ("referrer_points", models.PositiveIntegerField(verbose_name="referrer points")),
                ("referred_points", models.PositiveIntegerField(verbose_name="referred points")),
                ("first_order_completed", models.BooleanField(default=False, verbose_name="first order completed")),
                ("manually_confirmed", models.BooleanField(default=False, verbose_name="manually confirmed")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                ("completed_at", models.DateTimeField(blank=True, null=True, verbose_name="completed at")),
                ("rewarded_at", models.DateTimeField(blank=True, null=True, verbose_name="rewarded at")),
                (
                    "referrer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="referrals_made",
                        to="rewardman.customer",
                        verbose_name="referrer",
                    ),
                ),
                (
                    "referred",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="referrals_received",
                        to="rewardman.customer",
                        verbose_name="referred customer",
                    ),
                ),
                (
                    "referrer_transaction",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to="rewardman.pointstransaction",
                        verbose_name="referrer credit",
                    ),
                ),
                (
                    "referred_transaction",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to="rewardman.pointstransaction",
                        verbose_name="referred credit",
                    ),
                ),
            ],
            options={
                "verbose_name": "referral",
                "verbose_name_plural": "referrals",
                "ordering": ["-created_at", "-id"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(referred__isnull=False),
                        fields=("referred",),
                        name="rewardman_unique_referral_per_customer",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(referrer=models.F("referred"), _negated=True),
                        name="rewardman_referral_not_self",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ProcessedEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("nonce", models.CharField(db_index=True, max_length=255, unique=True, verbose_name="nonce")),
                ("provider", models.CharField(db_index=True, max_length=50, verbose_name="provider")),
                ("subject", models.CharField(blank=True, db_index=True, max_length=100, verbose_name="subject")),
                ("processed_at", models.DateTimeField(auto_now_add=True, verbose_name="processed at")),
            ],
            options={
                "verbose_name": "processed event",
                "verbose_name_plural": "processed events",
                "db_table": "rewardman_processed_event",
                "indexes": [
                    models.Index(fields=["provider", "processed_at"], name="rewardman_pe_provider_at_idx"),
                    models.Index(fields=["provider", "subject"], name="rewardman_pe_provider_subj_idx"),
                ],
            },
        ),
    ]
