# Generated manually for standalone django-pricing package

import decimal
import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

from django_pricing import conf


def base_fields():
    return [
        ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
        ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
        ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
    ]


def tenant_field():
    return (
        "tenant",
        models.ForeignKey(
            on_delete=django.db.models.deletion.CASCADE,
            related_name="+",
            to=conf.get_tenant_model(),
            verbose_name="tenant",
        ),
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(conf.get_tenant_model()),
        migrations.swappable_dependency(conf.get_product_model()),
        migrations.swappable_dependency(conf.get_customer_model()),
    ]

    operations = [
        migrations.CreateModel(
            name="PriceCategory",
            fields=base_fields() + [
                tenant_field(),
                ("code", models.CharField(max_length=50, verbose_name="code")),
                ("name", models.CharField(max_length=200, verbose_name="name")),
                ("description", models.TextField(blank=True, default="", verbose_name="description")),
                (
                    "parent",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="children",
                        to="django_pricing.pricecategory",
                        verbose_name="parent",
                    ),
                ),
                (
                    "default_discount_percent",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=7, null=True,
                        verbose_name="default discount (%)",
                    ),
                ),
                ("is_default", models.BooleanField(default=False, verbose_name="is default")),
                ("is_active", models.BooleanField(db_index=True, default=True, verbose_name="active")),
                ("sort_order", models.IntegerField(default=0, verbose_name="sort order")),
            ],
            options={
                "verbose_name": "price category",
                "verbose_name_plural": "price categories",
                "ordering": ["sort_order", "name"],
            },
        ),
        migrations.CreateModel(
            name="PriceTable",
            fields=base_fields() + [
                tenant_field(),
                ("code", models.CharField(max_length=50, verbose_name="code")),
                ("name", models.CharField(max_length=200, verbose_name="name")),
                ("description", models.TextField(blank=True, default="", verbose_name="description")),
                (
                    "category",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="price_tables",
                        to="django_pricing.pricecategory",
                        verbose_name="category",
                    ),
                ),
                ("currency", models.CharField(max_length=3, verbose_name="currency")),
                (
                    "valid_from",
                    models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name="valid from"),
                ),
                ("valid_to", models.DateTimeField(blank=True, db_index=True, null=True, verbose_name="valid to")),
                ("priority", models.IntegerField(default=0, verbose_name="priority")),
                (
                    "price_type",
                    models.CharField(
                        choices=[
                            ("STANDARD", "Standard"),
                            ("CUSTOMER", "Customer"),
                            ("PROMO", "Promotion"),
                            ("WHOLESALE", "Wholesale"),
                            ("CONTRACT", "Contract"),
                            ("SEASONAL", "Seasonal"),
                            ("CLEARANCE", "Clearance"),
                        ],
                        default="STANDARD",
                        max_length=20,
                        verbose_name="price type",
                    ),
                ),
                ("is_default", models.BooleanField(default=False, verbose_name="is default")),
                ("is_active", models.BooleanField(db_index=True, default=True, verbose_name="active")),
            ],
            options={
                "verbose_name": "price table",
                "verbose_name_plural": "price tables",
                "ordering": ["-priority", "name"],
            },
        ),
        migrations.CreateModel(
            name="PriceTableEntry",
            fields=base_fields() + [
                (
                    "price_table",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="entries",
                        to="django_pricing.pricetable",
                        verbose_name="price table",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to=conf.get_product_model(),
                        verbose_name="product",
                    ),
                ),
                ("product_sku", models.CharField(blank=True, default="", max_length=100, verbose_name="product SKU")),
                ("product_name", models.CharField(blank=True, default="", max_length=255, verbose_name="product name")),
                ("price_net", models.DecimalField(decimal_places=2, max_digits=14, verbose_name="net price")),
                ("price_gross", models.DecimalField(decimal_places=2, max_digits=14, verbose_name="gross price")),
                ("vat_rate", models.DecimalField(decimal_places=2, max_digits=5, verbose_name="VAT rate (%)")),
                (
                    "promo_price",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=14, null=True, verbose_name="promo price (gross)"
                    ),
                ),
                ("promo_valid_from", models.DateTimeField(blank=True, null=True, verbose_name="promo valid from")),
                ("promo_valid_to", models.DateTimeField(blank=True, null=True, verbose_name="promo valid to")),
                (
                    "min_quantity",
                    models.DecimalField(
                        decimal_places=3, default=decimal.Decimal("1"), max_digits=14, verbose_name="min quantity"
                    ),
                ),
                (
                    "max_quantity",
                    models.DecimalField(
                        blank=True, decimal_places=3, max_digits=14, null=True, verbose_name="max quantity"
                    ),
                ),
                ("is_active", models.BooleanField(db_index=True, default=True, verbose_name="active")),
            ],
            options={
                "verbose_name": "price table entry",
                "verbose_name_plural": "price table entries",
                "ordering": ["product_name", "min_quantity"],
            },
        ),
        migrations.CreateModel(
            name="Surcharge",
            fields=base_fields() + [
                tenant_field(),
                ("code", models.CharField(max_length=50, verbose_name="code")),
                ("name", models.CharField(max_length=200, verbose_name="name")),
                ("description", models.TextField(blank=True, default="", verbose_name="description")),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("FIXED", "Fixed amount"),
                            ("PERCENT", "Percent of order value"),
                            ("PER_M2", "Per square metre"),
                            ("PER_MB", "Per running metre"),
                            ("PER_KG", "Per kilogram"),
                            ("PER_UNIT", "Per unit"),
                            ("TIERED", "Tiered by order value"),
                        ],
                        max_length=20,
                        verbose_name="type",
                    ),
                ),
                ("value", models.DecimalField(decimal_places=4, max_digits=14, verbose_name="value")),
                (
                    "min_value",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True, verbose_name="min amount"),
                ),
                (
                    "max_value",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True, verbose_name="max amount"),
                ),
                ("tiers", models.JSONField(blank=True, null=True, verbose_name="tiers")),
                ("applies_to_categories", models.JSONField(blank=True, null=True, verbose_name="applies to categories")),
                ("applies_to_products", models.JSONField(blank=True, null=True, verbose_name="applies to products")),
                (
                    "min_order_value",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=14, null=True, verbose_name="min order value"
                    ),
                ),
                (
                    "max_order_value",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=14, null=True, verbose_name="max order value"
                    ),
                ),
                ("is_required", models.BooleanField(default=False, verbose_name="is required")),
                ("is_optional", models.BooleanField(default=True, verbose_name="is optional")),
                ("is_active", models.BooleanField(db_index=True, default=True, verbose_name="active")),
                ("sort_order", models.IntegerField(default=0, verbose_name="sort order")),
                ("valid_from", models.DateTimeField(blank=True, null=True, verbose_name="valid from")),
                ("valid_to", models.DateTimeField(blank=True, null=True, verbose_name="valid to")),
            ],
            options={
                "verbose_name": "surcharge",
                "verbose_name_plural": "surcharges",
                "ordering": ["sort_order", "name"],
            },
        ),
        migrations.CreateModel(
            name="ProductCost",
            fields=base_fields() + [
                tenant_field(),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to=conf.get_product_model(),
                        verbose_name="product",
                    ),
                ),
                (
                    "category",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="product_costs",
                        to="django_pricing.pricecategory",
                        verbose_name="category",
                    ),
                ),
                ("purchase_price", models.DecimalField(decimal_places=2, max_digits=14, verbose_name="purchase price")),
                ("purchase_currency", models.CharField(max_length=3, verbose_name="purchase currency")),
                ("supplier_id", models.CharField(blank=True, default="", max_length=255, verbose_name="supplier id")),
                ("supplier_name", models.CharField(blank=True, default="", max_length=255, verbose_name="supplier name")),
                ("supplier_sku", models.CharField(blank=True, default="", max_length=100, verbose_name="supplier SKU")),
                (
                    "shipping_cost",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True, verbose_name="shipping cost"),
                ),
                (
                    "handling_cost",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True, verbose_name="handling cost"),
                ),
                (
                    "customs_cost",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True, verbose_name="customs cost"),
                ),
                (
                    "other_costs",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True, verbose_name="other costs"),
                ),
                (
                    "total_cost",
                    models.DecimalField(decimal_places=2, editable=False, max_digits=14, verbose_name="total cost"),
                ),
                (
                    "target_margin_percent",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=7, null=True, verbose_name="target margin (%)"
                    ),
                ),
                (
                    "target_margin_value",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=14, null=True, verbose_name="target margin value"
                    ),
                ),
                (
                    "min_sale_price",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True, verbose_name="min sale price"),
                ),
                ("valid_from", models.DateTimeField(default=django.utils.timezone.now, verbose_name="valid from")),
                ("valid_to", models.DateTimeField(blank=True, null=True, verbose_name="valid to")),
                ("is_default", models.BooleanField(default=False, verbose_name="is default")),
                ("is_active", models.BooleanField(db_index=True, default=True, verbose_name="active")),
            ],
            options={
                "verbose_name": "product cost",
                "verbose_name_plural": "product costs",
                "ordering": ["product", "-valid_from"],
            },
        ),
        migrations.CreateModel(
            name="CustomerPricing",
            fields=base_fields() + [
                tenant_field(),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to=conf.get_customer_model(),
                        verbose_name="customer",
                    ),
                ),
                (
                    "price_table",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="customer_pricings",
                        to="django_pricing.pricetable",
                        verbose_name="price table",
                    ),
                ),
                (
                    "price_category_code",
                    models.CharField(blank=True, default="", max_length=50, verbose_name="price category code"),
                ),
                (
                    "discount_percent",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=7, null=True, verbose_name="discount (%)"),
                ),
                (
                    "credit_limit",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True, verbose_name="credit limit"),
                ),
                (
                    "credit_used",
                    models.DecimalField(
                        decimal_places=2, default=decimal.Decimal("0"), max_digits=14, verbose_name="credit used"
                    ),
                ),
                (
                    "payment_terms",
                    models.PositiveIntegerField(blank=True, null=True, verbose_name="payment terms (days)"),
                ),
                ("valid_from", models.DateTimeField(default=django.utils.timezone.now, verbose_name="valid from")),
                ("valid_to", models.DateTimeField(blank=True, null=True, verbose_name="valid to")),
                ("is_active", models.BooleanField(db_index=True, default=True, verbose_name="active")),
            ],
            options={
                "verbose_name": "customer pricing",
                "verbose_name_plural": "customer pricing",
            },
        ),
        migrations.AddIndex(
            model_name="pricetable",
            index=models.Index(fields=["tenant", "is_active", "is_default"], name="pricing_table_lookup_idx"),
        ),
        migrations.AddConstraint(
            model_name="pricecategory",
            constraint=models.UniqueConstraint(fields=("tenant", "code"), name="pricing_unique_category_code"),
        ),
        migrations.AddConstraint(
            model_name="pricecategory",
            constraint=models.UniqueConstraint(
                condition=models.Q(("is_default", True)),
                fields=("tenant",),
                name="pricing_one_default_category",
            ),
        ),
        migrations.AddConstraint(
            model_name="pricetable",
            constraint=models.UniqueConstraint(fields=("tenant", "code"), name="pricing_unique_table_code"),
        ),
        migrations.AddConstraint(
            model_name="pricetable",
            constraint=models.UniqueConstraint(
                condition=models.Q(("is_default", True)),
                fields=("tenant",),
                name="pricing_one_default_table",
            ),
        ),
        migrations.AddConstraint(
            model_name="pricetable",
            constraint=models.CheckConstraint(
                condition=models.Q(("valid_to__isnull", True), ("valid_to__gt", models.F("valid_from")), _connector="OR"),
                name="pricing_table_valid_to_after_valid_from",
            ),
        ),
        migrations.AddConstraint(
            model_name="pricetableentry",
            constraint=models.UniqueConstraint(
                fields=("price_table", "product", "min_quantity"),
                name="pricing_unique_entry_tier",
            ),
        ),
        migrations.AddConstraint(
            model_name="pricetableentry",
            constraint=models.CheckConstraint(
                condition=models.Q(
                    ("max_quantity__isnull", True), ("max_quantity__gte", models.F("min_quantity")), _connector="OR"
                ),
                name="pricing_entry_quantity_range",
            ),
        ),
        migrations.AddConstraint(
            model_name="surcharge",
            constraint=models.UniqueConstraint(fields=("tenant", "code"), name="pricing_unique_surcharge_code"),
        ),
        migrations.AddConstraint(
            model_name="productcost",
            constraint=models.UniqueConstraint(
                condition=models.Q(("is_default", True)),
                fields=("tenant", "product"),
                name="pricing_one_default_cost_per_product",
            ),
        ),
        migrations.AddConstraint(
            model_name="productcost",
            constraint=models.CheckConstraint(
                condition=models.Q(("valid_to__isnull", True), ("valid_to__gt", models.F("valid_from")), _connector="OR"),
                name="pricing_cost_valid_to_after_valid_from",
            ),
        ),
        migrations.AddConstraint(
            model_name="customerpricing",
            constraint=models.UniqueConstraint(
                condition=models.Q(("is_active", True)),
                fields=("tenant", "customer"),
                name="pricing_one_active_customer_pricing",
            ),
        ),
        migrations.AddConstraint(
            model_name="customerpricing",
            constraint=models.CheckConstraint(
                condition=models.Q(("valid_to__isnull", True), ("valid_to__gt", models.F("valid_from")), _connector="OR"),
                name="pricing_customer_valid_to_after_valid_from",
            ),
        ),
    ]
