"""Django admin configuration for pricing."""

from django.contrib import admin

from .models import CustomerPricing, PriceCategory, PriceTable, PriceTableEntry, ProductCost, Surcharge


class PriceTableEntryInline(admin.TabularInline):
    """Inline for viewing a table's entries."""

    model = PriceTableEntry
    extra = 0
    fields = [
        'product', 'product_sku', 'product_name', 'min_quantity', 'max_quantity',
        'price_net', 'price_gross', 'vat_rate', 'promo_price', 'is_active',
    ]
    raw_id_fields = ['product']


@admin.register(PriceCategory)
class PriceCategoryAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'parent', 'default_discount_percent', 'is_default', 'is_active', 'sort_order']
    list_filter = ['is_active', 'is_default']
    search_fields = ['code', 'name']
    readonly_fields = ['id', 'created_at', 'updated_at']


@admin.register(PriceTable)
class PriceTableAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'price_type', 'currency', 'priority', 'valid_from', 'valid_to', 'is_default', 'is_active']
    list_filter = ['price_type', 'is_default', 'is_active', 'currency']
    search_fields = ['code', 'name']
    readonly_fields = ['id', 'created_at', 'updated_at']
    inlines = [PriceTableEntryInline]


@admin.register(Surcharge)
class SurchargeAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'type', 'value', 'min_value', 'max_value', 'is_required', 'is_active', 'sort_order']
    list_filter = ['type', 'is_required', 'is_active']
    search_fields = ['code', 'name']
    readonly_fields = ['id', 'created_at', 'updated_at']


@admin.register(ProductCost)
class ProductCostAdmin(admin.ModelAdmin):
    list_display = ['product', 'supplier_name', 'purchase_price', 'total_cost', 'target_margin_percent', 'is_default', 'is_active']
    list_filter = ['is_default', 'is_active', 'purchase_currency']
    search_fields = ['supplier_name', 'supplier_sku']
    raw_id_fields = ['product']
    readonly_fields = ['id', 'total_cost', 'created_at', 'updated_at']


@admin.register(CustomerPricing)
class CustomerPricingAdmin(admin.ModelAdmin):
    list_display = ['customer', 'price_table', 'discount_percent', 'credit_limit', 'credit_used', 'payment_terms', 'is_active']
    list_filter = ['is_active']
    search_fields = ['price_category_code']
    raw_id_fields = ['customer']
    readonly_fields = ['id', 'created_at', 'updated_at']


@admin.register(PriceTableEntry)
class PriceTableEntryAdmin(admin.ModelAdmin):
    list_display = ['price_table', 'product_sku', 'product_name', 'min_quantity', 'price_net', 'price_gross', 'is_active']
    list_filter = ['is_active', 'price_table']
    search_fields = ['product_sku', 'product_name']
    raw_id_fields = ['product']
    readonly_fields = ['id', 'created_at', 'updated_at']
