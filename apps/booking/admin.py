from django.contrib import admin
from .models import (
    AdminNotification,
    AdminSetting,
    Booking,
    Campaign,
    Customer,
    CustomerNote,
    CustomerTag,
    DesignRevision,
    Industry,
    IndustrySubcategory,
    PricingRule,
    PricingRuleApplication,
    Referral,
    Route,
    WaitlistEntry,
    WaitlistNotification,
)


@admin.register(Route)
class RouteAdmin(admin.ModelAdmin):
    list_display = ['zip_code', 'name', 'city', 'household_count', 'status']
    list_filter = ['status', 'city']
    search_fields = ['zip_code', 'name', 'city']


class IndustrySubcategoryInline(admin.TabularInline):
    model = IndustrySubcategory
    extra = 0


@admin.register(Industry)
class IndustryAdmin(admin.ModelAdmin):
    list_display = ['name', 'status', 'sort_order']
    list_filter = ['status']
    search_fields = ['name']
    inlines = [IndustrySubcategoryInline]


@admin.register(Campaign)
class CampaignAdmin(admin.ModelAdmin):
    list_display = ['name', 'mail_date', 'print_deadline', 'status', 'booked_slots', 'total_slots', 'revenue']
    list_filter = ['status', 'industry_exclusive']
    search_fields = ['name']
    filter_horizontal = ['routes', 'industries']
    readonly_fields = ['booked_slots', 'revenue']


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['email', 'business_name', 'role', 'loyalty_slots_earned', 'loyalty_discounts_available']
    list_filter = ['role']
    search_fields = ['email', 'business_name', 'referral_code']


@admin.register(Referral)
class ReferralAdmin(admin.ModelAdmin):
    list_display = ['referrer', 'referred', 'status', 'credit_amount', 'credited_at']
    list_filter = ['status']


class DesignRevisionInline(admin.TabularInline):
    model = DesignRevision
    extra = 0
    readonly_fields = ['revision_number', 'uploaded_at', 'reviewed_at']


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = [
        'booking_number', 'business_name', 'campaign', 'route', 'quantity',
        'amount', 'status', 'payment_status', 'approval_status'
    ]
    list_filter = ['status', 'payment_status', 'approval_status', 'artwork_status', 'design_status']
    search_fields = ['booking_number', 'business_name', 'contact_email']
    readonly_fields = ['booking_number', 'slots_released', 'amount_paid', 'paid_at']
    inlines = [DesignRevisionInline]


@admin.register(PricingRule)
class PricingRuleAdmin(admin.ModelAdmin):
    list_display = ['name', 'rule_type', 'value', 'priority', 'status', 'usage_count', 'usage_limit']
    list_filter = ['rule_type', 'status']
    search_fields = ['name']


@admin.register(PricingRuleApplication)
class PricingRuleApplicationAdmin(admin.ModelAdmin):
    list_display = ['rule', 'booking', 'customer', 'discount_amount', 'applied_at']

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(WaitlistEntry)
class WaitlistEntryAdmin(admin.ModelAdmin):
    list_display = ['customer', 'campaign', 'route', 'industry', 'reason', 'status', 'notified_count', 'created_at']
    list_filter = ['status', 'reason']


@admin.register(WaitlistNotification)
class WaitlistNotificationAdmin(admin.ModelAdmin):
    list_display = ['campaign', 'route', 'recipient_count', 'sent_by', 'sent_at']


@admin.register(AdminSetting)
class AdminSettingAdmin(admin.ModelAdmin):
    list_display = ['key', 'value', 'description']
    search_fields = ['key']


@admin.register(AdminNotification)
class AdminNotificationAdmin(admin.ModelAdmin):
    list_display = ['type', 'booking', 'is_handled', 'handled_at', 'created_at']
    list_filter = ['type', 'is_handled']


@admin.register(CustomerNote)
class CustomerNoteAdmin(admin.ModelAdmin):
    list_display = ['customer', 'note', 'created_by', 'created_at']
    search_fields = ['customer__email', 'note']


@admin.register(CustomerTag)
class CustomerTagAdmin(admin.ModelAdmin):
    list_display = ['customer', 'tag', 'created_by']
    list_filter = ['tag']
