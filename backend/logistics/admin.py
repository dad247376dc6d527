from django.contrib import admin

from .models import BankAccount, Coupon, Notification, Order, Pharmacy, Rider, ScheduledRetry, WalletTransaction, WithdrawalRequest


@admin.register(Pharmacy)
class PharmacyAdmin(admin.ModelAdmin):
    list_display = ("name", "owner", "status", "lat", "lng")
    list_filter = ("status",)
    search_fields = ("name",)


class BankAccountInline(admin.TabularInline):
    model = BankAccount
    extra = 0


@admin.register(Rider)
class RiderAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "status", "license_status", "wallet_balance", "base_fare")
    list_filter = ("status", "license_status")
    # balance moves only through the wallet ledger
    readonly_fields = ("wallet_balance",)
    inlines = [BankAccountInline]


@admin.register(WalletTransaction)
class WalletTransactionAdmin(admin.ModelAdmin):
    list_display = ("rider", "type", "amount", "reason", "order_id", "created_at")
    list_filter = ("type",)

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "customer", "status", "pharmacy", "rider", "total_amount", "created_at")
    list_filter = ("status", "payment_method", "payment_status")
    # lifecycle fields are owned by the dispatcher
    readonly_fields = ("status", "timeline", "version", "rider", "pharmacy")


@admin.register(WithdrawalRequest)
class WithdrawalRequestAdmin(admin.ModelAdmin):
    list_display = ("id", "rider", "amount", "status", "created_at")
    list_filter = ("status",)
    readonly_fields = ("status",)


admin.site.register(Notification)
admin.site.register(Coupon)
admin.site.register(ScheduledRetry)
