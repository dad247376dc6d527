from rest_framework import serializers

from orders.models import EXTERNAL_STATUS, RIDER_STATUS, OrderStatus
from routing import validate_coordinate

from .models import BankAccount, Notification, Order, Pharmacy, Rider, WalletTransaction, WithdrawalRequest

class PharmacySerializer(serializers.ModelSerializer):
    class Meta:
        model = Pharmacy
        fields = ['id', 'name', 'owner', 'address_text', 'lat', 'lng', 'status', 'categories', 'account_details', 'created_at']
        read_only_fields = ['id', 'owner', 'status', 'created_at']

    def validate(self, attrs):
        # Partial updates are checked against the stored half of the pair
        lat = attrs.get('lat', getattr(self.instance, 'lat', None))
        lng = attrs.get('lng', getattr(self.instance, 'lng', None))
        if (lat is None) != (lng is None):
            raise serializers.ValidationError("lat and lng must be set together")
        if lat is not None:
            validate_coordinate((lng, lat))
        return attrs

class BankAccountSerializer(serializers.ModelSerializer):
    class Meta:
        model = BankAccount
        fields = ['id', 'account_holder_name', 'account_number', 'ifsc_code', 'bank_name', 'upi_id']
        read_only_fields = ['id']

class WalletTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = WalletTransaction
        fields = ['type', 'amount', 'reason', 'order_id', 'reference', 'created_at']

class RiderSerializer(serializers.ModelSerializer):
    class Meta:
        model = Rider
        fields = ['id', 'name', 'phone', 'status', 'license_status', 'license_image_url', 'lat', 'lng', 'base_fare', 'wallet_balance', 'created_at']
        read_only_fields = ['id', 'status', 'license_status', 'lat', 'lng', 'base_fare', 'wallet_balance', 'created_at']

class WithdrawalRequestSerializer(serializers.ModelSerializer):
    class Meta:
        model = WithdrawalRequest
        fields = ['id', 'rider', 'amount', 'bank_detail', 'status', 'created_at', 'updated_at']
        read_only_fields = fields

class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ['id', 'target_type', 'target_id', 'message', 'reason', 'order_id', 'status', 'created_at']
        read_only_fields = fields

class OrderSerializer(serializers.ModelSerializer):
    """
    Read-only view of an order. Writes go through the Dispatcher actions.
    external_status / rider_status keep the legacy app vocabulary alive.
    """
    external_status = serializers.SerializerMethodField()
    rider_status = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id', 'customer', 'pharmacy', 'rider', 'items', 'delivery_address', 'delivery_lat', 'delivery_lng',
            'payment_method', 'payment_status', 'subtotal', 'platform_fee', 'delivery_charge', 'discount',
            'total_amount', 'coupon_code', 'is_prescription_order', 'is_reordered', 'plan_type', 'delivery_date',
            'notes', 'status', 'external_status', 'rider_status', 'timeline', 'pickup_proofs', 'delivery_proofs',
            'cod_amount', 'cod_mode', 'version', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_external_status(self, obj):
        return EXTERNAL_STATUS[OrderStatus(obj.status)]

    def get_rider_status(self, obj):
        return RIDER_STATUS[OrderStatus(obj.status)]

# ---- request bodies ----

class LineItemSerializer(serializers.Serializer):
    medicine_id = serializers.CharField()
    name = serializers.CharField(required=False, allow_blank=True, default="")
    quantity = serializers.IntegerField()
    # Validated by pricing.LineItem.new so negative/invalid values surface as InvalidLineItem
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2)

class AddressSerializer(serializers.Serializer):
    house = serializers.CharField(required=False, allow_blank=True)
    street = serializers.CharField(required=False, allow_blank=True)
    city = serializers.CharField(required=False, allow_blank=True)
    state = serializers.CharField(required=False, allow_blank=True)
    postal_code = serializers.CharField(required=False, allow_blank=True)
    country = serializers.CharField(required=False, allow_blank=True)

class OrderCreateSerializer(serializers.Serializer):
    items = LineItemSerializer(many=True)
    delivery_lng = serializers.FloatField()
    delivery_lat = serializers.FloatField()
    delivery_address = AddressSerializer(required=False)
    payment_method = serializers.ChoiceField(choices=Order.PaymentMethod.choices, default=Order.PaymentMethod.COD)
    coupon_code = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    is_reordered = serializers.BooleanField(default=False)
    plan_type = serializers.ChoiceField(choices=Order.PlanType.choices, required=False, allow_null=True)
    delivery_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    # Vendor-created prescription orders only
    user_id = serializers.IntegerField(required=False)
    pharmacy_id = serializers.CharField(required=False)

class RespondSerializer(serializers.Serializer):
    accept = serializers.BooleanField()
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)

class ProofSerializer(serializers.Serializer):
    image_url = serializers.URLField()
    lng = serializers.FloatField(required=False)
    lat = serializers.FloatField(required=False)

class DeliveredSerializer(serializers.Serializer):
    cod_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    cod_mode = serializers.ChoiceField(choices=Order.CodMode.choices, required=False)

class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)

class LocationSerializer(serializers.Serializer):
    lng = serializers.FloatField()
    lat = serializers.FloatField()

class AvailabilitySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Rider.Status.choices)

class LicenseDecisionSerializer(serializers.Serializer):
    license_status = serializers.ChoiceField(choices=Rider.LicenseStatus.choices)

class BaseFareSerializer(serializers.Serializer):
    base_fare = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)

class WithdrawalCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    bank_account_id = serializers.CharField()

class PharmacyStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Pharmacy.Status.choices)
