from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.response import Response

from dispatch import PlaceOrderRequest
from orders.exceptions import InvalidState
from orders.models import Address, CodCollection
from pricing import LineItem
from routing import validate_coordinate
from users.models import User

from .models import Notification, Order, Pharmacy, Rider, WithdrawalRequest
from .permissions import IsCustomerOrVendor, IsPharmacyOwnerOrReadOnly, IsPlatformAdmin, IsRider, IsVendor
from .serializers import (
    AvailabilitySerializer,
    BankAccountSerializer,
    BaseFareSerializer,
    DeliveredSerializer,
    LicenseDecisionSerializer,
    LocationSerializer,
    NotificationSerializer,
    OrderCreateSerializer,
    OrderSerializer,
    PharmacySerializer,
    PharmacyStatusSerializer,
    ProofSerializer,
    ReasonSerializer,
    RespondSerializer,
    RiderSerializer,
    WalletTransactionSerializer,
    WithdrawalCreateSerializer,
    WithdrawalRequestSerializer,
)
from .services import build_dispatcher, build_withdrawal_desk


def _rider_for(user) -> Rider:
    try:
        return user.rider_profile
    except Rider.DoesNotExist:
        raise PermissionDenied("No rider profile for this account")


def _validated(serializer_class, request):
    serializer = serializer_class(data=request.data)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


class OrderViewSet(mixins.CreateModelMixin, viewsets.ReadOnlyModelViewSet):
    """
    Order placement and lifecycle actions.
    Restricts querysets based on user role (Customer vs Vendor vs Rider vs Admin).
    Every state change is delegated to dispatch.Dispatcher.
    """
    serializer_class = OrderSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        """
        Filter orders by role:
        - Customer: See only their own orders
        - Vendor: See orders currently assigned to their pharmacies
        - Rider: See deliveries assigned to them
        - Admin: See everything
        """
        user = self.request.user
        if user.is_platform_admin:
            return Order.objects.all()
        elif user.role == User.Roles.CUSTOMER:
            return Order.objects.filter(customer=user)
        elif user.role == User.Roles.VENDOR:
            return Order.objects.filter(pharmacy__owner=user)
        elif user.role == User.Roles.RIDER:
            return Order.objects.filter(rider__user=user)
        return Order.objects.none()

    def _respond(self, result, code=status.HTTP_200_OK):
        data = OrderSerializer(Order.objects.get(pk=result.order_id)).data
        data["timeline_delta"] = [entry.to_dict() for entry in result.timeline]
        return Response(data, status=code)

    def create(self, request, *args, **kwargs):
        if not IsCustomerOrVendor().has_permission(request, self):
            raise PermissionDenied("Only customers and vendors can place orders")

        data = _validated(OrderCreateSerializer, request)
        items = [LineItem.new(**item) for item in data["items"]]

        user_id = request.user.pk
        pharmacy_id = None
        is_prescription = False
        if request.user.role == User.Roles.VENDOR:
            # Vendor creates a prescription order on behalf of a customer
            if "user_id" not in data or "pharmacy_id" not in data:
                raise ValidationError({"detail": "user_id and pharmacy_id are required for vendor orders"})
            get_object_or_404(User, pk=data["user_id"])
            if not Pharmacy.objects.filter(pk=data["pharmacy_id"], owner=request.user).exists():
                raise PermissionDenied("You do not own this pharmacy")
            user_id = data["user_id"]
            pharmacy_id = data["pharmacy_id"]
            is_prescription = True

        result = build_dispatcher().place_order(
            PlaceOrderRequest(
                user_id=str(user_id),
                items=items,
                delivery_location=(data["delivery_lng"], data["delivery_lat"]),
                delivery_address=Address.from_dict(data.get("delivery_address")),
                payment_method=data["payment_method"],
                coupon_code=data.get("coupon_code") or None,
                pharmacy_id=pharmacy_id,
                is_prescription_order=is_prescription,
                is_reordered=data["is_reordered"],
                plan_type=data.get("plan_type") or None,
                delivery_date=data.get("delivery_date"),
                notes=data.get("notes", ""),
            )
        )
        return self._respond(result, status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='vendor-response', permission_classes=[IsVendor])
    def vendor_response(self, request, pk=None):
        """
        Pharmacy owner accepts or rejects an incoming order.
        """
        order = self.get_object()
        data = _validated(RespondSerializer, request)
        result = build_dispatcher().vendor_respond(order.id, order.pharmacy_id, data["accept"], reason=data.get("reason"))
        return self._respond(result)

    @action(detail=True, methods=['post'], url_path='rider-response', permission_classes=[IsRider])
    def rider_response(self, request, pk=None):
        order = self.get_object()
        rider = _rider_for(request.user)
        data = _validated(RespondSerializer, request)
        result = build_dispatcher().rider_respond(order.id, rider.id, data["accept"], reason=data.get("reason"))
        return self._respond(result)

    @action(detail=True, methods=['post'], url_path='pickup-proof', permission_classes=[IsRider])
    def pickup_proof(self, request, pk=None):
        order = self.get_object()
        rider = _rider_for(request.user)
        data = _validated(ProofSerializer, request)
        location = (data["lng"], data["lat"]) if "lng" in data and "lat" in data else None
        result = build_dispatcher().attach_pickup_proof(order.id, rider.id, data["image_url"], rider_location=location)
        return self._respond(result)

    @action(detail=True, methods=['post'], url_path='picked-up', permission_classes=[IsRider])
    def picked_up(self, request, pk=None):
        order = self.get_object()
        rider = _rider_for(request.user)
        return self._respond(build_dispatcher().mark_picked_up(order.id, rider.id))

    @action(detail=True, methods=['post'], url_path='delivery-proof', permission_classes=[IsRider])
    def delivery_proof(self, request, pk=None):
        order = self.get_object()
        rider = _rider_for(request.user)
        data = _validated(ProofSerializer, request)
        return self._respond(build_dispatcher().attach_delivery_proof(order.id, rider.id, data["image_url"]))

    @action(detail=True, methods=['post'], permission_classes=[IsRider])
    def delivered(self, request, pk=None):
        order = self.get_object()
        rider = _rider_for(request.user)
        data = _validated(DeliveredSerializer, request)
        cod = None
        # Online-paid orders ignore any COD fields sent along
        if order.payment_method == Order.PaymentMethod.COD and ("cod_amount" in data or "cod_mode" in data):
            cod = CodCollection.new(data.get("cod_amount"), data.get("cod_mode"))
        return self._respond(build_dispatcher().mark_delivered(order.id, rider.id, cod=cod))

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        order = self.get_object()
        user = request.user
        if not (user.is_platform_admin or order.customer_id == user.id):
            raise PermissionDenied("Only the customer or an admin can cancel")
        data = _validated(ReasonSerializer, request)
        return self._respond(build_dispatcher().cancel(order.id, reason=data.get("reason")))

    @action(detail=True, methods=['post'], permission_classes=[IsPlatformAdmin])
    def reject(self, request, pk=None):
        order = self.get_object()
        data = _validated(ReasonSerializer, request)
        return self._respond(build_dispatcher().reject(order.id, reason=data.get("reason")))

    @action(detail=True, methods=['post'], permission_classes=[IsPlatformAdmin])
    def refund(self, request, pk=None):
        order = self.get_object()
        data = _validated(ReasonSerializer, request)
        return self._respond(build_dispatcher().refund(order.id, reason=data.get("reason")))

    @action(detail=True, methods=['get'])
    def timeline(self, request, pk=None):
        order = self.get_object()
        return Response(order.timeline)


class RiderViewSet(mixins.CreateModelMixin, mixins.RetrieveModelMixin, mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    Rider signup, availability, location and wallet.
    - Rider: their own profile only
    - Admin: everyone, plus licence approval and platform base fare
    """
    serializer_class = RiderSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        user = self.request.user
        if user.is_platform_admin:
            return Rider.objects.all()
        return Rider.objects.filter(user=user)

    def perform_create(self, serializer):
        user = self.request.user
        if user.role != User.Roles.RIDER:
            raise PermissionDenied("Only rider accounts can sign up as riders")
        if Rider.objects.filter(user=user).exists():
            raise ValidationError({"detail": "Rider profile already exists"})
        # Licence starts Pending; an admin approves it before the rider can go online
        serializer.save(
            user=user,
            phone=serializer.validated_data.get("phone") or str(user.phone_number or ""),
            license_status=Rider.LicenseStatus.PENDING,
        )

    @action(detail=True, methods=['post'])
    def location(self, request, pk=None):
        rider = self.get_object()
        data = _validated(LocationSerializer, request)
        lng, lat = validate_coordinate((data["lng"], data["lat"]))
        rider.lng, rider.lat = lng, lat
        rider.save(update_fields=["lng", "lat"])
        return Response(RiderSerializer(rider).data)

    @action(detail=True, methods=['post'])
    def availability(self, request, pk=None):
        rider = self.get_object()
        data = _validated(AvailabilitySerializer, request)
        if data["status"] == Rider.Status.ONLINE and rider.license_status != Rider.LicenseStatus.APPROVED:
            raise InvalidState("Licence must be approved before going online")
        rider.status = data["status"]
        rider.save(update_fields=["status"])
        return Response(RiderSerializer(rider).data)

    @action(detail=True, methods=['get', 'post'], url_path='bank-accounts')
    def bank_accounts(self, request, pk=None):
        rider = self.get_object()
        if request.method == 'GET':
            return Response(BankAccountSerializer(rider.bank_accounts.all(), many=True).data)
        serializer = BankAccountSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save(rider=rider)
        return Response(serializer.data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['get'])
    def wallet(self, request, pk=None):
        rider = self.get_object()
        return Response({
            "wallet_balance": str(rider.wallet_balance),
            "transactions": WalletTransactionSerializer(rider.transactions.all(), many=True).data,
        })

    @action(detail=True, methods=['get', 'post'])
    def withdrawals(self, request, pk=None):
        rider = self.get_object()
        if request.method == 'GET':
            return Response(WithdrawalRequestSerializer(rider.withdrawals.all(), many=True).data)
        data = _validated(WithdrawalCreateSerializer, request)
        created = build_withdrawal_desk().request_withdrawal(rider.id, data["amount"], data["bank_account_id"])
        row = WithdrawalRequest.objects.get(pk=created.id)
        return Response(WithdrawalRequestSerializer(row).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='approve-license', permission_classes=[IsPlatformAdmin])
    def approve_license(self, request, pk=None):
        rider = self.get_object()
        data = _validated(LicenseDecisionSerializer, request)
        rider.license_status = data["license_status"]
        if rider.license_status != Rider.LicenseStatus.APPROVED:
            rider.status = Rider.Status.OFFLINE
        rider.save(update_fields=["license_status", "status"])
        return Response(RiderSerializer(rider).data)

    @action(detail=False, methods=['post'], url_path='base-fare', permission_classes=[IsPlatformAdmin])
    def base_fare(self, request):
        """
        Sets the same base fare on every rider.
        """
        data = _validated(BaseFareSerializer, request)
        updated = Rider.objects.update(base_fare=data["base_fare"])
        return Response({"base_fare": str(data["base_fare"]), "riders_updated": updated})


class PharmacyViewSet(mixins.CreateModelMixin, mixins.UpdateModelMixin, viewsets.ReadOnlyModelViewSet):
    """
    Standard ViewSet for Pharmacies.
    - Authenticated: List/Retrieve
    - Vendor: Create/Update their own
    - Admin: status changes
    """
    queryset = Pharmacy.objects.all()
    serializer_class = PharmacySerializer
    permission_classes = [permissions.IsAuthenticated, IsPharmacyOwnerOrReadOnly]

    def perform_create(self, serializer):
        if self.request.user.role != User.Roles.VENDOR:
            raise PermissionDenied("Only vendor accounts can register pharmacies")
        # Automatically assign the creator as owner; admins activate it later
        serializer.save(owner=self.request.user, status=Pharmacy.Status.PENDING)

    @action(detail=True, methods=['post'], url_path='status', permission_classes=[IsPlatformAdmin])
    def set_status(self, request, pk=None):
        pharmacy = get_object_or_404(Pharmacy, pk=pk)
        data = _validated(PharmacyStatusSerializer, request)
        pharmacy.status = data["status"]
        pharmacy.save(update_fields=["status"])
        return Response(PharmacySerializer(pharmacy).data)


class WithdrawalRequestViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = WithdrawalRequest.objects.all()
    serializer_class = WithdrawalRequestSerializer
    permission_classes = [IsPlatformAdmin]

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        build_withdrawal_desk().approve(pk)
        return Response(WithdrawalRequestSerializer(WithdrawalRequest.objects.get(pk=pk)).data)

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        build_withdrawal_desk().reject(pk)
        return Response(WithdrawalRequestSerializer(WithdrawalRequest.objects.get(pk=pk)).data)


class NotificationViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Notifications addressed to the current user, their rider profile or
    any pharmacy they own.
    """
    serializer_class = NotificationSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        user = self.request.user
        query = Q(target_type=Notification.TargetType.USER, target_id=str(user.pk))

        rider_id = Rider.objects.filter(user=user).values_list("id", flat=True).first()
        if rider_id:
            query |= Q(target_type=Notification.TargetType.RIDER, target_id=rider_id)

        pharmacy_ids = list(Pharmacy.objects.filter(owner=user).values_list("id", flat=True))
        if pharmacy_ids:
            query |= Q(target_type=Notification.TargetType.VENDOR, target_id__in=pharmacy_ids)

        return Notification.objects.filter(query)

    @action(detail=True, methods=['post'])
    def read(self, request, pk=None):
        notification = self.get_object()
        notification.status = Notification.Status.SEEN
        notification.save(update_fields=["status"])
        return Response(NotificationSerializer(notification).data)
