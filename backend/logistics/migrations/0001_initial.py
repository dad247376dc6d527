from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import logistics.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Pharmacy",
            fields=[
                ("id", models.CharField(default=logistics.models.new_id, editable=False, max_length=64, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("address_text", models.TextField(blank=True)),
                ("lat", models.FloatField(blank=True, null=True)),
                ("lng", models.FloatField(blank=True, null=True)),
                ("status", models.CharField(choices=[("Pending", "Pending review"), ("Active", "Active"), ("Suspended", "Suspended"), ("Inactive", "Inactive")], default="Pending", max_length=20)),
                ("categories", models.JSONField(blank=True, default=list)),
                ("account_details", models.JSONField(blank=True, default=dict)),
                ("monthly_revenue", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("owner", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="pharmacies", to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name="Rider",
            fields=[
                ("id", models.CharField(default=logistics.models.new_id, editable=False, max_length=64, primary_key=True, serialize=False)),
                ("name", models.CharField(blank=True, max_length=255)),
                ("phone", models.CharField(blank=True, max_length=32)),
                ("status", models.CharField(choices=[("online", "Online"), ("offline", "Offline")], default="offline", max_length=10)),
                ("license_status", models.CharField(choices=[("Pending", "Pending"), ("Approved", "Approved"), ("Rejected", "Rejected")], default="Pending", max_length=10)),
                ("license_image_url", models.URLField(blank=True, null=True)),
                ("lat", models.FloatField(blank=True, null=True)),
                ("lng", models.FloatField(blank=True, null=True)),
                ("base_fare", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("wallet_balance", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("user", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name="rider_profile", to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name="BankAccount",
            fields=[
                ("id", models.CharField(default=logistics.models.new_id, editable=False, max_length=64, primary_key=True, serialize=False)),
                ("account_holder_name", models.CharField(max_length=255)),
                ("account_number", models.CharField(max_length=64)),
                ("ifsc_code", models.CharField(blank=True, max_length=20)),
                ("bank_name", models.CharField(blank=True, max_length=255)),
                ("upi_id", models.CharField(blank=True, max_length=255, null=True)),
                ("rider", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="bank_accounts", to="logistics.rider")),
            ],
        ),
        migrations.CreateModel(
            name="WalletTransaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("type", models.CharField(choices=[("credit", "Credit"), ("debit", "Debit")], max_length=10)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("reason", models.CharField(blank=True, max_length=255)),
                ("order_id", models.CharField(blank=True, max_length=64, null=True)),
                ("reference", models.CharField(blank=True, max_length=64, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("rider", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="transactions", to="logistics.rider")),
            ],
            options={"ordering": ["created_at", "id"]},
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.CharField(default=logistics.models.new_id, editable=False, max_length=64, primary_key=True, serialize=False)),
                ("rejected_rider_ids", models.JSONField(blank=True, default=list)),
                ("rejected_pharmacy_ids", models.JSONField(blank=True, default=list)),
                ("items", models.JSONField(default=list)),
                ("delivery_address", models.JSONField(blank=True, default=dict)),
                ("delivery_lat", models.FloatField()),
                ("delivery_lng", models.FloatField()),
                ("payment_method", models.CharField(choices=[("cash_on_delivery", "Cash on Delivery"), ("online", "Online")], default="cash_on_delivery", max_length=20)),
                ("payment_status", models.CharField(choices=[("Pending", "Pending"), ("Paid", "Paid"), ("Refunded", "Refunded"), ("Failed", "Failed")], default="Pending", max_length=20)),
                ("subtotal", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("platform_fee", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("delivery_charge", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("discount", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("total_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("coupon_code", models.CharField(blank=True, max_length=64, null=True)),
                ("is_prescription_order", models.BooleanField(default=False)),
                ("is_reordered", models.BooleanField(default=False)),
                ("plan_type", models.CharField(blank=True, choices=[("Weekly", "Weekly"), ("Monthly", "Monthly")], max_length=10, null=True)),
                ("delivery_date", models.DateField(blank=True, null=True)),
                ("notes", models.TextField(blank=True)),
                ("status", models.CharField(choices=[("Placed", "Placed"), ("PendingVendorResponse", "Pending vendor response"), ("VendorAccepted", "Accepted by pharmacy"), ("RiderAssignmentPending", "Looking for a rider"), ("RiderAssigned", "Rider assigned"), ("RiderAccepted", "Rider accepted"), ("PickedUp", "Picked up"), ("Delivered", "Delivered"), ("Rejected", "Rejected"), ("Cancelled", "Cancelled"), ("Failed", "Failed"), ("Refunded", "Refunded")], db_index=True, default="Placed", max_length=32)),
                ("timeline", models.JSONField(default=list)),
                ("pickup_proofs", models.JSONField(blank=True, default=list)),
                ("delivery_proofs", models.JSONField(blank=True, default=list)),
                ("cod_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("cod_mode", models.CharField(blank=True, choices=[("cash", "Cash"), ("online", "Online")], max_length=10, null=True)),
                ("version", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("customer", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="orders", to=settings.AUTH_USER_MODEL)),
                ("pharmacy", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="orders", to="logistics.pharmacy")),
                ("rider", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="deliveries", to="logistics.rider")),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("target_type", models.CharField(choices=[("user", "User"), ("rider", "Rider"), ("vendor", "Vendor")], max_length=10)),
                ("target_id", models.CharField(db_index=True, max_length=64)),
                ("message", models.TextField()),
                ("reason", models.CharField(blank=True, max_length=64, null=True)),
                ("order_id", models.CharField(blank=True, max_length=64, null=True)),
                ("status", models.CharField(choices=[("Pending", "Pending"), ("Seen", "Seen")], default="Pending", max_length=10)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={"ordering": ["-created_at", "-id"]},
        ),
        migrations.CreateModel(
            name="WithdrawalRequest",
            fields=[
                ("id", models.CharField(default=logistics.models.new_id, editable=False, max_length=64, primary_key=True, serialize=False)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("bank_detail", models.JSONField(default=dict)),
                ("status", models.CharField(choices=[("Requested", "Requested"), ("Approved", "Approved"), ("Rejected", "Rejected")], default="Requested", max_length=10)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("rider", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="withdrawals", to="logistics.rider")),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="Coupon",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=64, unique=True)),
                ("discount_percentage", models.DecimalField(decimal_places=2, max_digits=5)),
                ("expiration_date", models.DateField(blank=True, null=True)),
            ],
        ),
        migrations.CreateModel(
            name="ScheduledRetry",
            fields=[
                ("order_id", models.CharField(max_length=64, primary_key=True, serialize=False)),
                ("kind", models.CharField(max_length=32)),
                ("due_at", models.DateTimeField(db_index=True)),
                ("attempt", models.PositiveIntegerField(default=1)),
                ("max_attempts", models.PositiveIntegerField(default=1)),
                ("expected_status", models.CharField(max_length=32)),
            ],
        ),
        migrations.CreateModel(
            name="DispatchLock",
            fields=[
                ("key", models.CharField(max_length=128, primary_key=True, serialize=False)),
            ],
        ),
    ]
