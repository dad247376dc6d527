from django.contrib.auth.models import AbstractUser
from django.db import models
from phonenumber_field.modelfields import PhoneNumberField

class User(AbstractUser):
    class Roles(models.TextChoices):
        CUSTOMER = "CUSTOMER", "Customer"
        RIDER = "RIDER", "Rider"
        VENDOR = "VENDOR", "Vendor"
        ADMIN = "ADMIN", "Admin"

    # Role fields define permissions in the app
    # CUSTOMER: Places orders, cancels their own orders
    # RIDER: Has a logistics.Rider profile, accepts and delivers orders
    # VENDOR: Owns pharmacies, accepts/rejects incoming orders
    # ADMIN: Approves licences, withdrawals, pharmacies; rejects/refunds orders
    role = models.CharField(max_length=20, choices=Roles.choices, default=Roles.CUSTOMER)

    # PhoneNumberField validates Indian numbers (+91...) when no country code is given
    phone_number = PhoneNumberField(blank=True, null=True, unique=True, region="IN")

    @property
    def is_platform_admin(self) -> bool:
        return self.role == self.Roles.ADMIN or self.is_staff

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"
