from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models


ROLE_READER = 'reader'
ROLE_LIBRARIAN = 'librarian'
ROLE_ADMIN = 'admin'

ROLE_CHOICES = [
    (ROLE_READER, 'Reader'),
    (ROLE_LIBRARIAN, 'Librarian'),
    (ROLE_ADMIN, 'Administrator'),
]

STAFF_ROLES = (ROLE_LIBRARIAN, ROLE_ADMIN)

STATUS_PENDING = 'pending'
STATUS_ACTIVE = 'active'
STATUS_DISABLED = 'disabled'
STATUS_REJECTED = 'rejected'

ACCOUNT_STATUS_CHOICES = [
    (STATUS_PENDING, 'Pending approval'),
    (STATUS_ACTIVE, 'Active'),
    (STATUS_DISABLED, 'Disabled'),
    (STATUS_REJECTED, 'Rejected'),
]


class CustomUserManager(BaseUserManager):
    def create_user(self, username, email, password=None, role=ROLE_READER, **extra_fields):
        if not email:
            raise ValueError('The Email field must be set')
        email = self.normalize_email(email)
        extra_fields.setdefault('account_status', STATUS_PENDING)
        user = self.model(username=username, email=email, role=role, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, username, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('account_status', STATUS_ACTIVE)
        return self.create_user(username, email, password, role=ROLE_ADMIN, **extra_fields)


class CustomUser(AbstractUser):
    """Library account: a reader, a librarian or an administrator."""
    role = models.CharField(max_length=15, choices=ROLE_CHOICES, default=ROLE_READER)
    account_status = models.CharField(max_length=15, choices=ACCOUNT_STATUS_CHOICES, default=STATUS_PENDING)
    phone = models.CharField(max_length=20, blank=True)
    address = models.CharField(max_length=255, blank=True)
    rejection_reason = models.TextField(blank=True)

    objects = CustomUserManager()

    class Meta:
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        ordering = ['username']

    def __str__(self):
        return self.username

    @property
    def is_reader(self):
        return self.role == ROLE_READER

    @property
    def is_library_staff(self):
        return self.role in STAFF_ROLES

    @property
    def is_account_active(self):
        return self.account_status == STATUS_ACTIVE

    def get_display_name(self):
        full_name = self.get_full_name()
        return full_name or self.username
