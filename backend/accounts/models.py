# backend/accounts/models.py

from django.contrib.auth.models import AbstractUser
from django.db import models


class CustomUser(AbstractUser):
    ROLE_CHOICES = [
        ('sales', 'Sales'),
        ('manager', 'Manager'),
        ('finance', 'Finance'),
    ]
    APPROVER_ROLES = ('manager', 'finance')

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='sales')

    @property
    def can_approve_quotes(self) -> bool:
        return self.role in self.APPROVER_ROLES

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"
