"""Models package - exports all SQLAlchemy models."""
# Tenancy and access
from app.models.tenant import Tenant
from app.models.app_user import AppUser, UserRole, TENANT_SCOPED_ROLES

# Scheduling Models
from app.models.barber import Barber
from app.models.working_hours import WorkingHours
from app.models.availability_override import AvailabilityOverride
from app.models.service import Service
from app.models.client import Client
from app.models.appointment import Appointment, AppointmentStatus, AppointmentSlot

__all__ = [
    # Tenancy
    'Tenant', 'AppUser', 'UserRole', 'TENANT_SCOPED_ROLES',
    # Scheduling
    'Barber', 'WorkingHours', 'AvailabilityOverride', 'Service',
    'Client', 'Appointment', 'AppointmentStatus', 'AppointmentSlot',
]
