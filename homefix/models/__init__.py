"""
HomeFix SQLAlchemy Models
=============================

Central import point for all ORM models. Import ``Base`` from here for
Alembic auto-generation and for the ``create_all`` convenience in tests.

Usage::

    from homefix.models import Base, Profile, ServiceRequest, ProviderProfile
"""

# -- Base & Mixins --
from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin

# -- Profiles --
from .profile import Profile

# -- Providers --
from .provider import DEFAULT_SERVICE_RADIUS_KM, ProviderCategory, ProviderProfile

# -- Categories --
from .taxonomy import DEFAULT_CATEGORIES, ServiceCategory

# -- Service requests --
from .service_request import RequestStatus, RequestStatusHistory, ServiceRequest

# -- Notifications --
from .notification import Notification, NotificationType

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    # Profiles
    "Profile",
    # Providers
    "ProviderProfile",
    "ProviderCategory",
    "DEFAULT_SERVICE_RADIUS_KM",
    # Categories
    "ServiceCategory",
    "DEFAULT_CATEGORIES",
    # Service requests
    "ServiceRequest",
    "RequestStatus",
    "RequestStatusHistory",
    # Notifications
    "Notification",
    "NotificationType",
]
