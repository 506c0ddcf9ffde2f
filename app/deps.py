from __future__ import annotations

from functools import lru_cache

from config.settings import settings
from messaging.sms import SmsClient
from repos.tenant_repo import TenantRepository
from telephony.lifecycle import DeliveryTracker
from telephony.resolver import ConfigResolver

# Router dependencies. Tests swap these via app.dependency_overrides.


@lru_cache(maxsize=1)
def get_resolver() -> ConfigResolver:
    # Platform credentials are read once per process.
    return ConfigResolver.from_settings(settings)


@lru_cache(maxsize=1)
def get_tracker() -> DeliveryTracker:
    return DeliveryTracker(resolver=get_resolver())


def get_tenant_repo() -> TenantRepository:
    return TenantRepository()


def get_sms_client() -> SmsClient:
    return SmsClient()
