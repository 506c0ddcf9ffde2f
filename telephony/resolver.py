from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

from config.settings import Settings
from models.telephony import ConfigSource, CredentialSet, EffectiveConfig

log = logging.getLogger("leadline.resolver")

TenantConfig = Union[CredentialSet, Mapping[str, Any], None]

NO_CONFIG = EffectiveConfig(credentials=None, source=ConfigSource.NONE)


def _as_credentials(cfg: TenantConfig) -> Optional[CredentialSet]:
    if cfg is None:
        return None
    if isinstance(cfg, CredentialSet):
        return cfg
    return CredentialSet.from_mapping(cfg)


def is_complete(creds: Optional[CredentialSet]) -> bool:
    if creds is None:
        return False
    return all((v or "").strip() for v in (creds.account_sid, creds.auth_token, creds.phone_number))


def resolve_effective_config(tenant_config: TenantConfig, platform: Optional[CredentialSet]) -> EffectiveConfig:
    """Pick the credential set used for sending.

    A complete tenant override always wins, even over a configured platform
    account. Partial tenant config counts as absent.
    """
    tenant = _as_credentials(tenant_config)
    if is_complete(tenant):
        return EffectiveConfig(credentials=tenant, source=ConfigSource.TENANT)
    if is_complete(platform):
        return EffectiveConfig(credentials=platform, source=ConfigSource.PLATFORM)
    return NO_CONFIG


class ConfigResolver:
    def __init__(self, platform: Optional[CredentialSet] = None):
        self.platform = platform

    @classmethod
    def from_settings(cls, s: Settings) -> "ConfigResolver":
        return cls(
            CredentialSet(
                account_sid=(s.TWILIO_ACCOUNT_SID or "").strip(),
                auth_token=(s.TWILIO_AUTH_TOKEN or "").strip(),
                phone_number=(s.TWILIO_PHONE_NUMBER or "").strip(),
            )
        )

    def is_platform_configured(self) -> bool:
        return is_complete(self.platform)

    def resolve(self, tenant_config: TenantConfig) -> EffectiveConfig:
        eff = resolve_effective_config(tenant_config, self.platform)
        log.debug("config_resolved", extra={"extra": {"event": "config_resolved", "source": eff.source.value}})
        return eff
