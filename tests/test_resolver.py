from models.telephony import ConfigSource, CredentialSet
from telephony.resolver import ConfigResolver, is_complete, resolve_effective_config

PLATFORM = CredentialSet(account_sid="ACplatform", auth_token="ptoken", phone_number="+15550002222")
TENANT = CredentialSet(account_sid="ACtenant", auth_token="ttoken", phone_number="+15550001111")


def test_complete_tenant_wins_over_platform():
    for platform in (PLATFORM, None, CredentialSet()):
        eff = resolve_effective_config(TENANT, platform)
        assert eff.source == ConfigSource.TENANT
        assert eff.credentials == TENANT


def test_tenant_mapping_from_store_is_accepted():
    eff = resolve_effective_config({"accountSid": "ACx", "authToken": "tok", "phoneNumber": "+15550003333"}, PLATFORM)
    assert eff.source == ConfigSource.TENANT
    assert eff.credentials.account_sid == "ACx"


def test_partial_tenant_falls_back_to_platform():
    eff = resolve_effective_config({"accountSid": "ACx", "authToken": "", "phoneNumber": "+1555"}, PLATFORM)
    assert eff.source == ConfigSource.PLATFORM
    assert eff.credentials == PLATFORM


def test_absent_tenant_and_unconfigured_platform_is_none():
    eff = resolve_effective_config(None, CredentialSet(account_sid="AC", auth_token="", phone_number="+1"))
    assert eff.source == ConfigSource.NONE
    assert eff.credentials is None
    assert eff.is_usable is False


def test_whitespace_fields_are_incomplete():
    assert is_complete(CredentialSet(account_sid="AC", auth_token="  ", phone_number="+1")) is False
    assert is_complete(None) is False


def test_resolver_uses_injected_platform():
    r = ConfigResolver(PLATFORM)
    assert r.is_platform_configured() is True
    assert r.resolve(None).source == ConfigSource.PLATFORM
    assert ConfigResolver(None).is_platform_configured() is False


def test_auth_token_not_in_repr():
    assert "ttoken" not in repr(TENANT)
