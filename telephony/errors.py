from __future__ import annotations


class TelephonyError(Exception):
    """Base for failures the HTTP layer renders with a fixed code and status."""

    code = "telephony_error"
    http_status = 500
    default_message = "telephony error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.public_message = message or self.default_message


class ConfigurationError(TelephonyError):
    code = "integration_not_configured"
    http_status = 503
    default_message = "integration not configured"


class InvalidNumber(TelephonyError):
    code = "invalid_phone_number"
    http_status = 400
    default_message = "invalid phone number"

    def __init__(self, raw: object = None, message: str | None = None):
        super().__init__(message)
        self.raw = raw


class ProviderError(TelephonyError):
    """The provider answered and refused the message."""

    code = "provider_error"
    http_status = 500
    default_message = "provider rejected message"

    def __init__(self, message: str | None = None, provider_code: int | None = None, status: int | None = None):
        super().__init__(message)
        self.provider_code = provider_code
        self.status = status


class ProviderUnavailable(TelephonyError):
    code = "provider_unavailable"
    http_status = 503
    default_message = "provider unavailable"


class StoreUnavailable(TelephonyError):
    code = "store_unavailable"
    http_status = 500
    default_message = "store unavailable"


class InvalidTenantId(TelephonyError):
    code = "invalid_tenant_id"
    http_status = 400
    default_message = "invalid tenant id"
