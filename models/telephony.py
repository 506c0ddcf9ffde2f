from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from telephony.errors import TelephonyError


class ConfigSource(str, Enum):
    TENANT = "tenant"
    PLATFORM = "platform"
    NONE = "none"


class MessageStatus(str, Enum):
    QUEUED = "queued"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    UNDELIVERED = "undelivered"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({MessageStatus.DELIVERED, MessageStatus.FAILED, MessageStatus.UNDELIVERED})


class StatusUpdateOutcome(str, Enum):
    APPLIED = "applied"
    SKIPPED_TERMINAL = "skipped_terminal"
    SKIPPED_STALE = "skipped_stale"
    DROPPED_UNKNOWN = "dropped_unknown"
    FAILED = "failed"


@dataclass(frozen=True)
class CredentialSet:
    account_sid: str = ""
    auth_token: str = field(default="", repr=False)
    phone_number: str = ""

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "CredentialSet":
        """Build from a stored tenant config (``accountSid``/``authToken``/``phoneNumber``)."""
        data = data or {}
        return cls(
            account_sid=str(data.get("accountSid") or "").strip(),
            auth_token=str(data.get("authToken") or "").strip(),
            phone_number=str(data.get("phoneNumber") or "").strip(),
        )

    def to_mapping(self) -> Dict[str, str]:
        return {"accountSid": self.account_sid, "authToken": self.auth_token, "phoneNumber": self.phone_number}


@dataclass(frozen=True)
class EffectiveConfig:
    credentials: Optional[CredentialSet]
    source: ConfigSource

    @property
    def is_usable(self) -> bool:
        return self.source is not ConfigSource.NONE and self.credentials is not None


class NormalizedNumber(str):
    """E.164 string; only telephony.normalizer creates these."""

    __slots__ = ()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class OutboundMessage:
    message_sid: str
    tenant_id: str
    lead_id: str
    to_number: str
    from_number: str
    body: str
    status: MessageStatus = MessageStatus.QUEUED
    credential_source: ConfigSource = ConfigSource.PLATFORM
    direction: str = "outbound"
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_document(self) -> Dict[str, Any]:
        return {
            "messageSid": self.message_sid,
            "tenantId": self.tenant_id,
            "leadId": self.lead_id,
            "toNumber": self.to_number,
            "fromNumber": self.from_number,
            "body": self.body,
            "status": self.status.value,
            "credentialSource": self.credential_source.value,
            "direction": self.direction,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_document(cls, d: Mapping[str, Any]) -> "OutboundMessage":
        return cls(
            message_sid=str(d.get("messageSid") or ""),
            tenant_id=str(d.get("tenantId") or ""),
            lead_id=str(d.get("leadId") or ""),
            to_number=str(d.get("toNumber") or ""),
            from_number=str(d.get("fromNumber") or ""),
            body=str(d.get("body") or ""),
            status=MessageStatus(d.get("status") or MessageStatus.QUEUED.value),
            credential_source=ConfigSource(d.get("credentialSource") or ConfigSource.PLATFORM.value),
            direction=str(d.get("direction") or "outbound"),
            created_at=d.get("createdAt") or utc_now(),
            updated_at=d.get("updatedAt") or utc_now(),
        )


@dataclass(frozen=True)
class SendResult:
    success: bool
    message_sid: Optional[str] = None
    error: Optional["TelephonyError"] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "messageSid": self.message_sid}
        out: Dict[str, Any] = {"success": False, "error": self.error.public_message if self.error else "send_failed"}
        if self.message_sid:
            out["messageSid"] = self.message_sid
        return out
