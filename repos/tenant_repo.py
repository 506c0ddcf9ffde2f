from __future__ import annotations

import time
from typing import Any, Dict, Optional

from google.cloud.firestore import Client

from models.schema import COL_COMPANIES, FIELD_TWILIO_CONFIG
from models.telephony import CredentialSet
from storage.firestore_client import STORE_ERRORS, get_firestore_client, is_valid_doc_id
from telephony.errors import InvalidTenantId, StoreUnavailable


class TenantRepository:
    """Tenant (company) documents; only the owner and the Twilio override are touched here.

    A malformed tenant id reads as a missing tenant and is refused for writes.
    """

    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def _ref(self, tenant_id: str):
        if not is_valid_doc_id(tenant_id):
            raise InvalidTenantId()
        return self.db.collection(COL_COMPANIES).document(tenant_id)

    def get(self, tenant_id: str) -> Optional[Dict[str, Any]]:
        if not is_valid_doc_id(tenant_id):
            return None
        try:
            snap = self._ref(tenant_id).get()
        except STORE_ERRORS as e:
            raise StoreUnavailable(f"tenant read failed: {type(e).__name__}") from e
        if not snap.exists:
            return None
        d = snap.to_dict() or {}
        d["tenant_id"] = tenant_id
        return d

    def get_owner_id(self, tenant_id: str) -> Optional[str]:
        """None when the tenant does not exist, "" when it has no owner."""
        t = self.get(tenant_id)
        if t is None:
            return None
        return str(t.get("ownerId") or "")

    def get_twilio_config(self, tenant_id: str) -> Optional[Dict[str, Any]]:
        t = self.get(tenant_id)
        if not t:
            return None
        cfg = (t.get("settings") or {}).get("twilioConfig")
        return cfg if isinstance(cfg, dict) and cfg else None

    def save_twilio_config(self, tenant_id: str, creds: CredentialSet, connected: bool) -> Dict[str, Any]:
        now_ms = int(time.time() * 1000)
        cfg = {**creds.to_mapping(), "connected": connected, "connectedAt": now_ms}
        ref = self._ref(tenant_id)
        try:
            ref.update({FIELD_TWILIO_CONFIG: cfg, "updatedAt": now_ms})
        except STORE_ERRORS as e:
            raise StoreUnavailable(f"tenant update failed: {type(e).__name__}") from e
        return cfg

    def clear_twilio_config(self, tenant_id: str) -> None:
        ref = self._ref(tenant_id)
        try:
            ref.update({FIELD_TWILIO_CONFIG: {}, "updatedAt": int(time.time() * 1000)})
        except STORE_ERRORS as e:
            raise StoreUnavailable(f"tenant update failed: {type(e).__name__}") from e
