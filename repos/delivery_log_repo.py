from __future__ import annotations

import uuid
from typing import Any, Dict, Optional

from google.cloud import firestore
from google.cloud.firestore import Client

from models.schema import COL_COMPANIES, COL_DELIVERY_LOGS
from storage.firestore_client import STORE_ERRORS, get_firestore_client, is_valid_doc_id
from telephony.errors import StoreUnavailable


class DeliveryLogRepository:
    """Append-only audit trail: companies/{tenant_id}/delivery_logs/{log_id}."""

    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def write(self, tenant_id: str, data: Dict[str, Any]) -> str:
        if not is_valid_doc_id(tenant_id):
            raise StoreUnavailable("delivery log write rejected: malformed tenant id")
        log_id = str(uuid.uuid4())
        ref = self.db.collection(COL_COMPANIES).document(tenant_id).collection(COL_DELIVERY_LOGS).document(log_id)
        try:
            ref.set({**data, "logId": log_id, "createdAt": firestore.SERVER_TIMESTAMP}, merge=False)
        except STORE_ERRORS as e:
            raise StoreUnavailable(f"delivery log write failed: {type(e).__name__}") from e
        return log_id
