from __future__ import annotations

import os
import time
from typing import Any, Dict

from fastapi import APIRouter, Depends

from app.deps import get_resolver
from config.settings import settings
from models.schema import COL_SYSTEM, DOC_HEALTHZ
from storage.firestore_client import get_firestore_client
from telephony.resolver import ConfigResolver

router = APIRouter()


def _firestore_probe(timeout_s: float = 0.20) -> Dict[str, Any]:
    """
    Read-only, bounded-time Firestore connectivity probe.
    - No PII
    - No writes
    - Uses a fixed doc path.
    """
    try:
        t0 = time.time()
        get_firestore_client().collection(COL_SYSTEM).document(DOC_HEALTHZ).get(timeout=timeout_s)
        dt_ms = int((time.time() - t0) * 1000)
        return {"ok": True, "latency_ms": dt_ms}
    except Exception as e:
        return {"ok": False, "error_type": type(e).__name__, "message": str(e)}


@router.get("/health")
def health(resolver: ConfigResolver = Depends(get_resolver)):
    fs = _firestore_probe()
    payload: Dict[str, Any] = {
        "ok": bool(fs.get("ok", False)),
        "service": "leadline-telephony",
        "revision": os.getenv("K_REVISION") or "",
        "environment": settings.ENVIRONMENT,
        "firestore_ok": bool(fs.get("ok", False)),
        "firestore": fs,
        "twilio_platform_configured": resolver.is_platform_configured(),
        "time_unix": time.time(),
    }
    return payload
