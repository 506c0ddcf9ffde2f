from __future__ import annotations

from functools import lru_cache

from google.api_core import exceptions as gexc
from google.auth import exceptions as auth_exc
from google.cloud import firestore

from config.settings import settings

# Anything the Firestore client raises when the store itself is unreachable or
# refuses the call. Repos translate these into StoreUnavailable.
STORE_ERRORS = (gexc.GoogleAPICallError, gexc.RetryError, auth_exc.GoogleAuthError)


@lru_cache(maxsize=1)
def get_firestore_client() -> firestore.Client:
    # Empty FIRESTORE_PROJECT_ID means the ADC default project.
    return firestore.Client(project=settings.FIRESTORE_PROJECT_ID or None)


def is_valid_doc_id(doc_id: object) -> bool:
    # Ids come from webhook query strings and request bodies. A "/" would be read
    # as a path separator and the client raises ValueError before any RPC.
    if not isinstance(doc_id, str) or not doc_id or "/" in doc_id:
        return False
    if doc_id in (".", ".."):
        return False
    return not (doc_id.startswith("__") and doc_id.endswith("__"))
