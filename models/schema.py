# Centralized collection names to prevent drift.

# companies/{tenant_id}; tenant Twilio override lives at settings.twilioConfig
COL_COMPANIES = "companies"
FIELD_TWILIO_CONFIG = "settings.twilioConfig"

# companies/{tenant_id}/messages/{message_sid}
COL_MESSAGES = "messages"

# companies/{tenant_id}/delivery_logs/{auto_id}
COL_DELIVERY_LOGS = "delivery_logs"

# Health probe target (read-only)
COL_SYSTEM = "system"
DOC_HEALTHZ = "healthz"
