# core/constants.py

# --- Activity Codes (LEAPS stages) ---

ACTIVITY_LEARN = "LEARN"
ACTIVITY_EXPLORE = "EXPLORE"
ACTIVITY_AMPLIFY = "AMPLIFY"
ACTIVITY_PRESENT = "PRESENT"
ACTIVITY_SHINE = "SHINE"

# Program order
STAGES = (
    ACTIVITY_LEARN,
    ACTIVITY_EXPLORE,
    ACTIVITY_AMPLIFY,
    ACTIVITY_PRESENT,
    ACTIVITY_SHINE,
)

# --- Ledger Sources ---

LEDGER_SOURCE_MANUAL = "MANUAL"
LEDGER_SOURCE_WEBHOOK = "WEBHOOK"
LEDGER_SOURCE_FORM = "FORM"

# --- External Sources (idempotency key namespaces) ---

EXTERNAL_SOURCE_ADMIN_APPROVAL = "admin_approval"
EXTERNAL_SOURCE_ADMIN_REVOCATION = "admin_revocation"
EXTERNAL_SOURCE_KAJABI = "kajabi"

# --- Audit Actions ---

AUDIT_APPROVE_SUBMISSION = "APPROVE_SUBMISSION"
AUDIT_REJECT_SUBMISSION = "REJECT_SUBMISSION"
AUDIT_ADJUST_POINTS = "ADJUST_POINTS"
AUDIT_REVOKE_SUBMISSION = "REVOKE_SUBMISSION"
AUDIT_ASSIGN_BADGE = "ASSIGN_BADGE"
AUDIT_KAJABI_EVENT_RECONCILED = "KAJABI_EVENT_RECONCILED"

# System actor for automatic paths (provider webhooks, workers)
SYSTEM_ACTOR = "system"

# --- Amplify Guard Warnings ---

WARNING_DUPLICATE_SESSION = "DUPLICATE_SESSION_SUSPECT"
WARNING_MISSING_START_TIME = "MISSING_SESSION_START_TIME"
WARNING_MISSING_CITY = "MISSING_CITY"
WARNING_INCOMPLETE_PRIOR_METADATA = "INCOMPLETE_PRIOR_SESSION_METADATA"

# --- Amplify Scoring ---

AMPLIFY_POINTS_PER_PEER = 2
AMPLIFY_POINTS_PER_STUDENT = 1
