"""
Centralized constants for the pure legal translation core.
Tunable defaults live in settings.py; these are fixed values.
"""

# ===========================================
# CLEANING
# ===========================================
MAX_CLEANING_PASSES = 5               # stop re-scanning after this many passes
CLEANING_HIGH_REMOVAL_RATIO = 0.7     # removed share that costs 0.3 confidence
CLEANING_MEDIUM_REMOVAL_RATIO = 0.4   # removed share that costs 0.1 confidence
CLEANING_MIN_CONFIDENCE = 0.1
CLEANING_SEVERITY_PENALTY = {
    "critical": 0.10,
    "high": 0.07,
    "medium": 0.05,
    "low": 0.02,
}

# ===========================================
# PURITY VALIDATION
# ===========================================
PURITY_MAX_SCORE = 100.0
SCRIPT_MIXED_TARGET_THRESHOLD = 80.0   # below this share of target script...
SCRIPT_MIXED_FOREIGN_THRESHOLD = 20.0  # ...and above this share of foreign: 0
TERMINOLOGY_PENALTY_PER_TERM = 20.0
UI_TOKEN_PENALTY = 25.0
DEFAULT_PURITY_WEIGHTS = {
    "script_purity": 0.30,
    "terminology_consistency": 0.15,
    "encoding_integrity": 0.20,
    "contextual_coherence": 0.15,
    "ui_elements_removed": 0.20,
}

# ===========================================
# RECOVERY
# ===========================================
PRIMARY_CONFIDENCE_CAP = 1.0
SECONDARY_CONFIDENCE_CAP = 0.85
FALLBACK_CONFIDENCE_CAP = 0.70
FALLBACK_CONFIDENCE_FLOOR = 0.35
EMERGENCY_CONFIDENCE = 0.3
COMPONENT_FAILURE_THRESHOLD = 3       # consecutive failures before "unavailable"
DEFAULT_SYSTEM_LOAD = 0.5
DEFAULT_ERROR_RATE = 0.02
MIN_REQUESTS_FOR_ERROR_RATE = 10      # below this sample size use the default

# (terminology accuracy, readability, professionalism) per terminal method
TIER_QUALITY = {
    "primary": (95.0, 90.0, 95.0),
    "secondary": (85.0, 80.0, 85.0),
    "fallback_generated": (85.0, 90.0, 95.0),
    "emergency": (90.0, 95.0, 100.0),
}

# ===========================================
# FALLBACK GENERATION
# ===========================================
FALLBACK_BASE_CONFIDENCE = 0.5
FALLBACK_MIN_CONFIDENCE = 0.3
FALLBACK_MAX_CONFIDENCE = 0.9
FALLBACK_SHORT_TEXT_LENGTH = 10

# ===========================================
# ESCALATION
# ===========================================
ESCALATION_HISTORY_LIMIT = 1000
ESCALATION_EVENT_LIMIT = 500
ESCALATION_DEFAULT_RETRY_ATTEMPTS = 2
ESCALATION_DEFAULT_RETRY_DELAY = 1.0  # seconds
WEBHOOK_TIMEOUT_SECONDS = 10.0

# ===========================================
# FALLBACK LOGGING
# ===========================================
FALLBACK_LOG_MAX_ENTRIES = 10000
FREQUENT_ERROR_THRESHOLD = 5          # occurrences before an opportunity is raised
DOMINANT_ERROR_SHARE = 0.5
TREND_CHANGE_THRESHOLD = 10.0         # percent

# ===========================================
# HEALTH
# ===========================================
HEALTH_UNHEALTHY_SUCCESS_RATE = 50.0
HEALTH_DEGRADED_SUCCESS_RATE = 80.0
HEALTH_UNHEALTHY_ERROR_RATE = 0.3
HEALTH_DEGRADED_ERROR_RATE = 0.1

# ===========================================
# LOGGING
# ===========================================
LOG_LEVEL = 'INFO'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_MAX_SIZE_MB = 10
LOG_BACKUP_COUNT = 5
