"""Application-wide constants for the clinicbook platform."""

from __future__ import annotations

BRAND_NAME = "clinicbook"

API_TITLE = "clinicbook API"
API_VERSION = "0.1.0"
API_DESCRIPTION = "Scheduling and booking-lifecycle engine for dental clinics"

# Scheduling grid
SLOT_STEP_MINUTES = 30
MINUTES_PER_DAY = 24 * 60

# Confirmation numbers handed to patients (8 chars, upper-case alphanumeric)
CONFIRMATION_NUMBER_LENGTH = 8
CONFIRMATION_NUMBER_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"

# Text constraints
MAX_REASON_LENGTH = 500

# Query limits
DEFAULT_QUERY_LIMIT = 100
WAITLIST_CANDIDATE_LIMIT = 10

# Slot claims are written on an absolute grid of this many minutes; catalog
# times and service durations must be multiples of it
CLAIM_GRANULARITY_MINUTES = 5

# Service operations slower than this are logged as warnings
SLOW_OPERATION_SECONDS = 1.0
