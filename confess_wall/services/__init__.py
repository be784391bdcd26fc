"""Service layer for the submission pipeline."""

from .abuse_gate import AbuseGate, AbuseRecord, Admission
from .audit_log import AuditLog
from .challenge_service import ChallengeResult, ChallengeVerifier, TurnstileVerifier
from .confession_store import (
    ConfessionStore,
    JsonFileConfessionStore,
    SqlConfessionStore,
    create_store,
)
from .database import DatabaseService

__all__ = [
    "AbuseGate",
    "AbuseRecord",
    "Admission",
    "AuditLog",
    "ChallengeResult",
    "ChallengeVerifier",
    "ConfessionStore",
    "DatabaseService",
    "JsonFileConfessionStore",
    "SqlConfessionStore",
    "TurnstileVerifier",
    "create_store",
]
