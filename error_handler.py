"""
PediCalc: Error Classification
==============================
Maps unexpected exceptions to a type/severity and a message a clinician
can act on. Expected failures (bad input, unsafe dose) never get here:
they are returned as results by the engine.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from models import SafetyLevel

logger = logging.getLogger("pedicalc-engine")

class ErrorType(str, Enum):
    NETWORK = "network"
    VALIDATION = "validation"
    MEDICAL_CALCULATION = "medical_calculation"
    DATABASE = "database"
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    SERVER = "server"
    CLIENT = "client"
    UNKNOWN = "unknown"

class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

@dataclass
class ClassifiedError:
    message: str
    context: str
    type: ErrorType = ErrorType.UNKNOWN
    severity: ErrorSeverity = ErrorSeverity.MEDIUM
    medical_safety: Optional[SafetyLevel] = None
    is_retryable: bool = False
    requires_user_action: bool = True
    code: Optional[str] = None
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

def _contains(text: str, *needles: str) -> bool:
    return any(n in text for n in needles)

def classify_error(error, context: str) -> ClassifiedError:
    """Classify an exception (or string) by its message and the calling context."""
    if isinstance(error, BaseException):
        message = str(error) or type(error).__name__
    elif error is None:
        message = "Unknown error occurred"
    else:
        message = str(error)

    classified = ClassifiedError(message=message, context=context)
    if not isinstance(error, BaseException):
        return classified

    text = message.lower()
    ctx = context.lower()

    if isinstance(error, (ConnectionError, TimeoutError)) or \
            _contains(text, "fetch", "network", "connection", "timeout"):
        classified.type = ErrorType.NETWORK
        classified.severity = ErrorSeverity.HIGH
        classified.is_retryable = True
        classified.requires_user_action = False
    elif _contains(text, "database", "query", "table"):
        classified.type = ErrorType.DATABASE
        classified.severity = ErrorSeverity.HIGH
        classified.is_retryable = True
    elif _contains(ctx, "calculation", "dosage", "medical") or _contains(text, "dose", "calculation"):
        classified.type = ErrorType.MEDICAL_CALCULATION
        classified.severity = ErrorSeverity.CRITICAL
        classified.medical_safety = SafetyLevel.DANGER
    elif _contains(text, "validation", "invalid", "required") or "validation" in ctx:
        classified.type = ErrorType.VALIDATION
        classified.medical_safety = SafetyLevel.CAUTION
    elif _contains(text, "auth", "unauthorized", "permission"):
        classified.type = ErrorType.AUTHENTICATION
        classified.severity = ErrorSeverity.HIGH
    elif _contains(text, "rate limit", "too many requests"):
        classified.type = ErrorType.RATE_LIMIT
        classified.is_retryable = True
        classified.requires_user_action = False

    return classified

_USER_MESSAGES = {
    ErrorType.NETWORK: "Network connection issue. Please check your internet connection and try again.",
    ErrorType.DATABASE: "Unable to access medication database. Please try again in a moment.",
    ErrorType.MEDICAL_CALCULATION: "Error in medical calculation. Please verify patient data and medication selection.",
    ErrorType.VALIDATION: "Please check your input values and correct any errors highlighted.",
    ErrorType.AUTHENTICATION: "Authentication required. Please sign in to continue.",
    ErrorType.RATE_LIMIT: "Too many requests. Please wait a moment before trying again.",
    ErrorType.SERVER: "Server error occurred. Please try again later.",
}

def get_user_friendly_message(classified: ClassifiedError) -> str:
    if classified.type in _USER_MESSAGES:
        return _USER_MESSAGES[classified.type]
    return classified.message or "An unexpected error occurred. Please try again."

def handle_medical_error(error: Exception, patient=None, medication_name: str = "") -> ClassifiedError:
    """
    Boundary handler for the Dosage Engine: log with patient context
    and force CRITICAL severity regardless of message heuristics.
    """
    classified = classify_error(error, "medical_calculation")
    classified.severity = ErrorSeverity.CRITICAL
    classified.medical_safety = SafetyLevel.DANGER
    classified.is_retryable = False

    logger.error(
        f"Medical calculation error ({classified.type.value}) for '{medication_name}': "
        f"{classified.message} | age={getattr(patient, 'age', None)} "
        f"{getattr(patient, 'age_unit', None)} weight={getattr(patient, 'weight', None)} "
        f"{getattr(patient, 'weight_unit', None)}",
        exc_info=error,
    )
    return classified
