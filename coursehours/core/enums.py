from enum import Enum


class ConsumeFailureReason(str, Enum):
    NO_ELIGIBLE_PACKAGE = "no_eligible_package"
    INSUFFICIENT_HOURS = "insufficient_hours"
    STORE_ERROR = "store_error"
