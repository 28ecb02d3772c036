"""
OTP module.

Code entry with resend cooldown and verify-attempt cap.

Public API:
- IOtpVerificationProtocol / OtpVerificationProtocol
- OtpState: counters snapshot
"""

from .interfaces import IOtpVerificationProtocol
from .models import OtpState
from .service import OtpVerificationProtocol

__all__ = [
    "IOtpVerificationProtocol",
    "OtpState",
    "OtpVerificationProtocol",
]
