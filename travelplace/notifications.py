from flask import flash

from .verifier import FailureReason

FAILURE_MESSAGES = {
    FailureReason.MISSING_REFERENCE: ("Verification Error", "No payment reference found."),
    FailureReason.VERIFICATION_REJECTED: ("Payment Failed", "Payment verification failed. Please try again."),
    FailureReason.VERIFICATION_ERROR: ("Verification Error", "Unable to verify payment. Please contact support."),
}


def notify_payment_failure(reason: FailureReason) -> None:
    title, message = FAILURE_MESSAGES[reason]
    flash(f"{title}: {message}", "danger")
