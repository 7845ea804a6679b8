
class WizardError(RuntimeError):
    """Base for every error surfaced through the wizard's title/message modal."""

    kind = "wizard"

    def __init__(self, title: str, message: str) -> None:
        super().__init__(f"{title}: {message}")
        self.title = title
        self.message = message


class FormValidationError(WizardError):
    """Raised when a step or final check fails. Recoverable by correcting the draft."""

    kind = "validation"


class NetworkFetchError(WizardError):
    """Raised by adapters when the backend cannot be reached or answers garbage."""

    kind = "network"


class CouponError(WizardError):
    """Raised when coupon validation cannot be completed."""

    kind = "coupon"


class PaymentGatewayError(WizardError):
    """Raised when the gateway is dismissed, fails, or cannot be initialized."""

    kind = "payment"


class SubmissionError(WizardError):
    """Raised when the backend rejects a booking payload. The draft is kept for retry."""

    kind = "submission"


class ConflictError(WizardError):
    """Raised when the chosen slot was booked by someone else before submission."""

    kind = "conflict"


class InvalidTransitionError(WizardError):
    """Raised when a payment action is requested from the wrong phase."""

    kind = "state"
