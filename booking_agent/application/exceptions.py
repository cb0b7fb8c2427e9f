class UpstreamUnavailableError(RuntimeError):
    """Raised when a provider stays unreachable or rate limited after all retry attempts."""
    pass


class CredentialRefreshError(UpstreamUnavailableError):
    """Raised when the scheduling service access token cannot be refreshed."""
    pass


class MissingSelectionError(RuntimeError):
    """Raised when a step needs a selection that an earlier step has not populated."""
    pass


class PaymentError(RuntimeError):
    """Raised when the payment processor rejects a payment link request."""
    pass
