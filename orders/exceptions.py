from utils.exceptions import DomainError


class OrderError(DomainError):
    """An order state rule was violated (cutoff passed, bad status transition)."""
