"""Domain exceptions raised below the use-case layer

Use cases translate these into Result errors.
"""


class InsufficientBalance(Exception):
    """Applying a negative delta would drive the balance below zero"""

    def __init__(self, account_id: str, balance: int, delta: int):
        self.account_id = account_id
        self.balance = balance
        self.delta = delta
        super().__init__(
            f"Insufficient balance for account {account_id}: balance={balance}, delta={delta}"
        )


class InvalidSignature(Exception):
    """Webhook signature missing, unverifiable or wrong"""


class ProviderError(Exception):
    """A downstream provider call failed; retryable"""


class ProviderTimeout(ProviderError):
    """A downstream provider call exceeded its timeout; retryable"""
