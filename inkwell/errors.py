"""
inkwell.errors — Economy Error Taxonomy
========================================

Every state-machine failure is a distinguishable :class:`EconomyError`
subclass carrying a stable machine ``code``, a user-facing ``message`` and
the HTTP status the API should answer with.  All of them are recoverable at
the request boundary — the API turns them into JSON, nothing crashes.

Idempotent no-ops (same-day check-in, already unlocked achievement, already
completed challenge) are *results*, not errors, and never raise.
"""

from __future__ import annotations


class EconomyError(Exception):
    """Base class for all recoverable economy failures."""

    code: str = "ECONOMY_ERROR"
    status_code: int = 400
    default_message: str = "The request could not be completed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class UserNotFoundError(EconomyError):
    code = "USER_NOT_FOUND"
    status_code = 404
    default_message = "User not found"

    def __init__(self, user_id: int | None = None) -> None:
        self.user_id = user_id
        super().__init__(
            f"User {user_id} not found" if user_id is not None else None
        )


class InsufficientInkDropsError(EconomyError):
    """A debit would have made the balance negative.  Nothing was written."""

    code = "INSUFFICIENT_INK_DROPS"
    default_message = "Insufficient Ink Drops"

    def __init__(self, balance: int, required: int) -> None:
        self.balance = balance
        self.required = required
        super().__init__(
            f"You need {required} Ink Drops but only have {balance}"
        )


class AlreadyRestoredError(EconomyError):
    code = "ALREADY_RESTORED"
    default_message = "You can only restore your streak once per break"


class NoBrokenStreakError(EconomyError):
    code = "NO_BROKEN_STREAK"
    default_message = "Your streak is still active"


class InvalidAmountError(EconomyError):
    code = "INVALID_AMOUNT"
    default_message = "Amount must be a positive integer"


class InvalidTipError(EconomyError):
    code = "INVALID_TIP"
    default_message = "Invalid recipient or amount"


class InvalidChallengeActionError(EconomyError):
    code = "INVALID_ACTION_TYPE"
    default_message = "actionType is required"
