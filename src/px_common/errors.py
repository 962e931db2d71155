"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Caller input (format, token, slippage, tick size)
  2xxx: Directory (token / pool / perp market lookups)
  3xxx: AMM
  5xxx: Messaging (confirmation polling)
  9xxx: System / upstream services

Malformed parameter objects are rejected by their pydantic schemas
(pydantic.ValidationError) before any of these can be raised.
"""


class AppError(Exception):
    """Base SDK error."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


# --- 1xxx: Caller input ---

class InvalidFormatError(AppError):
    def __init__(self, value: str) -> None:
        super().__init__(1001, f"Invalid decimal format: {value!r}")


class InvalidTokenError(AppError):
    def __init__(self, token_id: str, pool_id: str) -> None:
        super().__init__(
            1002, f"Token {token_id} is not one of the tokens of pool {pool_id}"
        )


class InvalidSlippageError(AppError):
    def __init__(self, slippage_tolerance: float) -> None:
        super().__init__(
            1003, f"Slippage tolerance must be between 0 and 1, got {slippage_tolerance}"
        )


class InvalidQuantityError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(1004, f"Invalid quantity: {detail}")


class TickSizeError(AppError):
    def __init__(self, field: str, value: str, nearest_valid: str) -> None:
        self.nearest_valid = nearest_valid
        super().__init__(
            1005,
            f"Invalid {field} tick size: {value} (nearest valid {field}: {nearest_valid})",
        )


# --- 2xxx: Directory ---

class NotFoundError(AppError):
    """Referenced instrument is absent from the directory cache."""


class TokenNotFoundError(NotFoundError):
    def __init__(self, token_ref: str) -> None:
        super().__init__(2001, f"Token not found: {token_ref}")


class PoolNotFoundError(NotFoundError):
    def __init__(self, pool_ref: str) -> None:
        super().__init__(2002, f"Pool not found: {pool_ref}")


class PerpMarketNotFoundError(NotFoundError):
    def __init__(self, market_ref: str) -> None:
        super().__init__(2003, f"Perp market not found: {market_ref}")


# --- 3xxx: AMM ---

class ReservesUnavailableError(AppError):
    def __init__(self, pool_id: str, detail: str = "Reserves not fetched yet") -> None:
        super().__init__(3001, f"{detail}: {pool_id}")


# --- 5xxx: Messaging ---

class ConfirmationTimeoutError(AppError):
    """No confirmation was observed; the write may still settle later."""

    def __init__(self, operation: str, message_id: str, detail: str | None = None) -> None:
        self.message_id = message_id
        message = f"{operation} was not confirmed in time"
        if detail:
            message += f" ({detail})"
        super().__init__(5001, f"{message}. Reference: {message_id}")


class RemoteFailureError(AppError):
    def __init__(self, detail: str, message_id: str | None = None) -> None:
        self.detail = detail
        self.message_id = message_id
        message = f"{detail} (reference: {message_id})" if message_id else detail
        super().__init__(5002, message)


# --- 9xxx: System ---

class UpstreamUnavailableError(AppError):
    def __init__(
        self, detail: str = "Upstream service unavailable", message_id: str | None = None
    ) -> None:
        self.detail = detail
        self.message_id = message_id
        message = f"{detail} (reference: {message_id})" if message_id else detail
        super().__init__(9001, message)
