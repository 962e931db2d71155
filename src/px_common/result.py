"""Unified operation result.

Every public trading operation returns this shape instead of raising:
    Result(data=<value>)            -> ok, code 0, message "success"
    Result(error=<AppError>)        -> not ok, code/message from the error

Only AppError is converted. pydantic.ValidationError on malformed caller
parameters and programming errors still propagate.
"""

import functools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, ParamSpec, TypeVar

from src.px_common.errors import AppError

logger = logging.getLogger(__name__)

T = TypeVar("T")
P = ParamSpec("P")


@dataclass(frozen=True)
class Result(Generic[T]):
    data: T | None = None
    error: AppError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def code(self) -> int:
        return 0 if self.error is None else self.error.code

    @property
    def message(self) -> str:
        return "success" if self.error is None else self.error.message

    def unwrap(self) -> T:
        """Return data, or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.data  # type: ignore[return-value]


def success_result(data: T) -> Result[T]:
    return Result(data=data)


def error_result(error: AppError) -> Result[T]:
    return Result(error=error)


async def capture(awaitable: Awaitable[T]) -> Result[T]:
    """Await and wrap: an AppError becomes an error result."""
    try:
        return success_result(await awaitable)
    except AppError as exc:
        logger.warning("Operation failed: [%d] %s", exc.code, exc.message)
        return error_result(exc)


def returns_result(
    func: Callable[P, Awaitable[T]],
) -> Callable[P, Awaitable[Result[T]]]:
    """Decorate an async operation so AppErrors come back as error results."""

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> Result[T]:
        return await capture(func(*args, **kwargs))

    return wrapper
