"""Result type for passing errors from the worker to the controller as values."""

from typing import TypeVar, Generic, Union, Callable, Any
from dataclasses import dataclass
import logging

from ..models.status import Status
from .exceptions import status_of

T = TypeVar('T')
E = TypeVar('E', bound=Exception)
U = TypeVar('U')


@dataclass
class Success(Generic[T]):
    """Represents a successful result."""
    value: T

    @property
    def status(self) -> Status:
        return Status.SUCCESS

    def is_success(self) -> bool:
        return True

    def is_error(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Get the success value."""
        return self.value

    def map(self, func: Callable[[T], U]) -> 'Result[U, E]':
        """Apply function to success value, capturing anything it raises."""
        try:
            return Success(func(self.value))
        except Exception as e:
            return Error(e)


@dataclass
class Error(Generic[E]):
    """Represents a failed operation and the exception behind it."""
    error: E

    @property
    def status(self) -> Status:
        """Status reported to the controller for this failure."""
        return status_of(self.error)

    def is_success(self) -> bool:
        return False

    def is_error(self) -> bool:
        return True

    def unwrap(self) -> Any:
        """Re-raise the captured exception."""
        raise self.error

    def map(self, func: Callable[[Any], U]) -> 'Result[U, E]':
        return self


Result = Union[Success[T], Error[E]]


def success(value: T) -> Success[T]:
    """Create a successful result."""
    return Success(value)


def error(err: E) -> Error[E]:
    """Create an error result."""
    return Error(err)


def safe_call(func: Callable[..., T], *args, **kwargs) -> Result[T, Exception]:
    """
    Call ``func`` and wrap its outcome in a Result.

    Args:
        func: Function to call
        *args: Positional arguments
        **kwargs: Keyword arguments

    Returns:
        Success with return value or Error with exception
    """
    try:
        return success(func(*args, **kwargs))
    except Exception as e:
        logging.debug(f"{getattr(func, '__name__', func)} failed: {e}")
        return error(e)
