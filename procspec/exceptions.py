from collections.abc import Generator, Sequence
from contextlib import contextmanager
from typing import Any, Optional

__all__ = (
    "ArgumentCountMismatchError",
    "ConnectionError",
    "ExecutionError",
    "ImproperConfigurationError",
    "InsufficientArgumentsError",
    "InvalidSignatureError",
    "InvalidStateError",
    "MissingDependencyError",
    "ParameterError",
    "ProcSpecError",
    "SQLFileNotFoundError",
    "SQLFileParseError",
    "SQLParsingError",
    "SignatureArityMismatchError",
    "UnexpectedArgumentsError",
    "wrap_driver_errors",
)


class ProcSpecError(Exception):
    """Base exception class from which all procspec exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``ProcSpecError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class MissingDependencyError(ProcSpecError, ImportError):
    """Missing optional dependency.

    This exception is raised only when a module depends on a dependency that has not been installed.
    """

    def __init__(self, package: str, install_package: Optional[str] = None) -> None:
        super().__init__(
            f"Package {package!r} is not installed but required. You can install it by running "
            f"'pip install procspec[{install_package or package}]' to install procspec with the required extra "
            f"or 'pip install {install_package or package}' to install the package separately",
        )


# -- Configuration Errors --
class ImproperConfigurationError(ProcSpecError):
    """Descriptor metadata is wrong.

    Raised for defects in query or procedure definitions. These are never retried.
    """


class InvalidSignatureError(ImproperConfigurationError):
    """Stored procedure signature text does not match the signature grammar."""

    name: Optional[str]
    signature: str

    def __init__(self, signature: str, name: Optional[str] = None) -> None:
        super().__init__(f"Unsupported stored procedure signature for {name or '<anonymous>'}: {signature}")
        self.name = name
        self.signature = signature


class SignatureArityMismatchError(ImproperConfigurationError):
    """Signature argument count differs from the declared type count."""

    def __init__(
        self, signature_count: int, declared_count: int, arg_types: "Sequence[int]", name: Optional[str] = None
    ) -> None:
        super().__init__(
            f"Signature argument count differs from declared type count for {name or '<anonymous>'}"
            f"{[int(code) for code in arg_types]}: signature: {signature_count}; declared: {declared_count}"
        )
        self.name = name
        self.signature_count = signature_count
        self.declared_count = declared_count
        self.arg_types = tuple(arg_types)


# -- Parameter Errors --
class ParameterError(ProcSpecError):
    """Base class for argument count and binding errors."""


class ArgumentCountMismatchError(ParameterError):
    """Supplied argument count differs from the descriptor's declared count."""

    def __init__(self, name: str, arg_names: "Sequence[str]", expected: int, actual: int) -> None:
        if expected == 0:
            message = f"No arguments expected for {name}"
        else:
            message = f"Incorrect argument count for {name}{list(arg_names)}: expect: {expected}; actual: {actual}"
        super().__init__(message)
        self.name = name
        self.arg_names = tuple(arg_names)
        self.expected = expected
        self.actual = actual


class UnexpectedArgumentsError(ParameterError):
    """Arguments were supplied to a procedure that declares none."""

    def __init__(self, name: Optional[str] = None) -> None:
        super().__init__(f"No arguments expected for {name or '<anonymous>'}")
        self.name = name


class InsufficientArgumentsError(ParameterError):
    """Fewer arguments were supplied than the procedure declares."""

    def __init__(self, minimum: int, actual: int, arg_types: "Sequence[int]", name: Optional[str] = None) -> None:
        super().__init__(
            f"Insufficient arguments count for {name or '<anonymous>'}{[int(code) for code in arg_types]}: "
            f"minimum: {minimum}; actual: {actual}"
        )
        self.name = name
        self.minimum = minimum
        self.actual = actual
        self.arg_types = tuple(arg_types)


# -- Driver Errors --
class ConnectionError(ProcSpecError):  # noqa: A001
    """A connection could not be acquired from the connection provider."""


class ExecutionError(ProcSpecError):
    """Preparing, binding or executing a statement failed.

    The driver exception is always available as ``__cause__``.
    """


class InvalidStateError(ProcSpecError):
    """A released execution handle was accessed."""


class SQLParsingError(ProcSpecError):
    """Issues tokenizing SQL statements."""

    def __init__(self, message: Optional[str] = None) -> None:
        if message is None:
            message = "Issues parsing SQL statement."
        super().__init__(message)


# -- SQL File Errors --
class SQLFileNotFoundError(ProcSpecError):
    """A named statement or SQL file could not be found."""

    def __init__(self, name: str, path: Optional[str] = None) -> None:
        message = f"SQL file '{name}' not found at path: {path}" if path else f"SQL file '{name}' not found"
        super().__init__(message)
        self.name = name
        self.path = path


class SQLFileParseError(ProcSpecError):
    """A SQL file could not be parsed into named statements."""

    def __init__(self, name: str, path: str, original_error: Exception) -> None:
        super().__init__(f"Failed to parse SQL file '{name}' at {path}: {original_error}")
        self.name = name
        self.path = path
        self.original_error = original_error


@contextmanager
def wrap_driver_errors(error_class: "type[ProcSpecError]", message: str) -> Generator[None, None, None]:
    """Convert foreign exceptions raised in the block into ``error_class``.

    procspec errors pass through untouched so validation failures keep their type.

    Args:
        error_class: The procspec error type to raise.
        message: Prefix for the wrapped error message.

    Raises:
        error_class: When the block raises anything other than a procspec error.
    """
    try:
        yield
    except ProcSpecError:
        raise
    except Exception as exc:
        msg = f"{message}: {exc}"
        raise error_class(msg) from exc
