"""Result values returned by connect() and reconnect()."""

from dataclasses import dataclass
from typing import Any, Optional

from remotelink.errors import ConnectionFailedError


@dataclass(frozen=True)
class ConnectResult:
    """Outcome of one connect or reconnect invocation.

    Attributes:
        success: True when a session is connected
        attempts: Number of connect attempts made (0 when nothing was attempted)
        message: Error message of the last failed attempt
        error: Exception raised by the last failed attempt
        session: Session that is current when the invocation finished
    """

    success: bool
    attempts: int = 0
    message: Optional[str] = None
    error: Optional[BaseException] = None
    session: Any = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def succeeded(cls, session: Any, attempts: int) -> "ConnectResult":
        return cls(success=True, attempts=attempts, session=session)

    @classmethod
    def failed(
        cls,
        message: str,
        error: Optional[BaseException] = None,
        attempts: int = 0,
        session: Any = None,
    ) -> "ConnectResult":
        return cls(success=False, attempts=attempts, message=message, error=error, session=session)

    def raise_for_error(self) -> None:
        """
        Raise if the invocation failed.

        Raises:
            ConnectionFailedError: Carrying the last attempt's message, chained
                to the original exception
        """
        if self.success:
            return
        raise ConnectionFailedError(
            self.message or "Connection failed",
            attempts=self.attempts,
            last_error=self.error,
        ) from self.error
