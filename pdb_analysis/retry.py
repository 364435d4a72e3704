"""
Retry state machine for transient upstream failures.

A single call moves through ``ATTEMPTING -> (BACKOFF -> ATTEMPTING)* ->
SUCCEEDED | EXHAUSTED``. The machine owns the attempt counter and the
backoff schedule; the controller drives it and performs the waits through
an injectable sleep coroutine so timing can be tested without real delays.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional, TypeVar

from .config import RetryConfig
from .errors import ErrorAction, ErrorHandler, create_error_context

T = TypeVar('T')

SleepFunc = Callable[[float], Awaitable[None]]

logger = logging.getLogger(__name__)


class RetryState(Enum):
    """States of a single retried call."""
    ATTEMPTING = "attempting"
    BACKOFF = "backoff"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


class RetryStateMachine:
    """
    Attempt counter and backoff schedule for one call.

    Never shared between calls.
    """

    def __init__(self, config: RetryConfig):
        self.config = config
        self.state = RetryState.ATTEMPTING
        self.attempt = 0
        self.delays: List[float] = []

    def calculate_delay(self, attempt: int) -> float:
        """
        Backoff before the attempt following failed attempt ``attempt``.

        Args:
            attempt: Number of failed attempts so far (1-based)

        Returns:
            Delay in seconds
        """
        return self.config.initial_delay * (self.config.backoff_multiplier ** (attempt - 1))

    def record_success(self) -> None:
        if self.state is not RetryState.ATTEMPTING:
            raise RuntimeError(f"Cannot succeed from state {self.state.value}")
        self.state = RetryState.SUCCEEDED

    def record_failure(self) -> Optional[float]:
        """
        Register a failed attempt.

        Returns:
            The backoff delay if another attempt is allowed, otherwise None
        """
        if self.state is not RetryState.ATTEMPTING:
            raise RuntimeError(f"Cannot fail from state {self.state.value}")
        self.attempt += 1
        if self.attempt >= self.config.max_attempts:
            self.state = RetryState.EXHAUSTED
            return None
        delay = self.calculate_delay(self.attempt)
        self.delays.append(delay)
        self.state = RetryState.BACKOFF
        return delay

    def resume(self) -> None:
        """Leave backoff and start the next attempt."""
        if self.state is not RetryState.BACKOFF:
            raise RuntimeError(f"Cannot resume from state {self.state.value}")
        self.state = RetryState.ATTEMPTING

    @property
    def finished(self) -> bool:
        return self.state in (RetryState.SUCCEEDED, RetryState.EXHAUSTED)


class RetryController:
    """
    Drives a RetryStateMachine around an async operation.

    Only errors classified with ``ErrorAction.RETRY`` are retried; anything
    else is re-raised immediately.
    """

    def __init__(self, config: RetryConfig, sleep: Optional[SleepFunc] = None):
        """
        Initialize retry controller with configuration.

        Args:
            config: RetryConfig instance with retry parameters
            sleep: Coroutine used for backoff waits, asyncio.sleep by default
        """
        self.config = config
        self.sleep = sleep or asyncio.sleep
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def new_state_machine(self) -> RetryStateMachine:
        return RetryStateMachine(self.config)

    def log_retry_attempt(self, service: str, operation: str, attempt: int, error: Exception, delay: float) -> None:
        self.logger.warning(
            "Attempt %d/%d of %s on %s failed, retrying in %.0fms",
            attempt,
            self.config.max_attempts,
            operation,
            service,
            delay * 1000,
            extra={
                "service": service,
                "operation": operation,
                "attempt_number": attempt,
                "max_attempts": self.config.max_attempts,
                "delay_seconds": delay,
                "error_type": type(error).__name__,
                "error_message": str(error)
            }
        )

    def log_final_failure(self, service: str, operation: str, error: Exception) -> None:
        self.logger.error(
            "Final failure for %s on %s after %d attempts",
            operation,
            service,
            self.config.max_attempts,
            extra={
                "service": service,
                "operation": operation,
                "max_attempts": self.config.max_attempts,
                "error_type": type(error).__name__,
                "error_message": str(error),
                "final_failure": True
            }
        )

    async def execute_with_retry_async(
        self,
        operation: Callable[[], Awaitable[T]],
        service: str,
        operation_name: str,
        error_handler: Optional[ErrorHandler] = None,
        machine: Optional[RetryStateMachine] = None
    ) -> T:
        """
        Execute operation with retry logic.

        Args:
            operation: Zero-argument coroutine function performing one attempt
            service: Name of the upstream service being accessed
            operation_name: Description of the operation for logging
            error_handler: Optional error handler for classification
            machine: State machine to drive, a fresh one if not provided

        Returns:
            Result of the first successful attempt

        Raises:
            Exception: The last exception once attempts are exhausted, or the
                first non-retryable exception
        """
        handler = error_handler or ErrorHandler()
        machine = machine or self.new_state_machine()

        while True:
            try:
                result = await operation()
            except Exception as e:
                context = create_error_context(
                    operation=operation_name,
                    service=service,
                    attempt=machine.attempt + 1,
                    max_attempts=self.config.max_attempts
                )
                error_info = handler.classify_error(e, context)

                if error_info.action is not ErrorAction.RETRY:
                    self.logger.info(
                        "Error classified as non-retryable for %s on %s",
                        operation_name,
                        service,
                        extra={
                            "service": service,
                            "operation": operation_name,
                            "error_category": error_info.category.value,
                            "recommended_action": error_info.action.value,
                            "attempt": machine.attempt + 1
                        }
                    )
                    raise

                delay = machine.record_failure()
                if delay is None:
                    self.log_final_failure(service, operation_name, e)
                    raise

                self.log_retry_attempt(service, operation_name, machine.attempt, e, delay)
                await self.sleep(delay)
                machine.resume()
            else:
                machine.record_success()
                return result
