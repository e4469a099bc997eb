import logging
import time
from typing import Callable, TypeVar

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_never,
    wait_exponential,
    wait_fixed,
)

from helpers.constants import DEFAULT_RECONNECT_SECONDS

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ReconnectPolicy:
    """How we re-dial the feed after the connection drops

    The default reconnects forever with a fixed delay. Pass max_attempts to
    give up (the last error is re-raised), backoff=True to double the delay
    on each failure up to max_delay_seconds, and sleep to avoid real waits
    in tests."""

    def __init__(
        self,
        delay_seconds: float = DEFAULT_RECONNECT_SECONDS,
        max_attempts: int | None = None,
        backoff: bool = False,
        max_delay_seconds: float = 60,
        sleep: Callable[[float], None] = time.sleep,
        retry_on: tuple[type[BaseException], ...] = (Exception,),
    ):
        if delay_seconds < 0:
            raise ValueError(f"Delay must not be negative: {delay_seconds}")
        if max_attempts is not None and max_attempts < 1:
            raise ValueError(f"Need at least one attempt: {max_attempts}")
        self.delay_seconds = delay_seconds
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.max_delay_seconds = max_delay_seconds
        self._sleep = sleep
        self._retry_on = retry_on

    def run(self, fn: Callable[[], T]) -> T:
        """Calls fn until it returns, re-calling it after each failure"""
        return self._retrying()(fn)

    def _retrying(self) -> Retrying:
        wait = (
            wait_exponential(
                multiplier=self.delay_seconds,
                min=self.delay_seconds,
                max=self.max_delay_seconds,
            )
            if self.backoff
            else wait_fixed(self.delay_seconds)
        )
        stop = (
            stop_never
            if self.max_attempts is None
            else stop_after_attempt(self.max_attempts)
        )
        return Retrying(
            wait=wait,
            stop=stop,
            retry=retry_if_exception_type(self._retry_on),
            sleep=self._sleep,
            before_sleep=_log_reconnect,
            reraise=True,
        )


def _log_reconnect(retry_state: RetryCallState):
    error = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(
        "Disconnected (attempt %s): %s. Reconnecting in %s seconds...",
        retry_state.attempt_number,
        error,
        delay,
    )
