# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Dual-Path Failover

Single responsibility: Retry the fast transport with backoff, then fall back
to the message transport

The control flow is an explicit state machine:

    ATTEMPT --ok--> DONE
    ATTEMPT --retryable, attempts left--> BACKOFF --> ATTEMPT
    ATTEMPT --not retryable or exhausted--> FALLBACK
    FALLBACK --ok--> DONE
    FALLBACK --error--> FAILED (raises the first fast-path error)
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from skills_registry.core.errors import RequestTimeoutError, SkillsError
from skills_registry.core.logging import log_event

from .transports import RegistryTransport

logger = logging.getLogger(__name__)


@dataclass
class FailoverConfig:
    """Fast-path retry settings"""
    max_attempts: int = 3
    backoff_delays: Tuple[float, ...] = (0.1, 0.2, 0.4)
    attempt_timeout: float = 5.0
    fallback_timeout: float = 30.0

    def delay_after(self, attempt: int) -> float:
        """Backoff before the next attempt, attempt counted from 1."""
        if not self.backoff_delays:
            return 0.0
        index = min(attempt - 1, len(self.backoff_delays) - 1)
        return self.backoff_delays[index]


class FailoverState(Enum):
    ATTEMPT = "attempt"
    BACKOFF = "backoff"
    FALLBACK = "fallback"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ExecutionTrace:
    """What happened during one logical query"""
    operation: str
    states: List[FailoverState] = field(default_factory=list)
    attempts: int = 0
    delays: List[float] = field(default_factory=list)
    served_by: Optional[str] = None
    fast_path_error: Optional[SkillsError] = None
    fallback_error: Optional[Exception] = None


class DualPathExecutor:
    """
    Runs logical queries over a fast transport with a fallback.

    Features:
    - Bounded attempts with per-attempt timeout and fixed backoff schedule
    - Retry only when the classified error is retryable
    - Fallback transport on fast-path failure
    - Original fast-path error preserved on double failure
    """

    def __init__(
        self,
        fast: RegistryTransport,
        fallback: RegistryTransport,
        config: Optional[FailoverConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        """
        Initialize executor.

        Args:
            fast: Preferred transport
            fallback: Transport used when the fast path fails
            config: Retry settings
            sleep: Awaitable delay (replaceable in tests)
        """
        self.fast = fast
        self.fallback = fallback
        self.config = config or FailoverConfig()
        self._sleep = sleep
        self.last_trace: Optional[ExecutionTrace] = None

        logger.info(
            f"Dual-path client initialized - fast={fast.name}, fallback={fallback.name}, "
            f"max_attempts={self.config.max_attempts}, "
            f"attempt_timeout={self.config.attempt_timeout}s"
        )

    async def _attempt(self, transport: RegistryTransport, timeout: float, operation: str, params) -> Any:
        try:
            return await asyncio.wait_for(transport.query(operation, params), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise RequestTimeoutError(
                f"{transport.name} {operation} exceeded {timeout}s",
                timeout=timeout,
                transport=transport.name
            ) from e

    async def execute(self, operation: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Execute one logical query.

        Args:
            operation: Logical operation name (see transports.OPERATIONS)
            params: Operation parameters

        Returns:
            Handler payload from whichever transport succeeded

        Raises:
            SkillsError: The first fast-path error when both paths fail
        """
        trace = ExecutionTrace(operation=operation)
        self.last_trace = trace
        state = FailoverState.ATTEMPT
        result: Any = None

        while state not in (FailoverState.DONE, FailoverState.FAILED):
            trace.states.append(state)

            if state is FailoverState.ATTEMPT:
                trace.attempts += 1
                try:
                    result = await self._attempt(self.fast, self.config.attempt_timeout, operation, params)
                    trace.served_by = self.fast.name
                    state = FailoverState.DONE
                except SkillsError as e:
                    if trace.fast_path_error is None:
                        trace.fast_path_error = e
                    if e.is_retryable() and trace.attempts < self.config.max_attempts:
                        logger.warning(
                            f"{operation} attempt {trace.attempts}/{self.config.max_attempts} "
                            f"on {self.fast.name} failed: {e.message}"
                        )
                        state = FailoverState.BACKOFF
                    else:
                        logger.warning(
                            f"{operation} fast path gave up after {trace.attempts} attempt(s): "
                            f"{type(e).__name__}: {e.message}"
                        )
                        state = FailoverState.FALLBACK

            elif state is FailoverState.BACKOFF:
                delay = self.config.delay_after(trace.attempts)
                trace.delays.append(delay)
                await self._sleep(delay)
                state = FailoverState.ATTEMPT

            elif state is FailoverState.FALLBACK:
                try:
                    result = await self._attempt(self.fallback, self.config.fallback_timeout, operation, params)
                    trace.served_by = self.fallback.name
                    log_event(
                        logger,
                        "fallback_used",
                        level="WARNING",
                        operation=operation,
                        transport=self.fallback.name,
                        fast_path_attempts=trace.attempts,
                        fast_path_error=trace.fast_path_error.message,
                    )
                    state = FailoverState.DONE
                except Exception as e:
                    message = e.message if isinstance(e, SkillsError) else str(e)
                    trace.fallback_error = e
                    logger.error(f"{operation} failed on both transports; fallback error: {message}")
                    state = FailoverState.FAILED

        trace.states.append(state)
        if state is FailoverState.FAILED:
            raise trace.fast_path_error
        return result
