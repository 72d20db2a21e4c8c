"""
Resilient Loader

Per-source load state machine with exponential backoff:

    IDLE -> LOADING -> SUCCESS
                    -> FAILED -> (backoff) -> LOADING ...

Every failure is classified (network / format / empty), stored as a
human-readable message and counted. While the failure count before this
attempt is below the cap, another attempt is scheduled after
base_delay * 2**count. Past the cap the source stays FAILED until retry()
resets the counter.

Each run() starts a new attempt generation. An older run that wakes up
after a newer one started drops its result, so the last caller wins.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from district_atlas.config import MAX_RETRY_ATTEMPTS, RETRY_BASE_DELAY
from district_atlas.errors import ErrorKind, classify_error, describe_failure

logger = logging.getLogger(__name__)

T = TypeVar("T")

Fetch = Callable[[], Awaitable[T]]
Sleep = Callable[[float], Awaitable[None]]


class LoadPhase(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class LoadState:
    """Loading status for one data source"""
    phase: LoadPhase = LoadPhase.IDLE
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    retry_count: int = 0

    @property
    def loading(self) -> bool:
        return self.phase == LoadPhase.LOADING

    @property
    def succeeded(self) -> bool:
        return self.phase == LoadPhase.SUCCESS


class ResilientLoader(Generic[T]):
    """
    Fetch one source with classified errors and capped exponential backoff.

    Usage:
        loader = ResilientLoader("sites", "Head Start programs", fetch_sites)
        sites = await loader.run()   # None when the source ended up FAILED
    """

    def __init__(
        self,
        name: str,
        label: str,
        fetch: Fetch,
        max_retries: int = MAX_RETRY_ATTEMPTS,
        base_delay: float = RETRY_BASE_DELAY,
        sleep: Sleep = asyncio.sleep,
        on_success: Optional[Callable[[T], Awaitable[None]]] = None,
    ):
        """
        Args:
            name: Source key (sites, zones, enrichment)
            label: Human-readable source name used in error messages
            fetch: Coroutine function producing the loaded value or raising
            max_retries: Automatic re-attempts before giving up
            base_delay: Backoff base in seconds
            sleep: Awaitable delay, injectable for fake clocks in tests
            on_success: Completion handler awaited with each successful result
        """
        self.name = name
        self.label = label
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.state = LoadState()
        self._fetch = fetch
        self._sleep = sleep
        self._on_success = on_success
        self._generation = 0

    def backoff_delay(self, failures_before: int) -> float:
        return self.base_delay * (2 ** failures_before)

    async def run(self) -> Optional[T]:
        """
        Load until success or until the retry cap is exhausted.

        Returns the loaded value, or None if the source is FAILED or this
        run was superseded by a newer one.
        """
        self._generation += 1
        generation = self._generation

        while True:
            failures_before = self.state.retry_count
            ok, result = await self._attempt(generation)
            if generation != self._generation:
                return None
            if ok:
                return result

            if failures_before >= self.max_retries:
                logger.error(
                    f"Giving up on {self.label} after {self.state.retry_count} failed attempts"
                )
                return None

            delay = self.backoff_delay(failures_before)
            logger.info(
                f"Retrying {self.label} load (attempt {failures_before + 1}/{self.max_retries}) "
                f"in {delay:.1f}s..."
            )
            await self._sleep(delay)
            if generation != self._generation:
                logger.debug(f"{self.label} backoff superseded by a newer load")
                return None

    async def _attempt(self, generation: int):
        self.state.phase = LoadPhase.LOADING
        self.state.error = None
        self.state.error_kind = None

        try:
            result = await self._fetch()
        except Exception as e:
            if generation != self._generation:
                return False, None
            kind = classify_error(e)
            logger.error(f"Error loading {self.label}: {e}")
            self.state.phase = LoadPhase.FAILED
            self.state.error = describe_failure(kind, self.label, e)
            self.state.error_kind = kind
            self.state.retry_count += 1
            return False, None

        if generation != self._generation:
            return False, None

        self.state.phase = LoadPhase.SUCCESS
        self.state.retry_count = 0
        if self._on_success is not None:
            await self._on_success(result)
        return True, result

    async def retry(self) -> Optional[T]:
        """Clear error state and load again immediately, ignoring backoff."""
        self.reset()
        return await self.run()

    def reset(self):
        self.state.retry_count = 0
        self.state.error = None
        self.state.error_kind = None
        if self.state.phase == LoadPhase.FAILED:
            self.state.phase = LoadPhase.IDLE
