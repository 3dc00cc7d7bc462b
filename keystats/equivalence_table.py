#!/usr/bin/env python3
"""
Equivalence table for keystroke travel cost.

Maps two-character pair codes (lowercase letters or ';', Space written as
'_') to an empirical travel cost. The table is loaded once, asynchronously,
from a list of alternate sources (local JSON/CSV files or HTTP URLs). A
failed load leaves the table empty and unavailable; it never raises to the
caller.
"""

import asyncio
import logging
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import aiohttp

from .data_utils import load_equivalence_file, parse_equivalence_payload, validate_data_consistency
from .errors import ResourceUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 0.5
DEFAULT_REQUEST_TIMEOUT = 5.0
DEFAULT_OVERALL_TIMEOUT = 15.0

LoadListener = Callable[['EquivalenceTable'], None]


def is_url(source: str) -> bool:
    return source.startswith(('http://', 'https://'))


class EquivalenceTable:
    """
    Immutable, asynchronously loaded mapping from pair code to cost.

    Subscribers are notified once when a load succeeds.
    """

    def __init__(self,
                 sources: Optional[Sequence[str]] = None,
                 max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                 retry_delay: float = DEFAULT_RETRY_DELAY,
                 request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
                 overall_timeout: float = DEFAULT_OVERALL_TIMEOUT):
        """
        Initialize an empty, unloaded table.

        Args:
            sources: Ordered alternate sources (file paths or URLs)
            max_attempts: Rounds through all sources before giving up
            retry_delay: Seconds to wait between rounds
            request_timeout: Seconds allowed for a single URL request
            overall_timeout: Seconds allowed for the whole load
        """
        self.sources: List[str] = [str(s) for s in (sources or [])]
        self.max_attempts = max(1, int(max_attempts))
        self.retry_delay = max(0.0, float(retry_delay))
        self.request_timeout = float(request_timeout)
        self.overall_timeout = float(overall_timeout)

        self._table: Mapping[str, float] = MappingProxyType({})
        self._loaded = False
        self._failed = False
        self._source_used: Optional[str] = None
        self._listeners: List[LoadListener] = []
        self._lock: Optional[asyncio.Lock] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, float]) -> 'EquivalenceTable':
        """Create a table that is already loaded from an in-memory mapping."""
        table = cls()
        table._set_table(dict(data), source='<memory>')
        return table

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'EquivalenceTable':
        """Create an unloaded table from the 'equivalence_table' config section."""
        return cls(
            sources=config.get('sources', []),
            max_attempts=config.get('max_attempts', DEFAULT_MAX_ATTEMPTS),
            retry_delay=config.get('retry_delay', DEFAULT_RETRY_DELAY),
            request_timeout=config.get('request_timeout', DEFAULT_REQUEST_TIMEOUT),
            overall_timeout=config.get('overall_timeout', DEFAULT_OVERALL_TIMEOUT),
        )

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def failed(self) -> bool:
        """True once a load has exhausted every source and retry."""
        return self._failed

    @property
    def source_used(self) -> Optional[str]:
        return self._source_used

    def __len__(self) -> int:
        return len(self._table)

    def __contains__(self, pair_code: object) -> bool:
        return pair_code in self._table

    def lookup(self, pair_code: str) -> Optional[float]:
        """Return the cost for a two-character pair code, or None if not defined."""
        return self._table.get(pair_code)

    def as_dict(self) -> Dict[str, float]:
        return dict(self._table)

    def subscribe(self, callback: LoadListener) -> None:
        if callback not in self._listeners:
            self._listeners.append(callback)

    def unsubscribe(self, callback: LoadListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    async def load(self) -> bool:
        """
        Load the table from the configured sources.

        Each round tries every source in order; rounds are repeated up to
        max_attempts times, the whole load bounded by overall_timeout.

        Returns:
            True if the table is loaded, False if every attempt failed
        """
        if self._loaded:
            return True

        if self._lock is None:
            self._lock = asyncio.Lock()

        async with self._lock:
            if self._loaded:
                return True

            if not self.sources:
                logger.warning("No equivalence table sources configured; equivalent metrics unavailable")
                self._failed = True
                return False

            try:
                data, source = await asyncio.wait_for(self._load_with_retries(), self.overall_timeout)
            except asyncio.TimeoutError:
                logger.warning("Equivalence table load timed out after %.1fs", self.overall_timeout)
                self._failed = True
                return False
            except ResourceUnavailableError as e:
                logger.warning("Equivalence table unavailable: %s", e)
                self._failed = True
                return False

            self._set_table(data, source)

        for issue in validate_data_consistency(self.as_dict(), source):
            logger.warning("Equivalence table: %s", issue)

        logger.info("Loaded equivalence table from %s (%d key pairs)", source, len(self._table))
        self._notify_loaded()
        return True

    async def _load_with_retries(self):
        errors = []

        for attempt in range(1, self.max_attempts + 1):
            for source in self.sources:
                try:
                    data = await self._fetch_source(source)
                    return data, source
                except ResourceUnavailableError as e:
                    logger.debug("Attempt %d: %s", attempt, e)
                    errors.append(str(e))

            if attempt < self.max_attempts and self.retry_delay > 0:
                await asyncio.sleep(self.retry_delay)

        raise ResourceUnavailableError(
            f"all {len(self.sources)} source(s) failed after {self.max_attempts} attempt(s); "
            f"last error: {errors[-1] if errors else 'unknown'}"
        )

    async def _fetch_source(self, source: str) -> Dict[str, float]:
        """
        Fetch and parse one source.

        Raises:
            ResourceUnavailableError: If the source cannot be fetched or parsed
        """
        if is_url(source):
            return await self._fetch_url(source)

        try:
            return await asyncio.to_thread(load_equivalence_file, source)
        except (OSError, ValueError) as e:
            raise ResourceUnavailableError(f"{source}: {e}") from e

    async def _fetch_url(self, url: str) -> Dict[str, float]:
        timeout_obj = aiohttp.ClientTimeout(total=self.request_timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout_obj) as session:
                async with session.get(url) as response:
                    response.raise_for_status()
                    payload = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise ResourceUnavailableError(f"{url}: {e}") from e

        try:
            return parse_equivalence_payload(payload, url)
        except ValueError as e:
            raise ResourceUnavailableError(str(e)) from e

    def _set_table(self, data: Dict[str, float], source: str) -> None:
        self._table = MappingProxyType(dict(data))
        self._loaded = True
        self._failed = False
        self._source_used = source

    def _notify_loaded(self) -> None:
        for callback in list(self._listeners):
            try:
                callback(self)
            except Exception:
                logger.exception("Equivalence table listener failed")

    def describe(self) -> Dict[str, Any]:
        """Summary of the table state for diagnostics."""
        return {
            'loaded': self._loaded,
            'failed': self._failed,
            'pairs': len(self._table),
            'source': self._source_used,
            'sources_configured': list(self.sources),
        }
