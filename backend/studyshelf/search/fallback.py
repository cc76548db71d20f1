"""
Ordered fallback strategies.

A StrategyChain tries its strategies in order and returns the first success.
Search uses it for ranked search -> plain search, trending searches for
query log -> defaults.
"""

import asyncio
from typing import Any, Awaitable, Callable, Generic, List, Optional, Tuple, TypeVar, Union
from dataclasses import dataclass
import logging

from .errors import FallbackExhausted

logger = logging.getLogger('search')

T = TypeVar('T')

StrategyFn = Callable[[], Union[T, Awaitable[T]]]


@dataclass
class StrategyResult(Generic[T]):
    """Outcome of one strategy attempt."""
    name: str
    success: bool
    value: Optional[T] = None
    error: Optional[BaseException] = None


class StrategyChain(Generic[T]):
    """First-success chain over named strategies (sync or async callables)."""

    def __init__(self, name: str, strategies: List[Tuple[str, StrategyFn]]):
        if not strategies:
            raise ValueError("StrategyChain needs at least one strategy")
        self.name = name
        self.strategies = strategies

    async def run(self) -> StrategyResult[T]:
        """
        Run strategies until one succeeds.

        Returns:
            The successful StrategyResult

        Raises:
            FallbackExhausted: If every strategy raised
        """
        last: Optional[StrategyResult[T]] = None

        for strategy_name, strategy in self.strategies:
            last = await self._attempt(strategy_name, strategy)
            if last.success:
                return last

            logger.warning(f"{self.name}: strategy '{strategy_name}' failed: {last.error}")

        raise FallbackExhausted(
            f"{self.name}: all {len(self.strategies)} strategies failed",
            last_error=last.error if last else None
        ) from (last.error if last else None)

    @staticmethod
    async def _attempt(strategy_name: str, strategy: StrategyFn) -> StrategyResult[T]:
        try:
            value: Any = strategy()
            if asyncio.iscoroutine(value) or isinstance(value, asyncio.Future):
                value = await value
        except Exception as e:
            return StrategyResult(name=strategy_name, success=False, error=e)
        return StrategyResult(name=strategy_name, success=True, value=value)
