"""
Singleton Registry

Guarantees that each named capability is constructed at most once.

Concurrent callers asking for the same uninitialized name share a single
in-flight attempt: the first caller runs ``init_fn`` under a timeout, every
other caller suspends on the in-flight marker and re-checks the registry once
it resolves.  Failures are never cached, so a later call retries.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

from pagebuilder.config import settings
from pagebuilder.exceptions import InitializationTimeoutError

logger = logging.getLogger(__name__)

TeardownHook = Callable[[Any], Any]


async def _call(fn: Callable[[], Any]) -> Any:
    result = fn()
    if inspect.isawaitable(result):
        result = await result
    return result


class SingletonRegistry:
    """
    Owner of all constructed capabilities.

    Capabilities are shared by reference with readers and stay alive until
    ``remove`` or ``clear`` is called.
    """

    def __init__(self, init_timeout: float | None = None) -> None:
        self._instances: dict[str, Any] = {}
        self._in_flight: dict[str, asyncio.Future] = {}
        self._teardowns: dict[str, TeardownHook] = {}
        self._init_timeout = settings.plugin_init_timeout if init_timeout is None else init_timeout

    @property
    def init_timeout(self) -> float:
        return self._init_timeout

    # ── Construction ──────────────────────────────────────────────────────────

    async def get_instance(
        self,
        name: str,
        init_fn: Callable[[], Any],
        *,
        teardown: TeardownHook | None = None,
        timeout: float | None = None,
    ) -> Any:
        """
        Return the capability for ``name``, constructing it on first use.

        Args:
            name:     Capability name.
            init_fn:  Zero-argument factory, sync or async.
            teardown: Optional hook called with the capability on removal.
            timeout:  Per-call override of the registry's init timeout.

        Raises:
            InitializationTimeoutError: if ``init_fn`` exceeds the timeout.
            Exception: whatever ``init_fn`` raised.  Callers that were waiting
                on the same attempt receive the same exception object.
        """
        while True:
            if name in self._instances:
                logger.debug("%s - returning existing instance", name)
                return self._instances[name]

            pending = self._in_flight.get(name)
            if pending is None:
                break

            logger.debug("%s - waiting for in-flight initialization", name)
            await asyncio.wait([pending])
            if pending.cancelled():
                continue
            error = pending.exception()
            if error is not None:
                raise error
            # Succeeded: loop and re-check rather than trusting the result,
            # the instance may have been removed in the meantime.

        return await self._initialize(name, init_fn, teardown, timeout)

    async def _initialize(
        self,
        name: str,
        init_fn: Callable[[], Any],
        teardown: TeardownHook | None,
        timeout: float | None,
    ) -> Any:
        limit = self._init_timeout if timeout is None else timeout
        marker: asyncio.Future = asyncio.get_running_loop().create_future()
        self._in_flight[name] = marker
        logger.debug("%s - starting initialization (timeout %ss)", name, limit)

        try:
            instance = await asyncio.wait_for(_call(init_fn), timeout=limit)
        except asyncio.TimeoutError as exc:
            error = InitializationTimeoutError(name, limit)
            logger.error("%s - %s", name, error.message)
            self._settle(marker, error=error)
            raise error from exc
        except asyncio.CancelledError:
            marker.cancel()
            raise
        except Exception as exc:
            logger.error("%s - initialization failed: %s", name, exc)
            self._settle(marker, error=exc)
            raise
        else:
            if self._in_flight.get(name) is marker:
                self._instances[name] = instance
                if teardown is not None:
                    self._teardowns[name] = teardown
                logger.info("%s - instance created", name)
            else:
                logger.info("%s - removed during initialization, result not kept", name)
            self._settle(marker, result=instance)
            return instance
        finally:
            if self._in_flight.get(name) is marker:
                del self._in_flight[name]

    @staticmethod
    def _settle(marker: asyncio.Future, result: Any = None, error: BaseException | None = None) -> None:
        if marker.done():
            return
        if error is not None:
            marker.set_exception(error)
            # Mark as retrieved, waiters re-raise it themselves.
            marker.exception()
        else:
            marker.set_result(result)

    # ── Lookup ────────────────────────────────────────────────────────────────

    def has(self, name: str) -> bool:
        """Return True if a capability has been constructed for ``name``."""
        return name in self._instances

    def peek(self, name: str) -> Any | None:
        """Return the existing capability without initializing it."""
        return self._instances.get(name)

    def is_initializing(self, name: str) -> bool:
        return name in self._in_flight

    def status(self) -> dict[str, Any]:
        return {
            "instances": list(self._instances),
            "initializing": list(self._in_flight),
            "total": len(self._instances),
        }

    # ── Removal ───────────────────────────────────────────────────────────────

    async def remove(self, name: str) -> None:
        """
        Tear down and forget the capability for ``name``.

        Teardown errors are logged, never raised.  An attempt still in
        flight keeps running but its result is not stored.
        """
        instance = self._instances.pop(name, None)
        teardown = self._teardowns.pop(name, None)
        self._in_flight.pop(name, None)

        if instance is not None and teardown is not None:
            try:
                await _call(lambda: teardown(instance))
            except Exception as exc:
                logger.warning("Error during %s cleanup: %s", name, exc)
        logger.info("%s - instance removed", name)

    async def clear(self) -> None:
        """Tear down every capability, most recently created first."""
        for name in reversed(list(self._instances)):
            await self.remove(name)
        self._in_flight.clear()
