"""Signal handling that turns SIGINT/SIGTERM into batch cancellation.

A long aggregate run under SLURM receives SIGUSR1 (preemption warning) or
SIGTERM (timeout); interactively it receives SIGINT. Each maps onto a
``CancellationToken`` so ``run_batches`` stops issuing work and the pool is
torn down cleanly.
"""

import logging
import signal
from typing import Callable, Dict, Iterable, Optional

from .executors import CancellationToken


__all__ = ["CancelOnSignal", "default_signals"]


logger = logging.getLogger(__name__)


def default_signals() -> set:
    """SIGINT and SIGTERM, plus SIGUSR1 where the platform has it."""
    signals = {signal.SIGINT, signal.SIGTERM}
    if hasattr(signal, "SIGUSR1"):
        signals.add(signal.SIGUSR1)
    return signals


class CancelOnSignal:
    """Cancel a token when one of ``signals`` arrives.

    The token is cancelled exactly once; later signals are logged and
    ignored. Previous handlers are restored by ``uninstall`` (or on leaving
    the ``with`` block).

    Example:
        >>> token = CancellationToken()
        >>> with CancelOnSignal(token):
        ...     value = aggregate(100_000, 64, rng=0, cancel=token)  # doctest: +SKIP
    """

    def __init__(
        self,
        token: CancellationToken,
        signals: Optional[Iterable[int]] = None,
        on_cancel: Optional[Callable[[int], None]] = None,
    ):
        """Nothing is installed until ``install`` or ``with``.

        Args:
            token: Token cancelled by the first matching signal
            signals: Signals that trigger cancellation (default: ``default_signals()``)
            on_cancel: Optional callback receiving the signal number
        """
        self.token = token
        self.signals = set(signals) if signals is not None else default_signals()
        self.on_cancel = on_cancel
        self.received_signal: Optional[int] = None
        self._previous: Dict[int, object] = {}

    @property
    def should_stop(self) -> bool:
        return self.token.cancelled

    def install(self) -> "CancelOnSignal":
        for sig in self.signals:
            self._previous[sig] = signal.getsignal(sig)
            signal.signal(sig, self.handle)
            logger.debug(f"Installed signal handler for {sig}")
        return self

    def uninstall(self) -> None:
        for sig, previous in self._previous.items():
            signal.signal(sig, previous)
        self._previous.clear()

    def handle(self, signum: int, frame) -> None:
        """Handle received signal.

        Called by the signal module; can also be invoked directly for testing.
        """
        if self.received_signal is not None:
            logger.debug(f"Signal {signum} received but cancellation already triggered")
            return

        self.received_signal = signum
        logger.warning(f"Received signal {signum}, cancelling outstanding batches")
        self.token.cancel(f"signal {signum}")

        if self.on_cancel is not None:
            try:
                self.on_cancel(signum)
            except Exception as e:
                logger.error(f"Cancel callback failed: {e}", exc_info=True)

    def __enter__(self) -> "CancelOnSignal":
        return self.install()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.uninstall()
