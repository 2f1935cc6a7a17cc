"""Polling driver.

This module provides the PollDriver class, which owns the ticker that
runs a sync cycle on a fixed interval or on demand.
"""

from collections.abc import Callable
from threading import Event
from typing import Any

from vault_secret_sync import console
from vault_secret_sync.core.synchronizer import SecretSynchronizer
from vault_secret_sync.exceptions import ClusterConnectionError, UnknownSyncError
from vault_secret_sync.models import SyncReport


def _unexpected(stage: str, err: Exception) -> UnknownSyncError:
    wrapped = UnknownSyncError(f"Unexpected error during {stage}: {err!r}")
    wrapped.__cause__ = err
    return wrapped


class PollDriver:
    """Runs sync cycles until stopped.

    A failing tick is logged and the next one runs as scheduled; only
    ``stop`` ends the loop.

    Attributes:
        synchronizer: The synchronizer invoked on every tick.
        interval: Seconds between the end of one cycle and the next.
        provisioner: Optional callable run before every cycle to create
            secrets declared by workloads.

    """

    def __init__(
        self,
        synchronizer: SecretSynchronizer,
        *,
        interval: float,
        provisioner: Callable[[], Any] | None = None,
    ) -> None:
        self.synchronizer = synchronizer
        self.interval = interval
        self.provisioner = provisioner
        self._stop = Event()
        self._wake = Event()

    @property
    def stopped(self) -> bool:
        """Whether a stop has been requested."""
        return self._stop.is_set()

    def run_once(self) -> SyncReport | None:
        """Run provisioning and one sync cycle.

        Returns:
            The cycle report, or None if the cycle could not run.

        """
        if self.provisioner is not None:
            try:
                self.provisioner()
            except ClusterConnectionError as e:
                console.error(f"Secret provisioning skipped: {e}")
            except Exception as e:
                console.error(f"Secret provisioning skipped: {_unexpected('provisioning', e)}")

        try:
            return self.synchronizer.synchronize(stop_event=self._stop)
        except ClusterConnectionError as e:
            console.error(f"Sync cycle aborted: {e}")
        except Exception as e:
            console.error(f"Sync cycle aborted: {_unexpected('sync cycle', e)}")
        return None

    def run(self) -> None:
        """Run cycles until ``stop`` is called."""
        console.info(f"Polling vault every {console.highlight(f'{self.interval:g}s')}")
        while not self._stop.is_set():
            self.run_once()
            self._wake.wait(self.interval)
            self._wake.clear()
        console.info("Poll driver stopped")

    def trigger(self) -> None:
        """Start the next cycle now instead of waiting for the interval."""
        self._wake.set()

    def stop(self) -> None:
        """Stop after the current cycle; secrets not yet started are skipped."""
        self._stop.set()
        self._wake.set()
