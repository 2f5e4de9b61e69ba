# modems/vara/notifier.py
"""
Hand-off of connection-state transitions to blocked callers.

Every dial/accept/close call subscribes and receives a one-shot Future keyed
by a generation number. Each transition published by the command reader
completes exactly one subscription, oldest first. A transition nobody waits
for is kept (latest only) and completes the next subscription immediately,
so 'listen' followed by an early CONNECTED still lets 'accept' return.
"""

import itertools
import threading
from collections import OrderedDict
from concurrent.futures import Future, TimeoutError as FutureTimeout
from typing import Optional

from modem_interface import ConnectionState


class Subscription:
    def __init__(self, notifier: "StateNotifier", generation: int, future: Future):
        self._notifier = notifier
        self.generation = generation
        self.future = future

    def wait(self, timeout: Optional[float] = None) -> Optional[ConnectionState]:
        """Block for the transition; None if the timeout elapsed first."""
        try:
            return self.future.result(timeout=timeout)
        except FutureTimeout:
            if self._notifier.cancel(self.generation):
                return None
            # Published between the timeout and the cancel.
            return self.future.result()

    def cancel(self) -> bool:
        return self._notifier.cancel(self.generation)


class StateNotifier:
    def __init__(self):
        self._lock = threading.Lock()
        self._generations = itertools.count(1)
        self._waiters: "OrderedDict[int, Future]" = OrderedDict()
        self._unclaimed: Optional[ConnectionState] = None

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._waiters)

    @property
    def unclaimed(self) -> Optional[ConnectionState]:
        with self._lock:
            return self._unclaimed

    def subscribe(self) -> Subscription:
        fut: Future = Future()
        with self._lock:
            gen = next(self._generations)
            if self._unclaimed is not None:
                fut.set_result(self._unclaimed)
                self._unclaimed = None
            else:
                self._waiters[gen] = fut
        return Subscription(self, gen, fut)

    def publish(self, state: ConnectionState) -> None:
        with self._lock:
            if self._waiters:
                _, fut = self._waiters.popitem(last=False)
                fut.set_result(state)
            else:
                self._unclaimed = state

    def cancel(self, generation: int) -> bool:
        """Drop a waiting subscription. False if it was already completed."""
        with self._lock:
            return self._waiters.pop(generation, None) is not None

    def discard(self) -> None:
        """Forget a transition nobody claimed (stale from a previous cycle)."""
        with self._lock:
            self._unclaimed = None

    def wait(self, timeout: Optional[float] = None) -> Optional[ConnectionState]:
        return self.subscribe().wait(timeout)
