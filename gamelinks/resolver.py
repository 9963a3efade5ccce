"""
Concurrent resolution of games to store links.

Each game gets its own thread. Dispatch is paced by a fixed delay, and the
search/disambiguation phase is gated by a fixed pool of reusable slots, which
caps how many searches hit the store at once.

Per game:
1. Probe the page URL guessed from the name.
2. On a miss, take a slot and search the catalog for the exact name.
3. Without an exact hit, search again with the shortened name and let the
   operator choose.
"""

import queue
import threading
import time
from collections import Counter
from contextlib import contextmanager
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from .disambiguation import Disambiguator, SelectionError
from .logger import LogChannel
from .models import FAILED, Entity, Resolution, Slot
from .scrapers.common import FetchError
from .scrapers.store import SearchError, StoreClient
from .storage import HtmlWriter


class SlotPool:
    """Fixed set of reusable slots handed out one holder at a time."""

    def __init__(self, size: int = 5):
        if size < 1:
            raise ValueError("pool size must be at least 1")
        self.size = size
        self._slots: "queue.Queue[Slot]" = queue.Queue(maxsize=size)
        for i in range(size):
            self._slots.put(Slot(index=i))
        self._lock = threading.Lock()
        self.in_use = 0
        self.peak = 0

    @contextmanager
    def acquire(self) -> Iterator[Slot]:
        """Block until a slot is free; the slot is cleared and always returned."""
        slot = self._slots.get()
        with self._lock:
            self.in_use += 1
            self.peak = max(self.peak, self.in_use)
        try:
            slot.clear()
            yield slot
        finally:
            with self._lock:
                self.in_use -= 1
            self._slots.put_nowait(slot)

    @property
    def available(self) -> int:
        return self._slots.qsize()


class ResolverPool:
    def __init__(
        self,
        store: StoreClient,
        disambiguator: Disambiguator,
        writer: HtmlWriter,
        log: LogChannel,
        workers: int = 5,
        dispatch_delay: float = 0.3,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.disambiguator = disambiguator
        self.writer = writer
        self.log = log
        self.slots = SlotPool(workers)
        self.dispatch_delay = dispatch_delay
        self._sleep = sleep
        self._outcomes: Counter = Counter()
        self._outcomes_lock = threading.Lock()

    def run(self, entities: Iterable[Entity]) -> Dict[str, int]:
        """Resolve every game, then drain the log channel.

        Returns the number of games per final status.
        """
        self.log.start()
        threads: List[threading.Thread] = []
        try:
            for i, entity in enumerate(entities):
                if i:
                    self._sleep(self.dispatch_delay)
                t = threading.Thread(target=self.resolve_entity, args=(entity,), name=f"resolve-{i}")
                t.start()
                threads.append(t)
        finally:
            for t in threads:
                t.join()
            self.log.info(f"Resolved {len(threads)} game(s)", **dict(self._outcomes))
            self.log.close()
        return dict(self._outcomes)

    def resolve_entity(self, entity: Entity) -> Resolution:
        """Resolve one game and write its block; never raises."""
        try:
            resolution = self._resolve(entity)
        except Exception as e:
            self.log.record("error", type(e).__name__)
            resolution = Resolution.failed(f"{entity.name}: {e}")

        if resolution.writes_output:
            try:
                self.writer.write(entity, resolution)
            except (OSError, ValueError) as e:
                self.log.record("error", type(e).__name__)
                resolution = Resolution.failed(f"could not write result for {entity.name}: {e}")

        if resolution.status == FAILED:
            self.log.error(resolution.reason)
        else:
            self.log.info(f"{entity.name}: {resolution.status}", url=resolution.url)
        self.log.record("outcome", resolution.status)
        with self._outcomes_lock:
            self._outcomes[resolution.status] += 1
        return resolution

    def _resolve(self, entity: Entity) -> Resolution:
        url = self._probe(entity)
        if url:
            return Resolution.resolved(url, entity.name)

        self._sleep(self.dispatch_delay)
        with self.slots.acquire() as slot:
            return self._search(entity, slot)

    def _probe(self, entity: Entity) -> Optional[str]:
        try:
            url = self.store.probe(entity.name)
        except FetchError as e:
            self.log.record("error", type(e).__name__)
            self.log.warning(f"failed to probe page for {entity.name}: {e}")
            return None
        if url is None:
            self.log.debug(f"guessed page doesn't exist for {entity.name}")
        return url

    def _search(self, entity: Entity, slot: Slot) -> Resolution:
        try:
            exact = self.store.search(entity.name, slot, fuzzy=False)
        except SearchError as e:
            self.log.record("error", type(e).__name__)
            self.log.warning(str(e))
        else:
            if exact is not None:
                return Resolution.resolved(exact.link, exact.name)
            self.log.debug(f"no exact match for {entity.name}")

        try:
            self.store.search(entity.name, slot, fuzzy=True)
        except SearchError as e:
            self.log.record("error", type(e).__name__)
            self.log.warning(str(e))

        try:
            return self.disambiguator.resolve(entity, slot)
        except SelectionError as e:
            return Resolution.failed(f"{entity.name}: {e}")
