"""
Ledger observer.

Keeps a local replica of the ledger's commitment tree and hands every new note
to the subscribed accounts so they can try to open it. Events may arrive out
of order; they are buffered and applied strictly by tree index.
"""

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional

from config.config import ConfigurationError, ProtocolConfig
from wallet.account import Account
from zk.errors import LeafIndexError, RootMismatchError
from zk.merkle import IncrementalMerkleTree

from .base import CommitmentEvent, Ledger

logger = logging.getLogger(__name__)


class LedgerObserver:
    """Replays and follows ledger note events into a local tree"""

    def __init__(self, ledger: Ledger, config: Optional[ProtocolConfig] = None,
                 tree: Optional[IncrementalMerkleTree] = None, decrypt_workers: int = 1):
        self.ledger = ledger
        self.config = config or ProtocolConfig()
        self.tree = tree or IncrementalMerkleTree(self.config.tree_depth)
        self.accounts: List[Account] = []
        self.events: List[CommitmentEvent] = []

        self._buffer: Dict[int, CommitmentEvent] = {}
        self._backlog: List[CommitmentEvent] = []
        self._is_ready = False
        self._lock = threading.RLock()
        self._executor = (ThreadPoolExecutor(max_workers=decrypt_workers,
                                             thread_name_prefix="decrypt")
                          if decrypt_workers > 1 else None)

        # Subscribe before replaying so nothing emitted in between is lost
        self.ledger.subscribe(self._on_live_event)

    @property
    def is_ready(self) -> bool:
        return self._is_ready

    @property
    def pending(self) -> List[int]:
        """Indices received ahead of the tree and still buffered"""
        with self._lock:
            return sorted(self._buffer)

    async def ready(self) -> 'LedgerObserver':
        """
        Replay the ledger's history into the tree.

        Checks the local tree depth against the ledger and, once every event has
        been applied, that the local root equals the ledger's current root.
        """
        depth = await self.ledger.tree_depth()
        if depth != self.tree.depth:
            raise ConfigurationError(
                f"Ledger tree depth {depth} does not match local depth {self.tree.depth}")

        history = await self.ledger.query_commitments(0)
        logger.info(f"Replaying {len(history)} historical note events")

        with self._lock:
            for event in history:
                self.add_event(event)
            backlog, self._backlog = self._backlog, []
            for event in backlog:
                self.add_event(event)
            self._is_ready = True

        await self.check_root()
        return self

    async def check_root(self):
        ledger_root = await self.ledger.current_root()
        with self._lock:
            if self._buffer:
                logger.warning(f"Skipping root check with {len(self._buffer)} buffered events")
                return
            if ledger_root != self.tree.root:
                raise RootMismatchError(
                    f"Local root {self.tree.root:#x} != ledger root {ledger_root:#x}")

    def _on_live_event(self, event: CommitmentEvent):
        with self._lock:
            if not self._is_ready:
                self._backlog.append(event)
                return
            self.add_event(event)

    def add_event(self, event: CommitmentEvent) -> int:
        """
        Buffer an event and apply every event that is now contiguous.

        Returns the number of leaves inserted. A repeated index with the same
        commitment is ignored; with a different commitment it is an error.
        """
        with self._lock:
            if not 0 <= event.index < self.tree.capacity:
                raise LeafIndexError(
                    f"Leaf index {event.index} outside tree of {self.tree.capacity} leaves")

            if event.index < self.tree.num_leaves:
                known = self.tree.nodes[0][event.index]
                if known != event.commitment:
                    raise LeafIndexError(
                        f"Conflicting commitment for leaf {event.index}")
                logger.debug(f"Ignoring duplicate event for leaf {event.index}")
                return 0

            buffered = self._buffer.get(event.index)
            if buffered is not None:
                if buffered.commitment != event.commitment:
                    raise LeafIndexError(
                        f"Conflicting commitment for leaf {event.index}")
                return 0

            self._buffer[event.index] = event
            inserted = 0
            while self.tree.num_leaves in self._buffer:
                ready = self._buffer.pop(self.tree.num_leaves)
                self.tree.insert_at(ready.index, ready.commitment)
                self.events.append(ready)
                self._notify(ready)
                inserted += 1

            if self._buffer:
                logger.debug(f"Waiting for leaf {self.tree.num_leaves}, "
                             f"{len(self._buffer)} events buffered")
            return inserted

    def _notify(self, event: CommitmentEvent, accounts: Optional[List[Account]] = None):
        targets = list(self.accounts if accounts is None else accounts)
        if not targets:
            return

        if self._executor is None:
            for account in targets:
                account.attempt_decrypt_and_add(event.commitment, event.encrypted_data, event.index)
            return

        futures = [
            self._executor.submit(account.attempt_decrypt_and_add,
                                  event.commitment, event.encrypted_data, event.index)
            for account in targets
        ]
        for future in futures:
            future.result()

    def subscribe_account(self, account: Account, rescan: bool = True):
        """Add an account; optionally scan notes already in the tree for it"""
        with self._lock:
            if account in self.accounts:
                return
            self.accounts.append(account)
            if rescan:
                for event in self.events:
                    self._notify(event, [account])
        logger.info(f"Subscribed {account!r}")

    def unsubscribe_account(self, account: Account):
        with self._lock:
            if account in self.accounts:
                self.accounts.remove(account)

    async def wait_for_leaves(self, count: int, timeout: float = 10.0, poll: float = 0.01):
        """Wait until the local tree holds at least count leaves"""
        async def _poll():
            while self.tree.num_leaves < count:
                await asyncio.sleep(poll)
        await asyncio.wait_for(_poll(), timeout)

    def close(self):
        self.ledger.unsubscribe(self._on_live_event)
        if self._executor is not None:
            self._executor.shutdown(wait=True)
