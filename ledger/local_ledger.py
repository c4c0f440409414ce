"""
In-memory ledger.

Models the verifying contract closely enough to drive the client end to end:
a token registry, custody balances per slot, the append-only commitment tree,
the spent-nullifier set and ordered note events.
"""

import logging
import threading
import uuid
from typing import Callable, Dict, List, Optional, Set, Union

from config.config import ProtocolConfig
from zk.merkle import IncrementalMerkleTree
from zk.poseidon import PRIME

from .base import (
    CommitmentEvent,
    DepositArgs,
    EventCallback,
    EventKind,
    Ledger,
    LedgerReceipt,
    TransactArgs,
)
from .errors import DoubleSpendError, InvalidProofError, LedgerRejectedError, UnknownRootError

logger = logging.getLogger(__name__)

ProofVerifier = Callable[[str, Union[DepositArgs, TransactArgs]], bool]


class LocalLedger(Ledger):
    """Single-process stand-in for the on-chain pool contract"""

    def __init__(self, config: Optional[ProtocolConfig] = None,
                 verifier: Optional[ProofVerifier] = None):
        self.config = config or ProtocolConfig()
        self.tree = IncrementalMerkleTree(self.config.tree_depth)
        self.verifier = verifier

        self._tokens: List[str] = []
        self._custody: List[int] = [0] * self.config.max_tokens
        self._nullifiers: Set[int] = set()
        self._events: List[CommitmentEvent] = []
        self._subscribers: List[EventCallback] = []
        self._lock = threading.RLock()

    # ====================================================================
    # Registry and views
    # ====================================================================

    def add_token(self, token: str) -> int:
        """Register a token in the next free slot and return the slot"""
        with self._lock:
            token = token.lower()
            if token in self._tokens:
                raise LedgerRejectedError(f"Token {token} already registered")
            if len(self._tokens) >= self.config.max_tokens:
                raise LedgerRejectedError(
                    f"All {self.config.max_tokens} token slots are taken")
            self._tokens.append(token)
            logger.info(f"Registered token {token} at slot {len(self._tokens) - 1}")
            return len(self._tokens) - 1

    async def tokens(self) -> List[str]:
        return list(self._tokens)

    async def tree_depth(self) -> int:
        return self.tree.depth

    async def current_root(self) -> int:
        return self.tree.root

    async def is_spent(self, nullifier: int) -> bool:
        return nullifier in self._nullifiers

    async def query_commitments(self, from_index: int = 0) -> List[CommitmentEvent]:
        with self._lock:
            return list(self._events[from_index:])

    def custody(self) -> Dict[str, int]:
        """Tokens held by the pool, per registered token"""
        return {token: self._custody[slot] for slot, token in enumerate(self._tokens)}

    def subscribe(self, callback: EventCallback) -> None:
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: EventCallback) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    # ====================================================================
    # State transitions
    # ====================================================================

    def _check_vector(self, name: str, amounts: List[int]):
        if len(amounts) != self.config.max_tokens:
            raise LedgerRejectedError(
                f"{name} must have {self.config.max_tokens} entries, got {len(amounts)}")
        limit = 1 << self.config.max_amount_bits
        if any(a < 0 or a >= limit for a in amounts):
            raise LedgerRejectedError(f"{name} out of range")

    def _check_outputs(self, commitments: List[int], encrypted: List[str]):
        if len(commitments) != len(encrypted):
            raise LedgerRejectedError("Each output commitment needs one encrypted output")
        for commitment in commitments:
            if commitment < 0 or commitment >= PRIME:
                raise LedgerRejectedError(f"Commitment {commitment} outside field bounds")
        if self.tree.num_leaves + len(commitments) > self.tree.capacity:
            raise LedgerRejectedError("Commitment tree is full")

    def _verify(self, kind: str, args):
        if self.verifier is not None and not self.verifier(kind, args):
            logger.warning(f"Rejected {kind}: proof verification failed")
            raise InvalidProofError(f"Invalid {kind} proof")

    def _append(self, commitments: List[int], encrypted: List[str],
                kind: EventKind, tx_id: str) -> List[CommitmentEvent]:
        events = []
        for commitment, data in zip(commitments, encrypted):
            index = self.tree.insert(commitment)
            event = CommitmentEvent(index, commitment, data, kind, tx_id)
            self._events.append(event)
            events.append(event)
        return events

    def _emit(self, events: List[CommitmentEvent]):
        for event in events:
            for callback in list(self._subscribers):
                callback(event)

    async def deposit(self, args: DepositArgs) -> LedgerReceipt:
        with self._lock:
            self._check_vector("depositAmount", args.deposit_amount)
            if len(args.out_commitments) != self.config.deposit_outputs:
                raise LedgerRejectedError(
                    f"Deposit must create exactly {self.config.deposit_outputs} notes")
            self._check_outputs(args.out_commitments, args.encrypted_outputs)
            self._verify("deposit", args)

            for slot, amount in enumerate(args.deposit_amount):
                if amount and slot >= len(self._tokens):
                    raise LedgerRejectedError(f"No token registered at slot {slot}")
            for slot, amount in enumerate(args.deposit_amount):
                self._custody[slot] += amount

            tx_id = uuid.uuid4().hex
            events = self._append(
                args.out_commitments, args.encrypted_outputs, EventKind.DEPOSIT, tx_id)
            logger.info(f"Deposit {tx_id[:8]} created leaves "
                        f"{[e.index for e in events]}")

        self._emit(events)
        return LedgerReceipt(tx_id, events)

    async def transact(self, args: TransactArgs) -> LedgerReceipt:
        with self._lock:
            if not args.in_nullifiers:
                raise LedgerRejectedError("Transaction spends no notes")
            if len(set(args.in_nullifiers)) != len(args.in_nullifiers):
                raise LedgerRejectedError("Duplicate nullifier within transaction")
            for nullifier in args.in_nullifiers:
                if nullifier in self._nullifiers:
                    logger.warning(f"Rejected double spend of {nullifier:#x}")
                    raise DoubleSpendError(nullifier)

            if args.root != self.tree.root:
                logger.warning(f"Rejected transaction against stale root {args.root:#x}")
                raise UnknownRootError(f"Root {args.root:#x} is not the current root")

            self._check_vector("withdrawAmount", args.withdraw_amount)

            self._check_outputs(args.out_commitments, args.encrypted_outputs)
            for slot, amount in enumerate(args.withdraw_amount):
                if amount > self._custody[slot]:
                    raise LedgerRejectedError(f"Withdrawal exceeds custody at slot {slot}")
            self._verify("transact", args)

            self._nullifiers.update(args.in_nullifiers)
            for slot, amount in enumerate(args.withdraw_amount):
                self._custody[slot] -= amount

            tx_id = uuid.uuid4().hex
            events = self._append(
                args.out_commitments, args.encrypted_outputs, EventKind.COMMITMENT, tx_id)
            logger.info(f"Transaction {tx_id[:8]} spent {len(args.in_nullifiers)} notes, "
                        f"created leaves {[e.index for e in events]}")

        self._emit(events)
        return LedgerReceipt(tx_id, events)
