"""
Ledger boundary.

The verifying contract stores nullifiers, checks proofs, holds token custody
and emits one event per created note. This module fixes the shapes the client
exchanges with it; `Ledger` is the interface any backend has to provide.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional


class EventKind(Enum):
    DEPOSIT = "Deposit"
    COMMITMENT = "Commitment"


@dataclass(frozen=True)
class CommitmentEvent:
    """Note creation event: tree index, commitment and hex envelope"""
    index: int
    commitment: int
    encrypted_data: str
    kind: EventKind = EventKind.COMMITMENT
    tx_id: Optional[str] = None


@dataclass
class DepositArgs:
    deposit_amount: List[int]
    out_commitments: List[int]
    encrypted_outputs: List[str]
    proof: str
    public_signals: List[str] = field(default_factory=list)


@dataclass
class TransactArgs:
    root: int
    withdraw_amount: List[int]
    in_nullifiers: List[int]
    out_commitments: List[int]
    encrypted_outputs: List[str]
    proof: str
    public_signals: List[str] = field(default_factory=list)


@dataclass
class LedgerReceipt:
    tx_id: str
    events: List[CommitmentEvent]
    timestamp: float = field(default_factory=time.time)


EventCallback = Callable[[CommitmentEvent], None]


class Ledger(ABC):
    """Contract-side operations the client relies on"""

    @abstractmethod
    async def tokens(self) -> List[str]:
        """Registered token identifiers in slot order"""

    @abstractmethod
    async def tree_depth(self) -> int:
        ...

    @abstractmethod
    async def current_root(self) -> int:
        ...

    @abstractmethod
    async def is_spent(self, nullifier: int) -> bool:
        ...

    @abstractmethod
    async def query_commitments(self, from_index: int = 0) -> List[CommitmentEvent]:
        """Historical note events with index >= from_index"""

    @abstractmethod
    def subscribe(self, callback: EventCallback) -> None:
        ...

    @abstractmethod
    def unsubscribe(self, callback: EventCallback) -> None:
        ...

    @abstractmethod
    async def deposit(self, args: DepositArgs) -> LedgerReceipt:
        ...

    @abstractmethod
    async def transact(self, args: TransactArgs) -> LedgerReceipt:
        ...
