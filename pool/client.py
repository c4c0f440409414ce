"""
Shielded pool client.

Ties the wallet, the ledger observer and the proof input assembler together
behind deposit / transfer / balance operations.
"""

import logging
from typing import Dict, List, Optional, Sequence, Set, Union

from config.config import SystemConfig
from ledger.base import Ledger, LedgerReceipt
from ledger.observer import LedgerObserver
from utils.utils import PerformanceMonitor
from wallet.account import Account, PublicAccount
from wallet.errors import WalletError
from wallet.tokens import TokenRegistry
from wallet.utxo import UtxoInput, UtxoOutput, zero_amounts, zero_output
from zk.prover import Prover

from .proof_inputs import ProofInputAssembler

logger = logging.getLogger(__name__)


class InsufficientFundsError(WalletError):
    """Unspent notes of the account cannot cover the requested amount"""
    pass


class ShieldedPoolClient:
    """
    Client for one shielded pool.

    Call `initialize()` once before anything else: it mirrors the ledger's
    token registry and replays its commitment history.
    """

    def __init__(self, ledger: Ledger, prover: Prover, config: Optional[SystemConfig] = None,
                 monitor: Optional[PerformanceMonitor] = None):
        self.config = config or SystemConfig()
        self.config.validate()

        self.ledger = ledger
        self.monitor = monitor or PerformanceMonitor()
        self.registry = TokenRegistry(self.config.protocol.max_tokens)
        self.observer = LedgerObserver(
            ledger, self.config.protocol, decrypt_workers=self.config.decrypt_workers)
        self.assembler = ProofInputAssembler(
            prover, self.config.protocol, self.config.prover, self.monitor)
        self.accounts: List[Account] = []

    async def initialize(self) -> 'ShieldedPoolClient':
        registered = await self.registry.sync(self.ledger)
        await self.observer.ready()
        logger.info(f"Pool client ready: {registered} tokens, "
                    f"{self.observer.tree.num_leaves} notes in tree")
        return self

    def close(self):
        self.observer.close()

    # ====================================================================
    # Accounts
    # ====================================================================

    def create_account(self, private_key: Optional[int] = None) -> Account:
        return self.add_account(Account(self.registry, private_key))

    def add_account(self, account: Account) -> Account:
        if account not in self.accounts:
            self.accounts.append(account)
        self.observer.subscribe_account(account)
        return account

    def public_account(self, address: str) -> PublicAccount:
        return Account.from_address(address, self.registry)

    async def spent_nullifiers(self, account: Account) -> Set[int]:
        spent = set()
        for utxo in account.utxos:
            if await self.ledger.is_spent(utxo.nullifier):
                spent.add(utxo.nullifier)
        return spent

    async def unspent(self, account: Account) -> List[UtxoInput]:
        return account.unspent(await self.spent_nullifiers(account))

    async def balance(self, account: Account, token: str) -> int:
        return account.balance(token, await self.spent_nullifiers(account))

    async def balances(self, account: Account) -> Dict[str, int]:
        spent = await self.spent_nullifiers(account)
        return {token: account.balance(token, spent) for token in self.registry.tokens()}

    # ====================================================================
    # Operations
    # ====================================================================

    async def _await_events(self, receipt: LedgerReceipt):
        if receipt.events:
            await self.observer.wait_for_leaves(max(e.index for e in receipt.events) + 1)

    async def deposit(self, recipient: Union[PublicAccount, str], token: str,
                      amount: int) -> LedgerReceipt:
        """Deposit amount of token into a new note for recipient"""
        if isinstance(recipient, str):
            recipient = self.public_account(recipient)

        slot = self.registry.slot_of(token)
        deposit_amount = zero_amounts(self.registry.max_tokens)
        deposit_amount[slot] = amount

        outputs = [recipient.pay({token: amount}), zero_output(self.registry)]
        args = await self.assembler.deposit_proof(deposit_amount, outputs)
        receipt = await self.ledger.deposit(args)
        await self._await_events(receipt)

        logger.info(f"Deposited {amount} {token} to {recipient!r}")
        return receipt

    def select_notes(self, notes: Sequence[UtxoInput], slot: int, target: int) -> List[UtxoInput]:
        """Smallest single note covering target, else the two largest notes"""
        candidates = sorted(notes, key=lambda u: u.amounts[slot])
        for utxo in candidates:
            if utxo.amounts[slot] >= target:
                return [utxo]

        largest = candidates[-2:]
        if sum(u.amounts[slot] for u in largest) >= target:
            return largest

        available = sum(u.amounts[slot] for u in largest)
        raise InsufficientFundsError(
            f"Need {target} in slot {slot}, best two notes hold {available}")

    async def transfer(self, sender: Account, recipient_address: Optional[str], token: str,
                       amount: int, withdraw: int = 0) -> LedgerReceipt:
        """
        Pay amount of token to recipient_address and withdraw `withdraw` publicly.

        Either part may be zero; the remainder of the spent notes, in every
        slot, returns to the sender as a change note.
        """
        if amount < 0 or withdraw < 0 or amount + withdraw == 0:
            raise WalletError("Transfer must move a positive amount")
        if amount and not recipient_address:
            raise WalletError("A recipient address is required to pay")

        slot = self.registry.slot_of(token)
        inputs = self.select_notes(await self.unspent(sender), slot, amount + withdraw)

        max_tokens = self.registry.max_tokens
        change = [sum(u.amounts[s] for u in inputs) for s in range(max_tokens)]
        change[slot] -= amount + withdraw
        withdraw_amount = zero_amounts(max_tokens)
        withdraw_amount[slot] = withdraw

        outputs: List[UtxoOutput] = []
        if amount:
            outputs.append(self.public_account(recipient_address).pay({token: amount}))
        if any(change):
            outputs.append(sender.pay_raw(change))
        while len(outputs) < len(inputs):
            outputs.append(zero_output(self.registry))

        args = await self.assembler.transfer_proof(
            self.observer.tree, withdraw_amount, inputs, outputs)
        receipt = await self.ledger.transact(args)
        await self._await_events(receipt)

        logger.info(f"Transfer {len(inputs)}x{len(outputs)}: paid {amount}, "
                    f"withdrew {withdraw} {token}")
        return receipt
