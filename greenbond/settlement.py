"""
settlement.py - Settlement asset and the adapter the bond pays through

The settlement asset is an external fungible-token ledger. The bond never
duplicates its balances; it only moves value through a SettlementAdapter:

    pull(source, amount)  investor -> bond custody  (transferFrom semantics)
    push(dest, amount)    bond custody -> recipient (transfer semantics)

Classes:
- TransferRecord: One completed transfer in the token's transfer log
- TokenLedger: Reference fungible-token ledger with boolean success signaling
- TokenSettlement: SettlementAdapter over a TokenLedger for one custody wallet
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Tuple
import threading

from .core import require_uint, checked_add


@dataclass(frozen=True, slots=True)
class TransferRecord:
    """
    A completed transfer.

    initiator is the account that called transfer (the sender) or
    transfer_from (the spender). via_allowance marks transfers that consumed
    the owner's allowance to the initiator.
    """
    sequence: int
    initiator: str
    owner: str
    to: str
    amount: int
    via_allowance: bool


class TokenLedger:
    """
    Minimal fungible-token ledger (ERC-20 shaped).

    transfer() and transfer_from() return False instead of raising when the
    payer's balance or the spender's allowance is short, which is why every
    caller has to check the result.

    The ledger is shared: several bonds and any number of other parties may
    move value on it. Mutations run under the ledger's own lock, and every
    transfer is appended to transfer_log so an initiator can reverse its own
    transfers without touching anyone else's.

    Example:
        usdc = TokenLedger("USDC")
        usdc.mint("alice", 10_000)
        usdc.approve("alice", "bond", 2_000)
        usdc.transfer_from("bond", "alice", "bond", 2_000)   # True
    """

    def __init__(self, symbol: str):
        if not symbol or not symbol.strip():
            raise ValueError("symbol cannot be empty")
        self.symbol = symbol
        self._balances: Dict[str, int] = defaultdict(int)
        self._allowances: Dict[Tuple[str, str], int] = defaultdict(int)
        self._total_supply = 0
        self._transfers: List[TransferRecord] = []
        self._next_sequence = 0
        self._lock = threading.RLock()

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    @property
    def total_supply(self) -> int:
        return self._total_supply

    @property
    def next_sequence(self) -> int:
        """Sequence number the next transfer will receive."""
        return self._next_sequence

    @property
    def transfer_log(self) -> Tuple[TransferRecord, ...]:
        return tuple(self._transfers)

    def mint(self, to: str, amount: int) -> None:
        """Issue new tokens to an account (test and simulation funding)."""
        require_uint('amount', amount)
        with self._lock:
            self._total_supply = checked_add(self._total_supply, amount)
            self._balances[to] += amount

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        """Set spender's allowance over owner's tokens (overwrites)."""
        require_uint('amount', amount)
        with self._lock:
            self._allowances[(owner, spender)] = amount
        return True

    def transfer(self, sender: str, to: str, amount: int) -> bool:
        require_uint('amount', amount)
        with self._lock:
            if self._balances.get(sender, 0) < amount:
                return False
            self._move(sender, to, amount)
            self._record(sender, sender, to, amount, via_allowance=False)
        return True

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        require_uint('amount', amount)
        with self._lock:
            if self._allowances.get((owner, spender), 0) < amount:
                return False
            if self._balances.get(owner, 0) < amount:
                return False
            self._allowances[(owner, spender)] -= amount
            self._move(owner, to, amount)
            self._record(spender, owner, to, amount, via_allowance=True)
        return True

    def reverse_transfers(self, initiator: str, since: int) -> int:
        """
        Undo every transfer initiator made with sequence >= since, newest first.

        Consumed allowance is given back and the reversed records leave the
        transfer log. A reversal is forced: it does not check the recipient's
        current balance.

        Returns:
            Number of transfers reversed
        """
        with self._lock:
            undone = [r for r in self._transfers
                      if r.sequence >= since and r.initiator == initiator]
            for record in reversed(undone):
                self._move(record.to, record.owner, record.amount)
                if record.via_allowance:
                    self._allowances[(record.owner, record.initiator)] += record.amount
            if undone:
                self._transfers = [r for r in self._transfers
                                   if r.sequence < since or r.initiator != initiator]
            return len(undone)

    def _move(self, source: str, dest: str, amount: int) -> None:
        self._balances[source] -= amount
        self._balances[dest] += amount

    def _record(self, initiator: str, owner: str, to: str, amount: int, via_allowance: bool) -> None:
        self._transfers.append(TransferRecord(
            sequence=self._next_sequence,
            initiator=initiator,
            owner=owner,
            to=to,
            amount=amount,
            via_allowance=via_allowance,
        ))
        self._next_sequence += 1

    def __repr__(self):
        holders = sum(1 for b in self._balances.values() if b)
        return f"TokenLedger({self.symbol}, supply={self._total_supply}, holders={holders})"


class TokenSettlement:
    """
    SettlementAdapter backed by a TokenLedger.

    The custody wallet is the bond's own account on the token ledger:
    investors approve it before purchasing, and all payouts leave from it.
    It is also the initiator of every transfer this adapter makes, which is
    what rollback() reverses.
    """

    def __init__(self, token: TokenLedger, custody_wallet: str):
        if not custody_wallet or not custody_wallet.strip():
            raise ValueError("custody_wallet cannot be empty")
        self.token = token
        self.custody_wallet = custody_wallet

    def pull(self, source: str, amount: int) -> bool:
        return self.token.transfer_from(self.custody_wallet, source, self.custody_wallet, amount)

    def push(self, dest: str, amount: int) -> bool:
        return self.token.transfer(self.custody_wallet, dest, amount)

    def balance(self) -> int:
        return self.token.balance_of(self.custody_wallet)

    def checkpoint(self) -> int:
        return self.token.next_sequence

    def rollback(self, checkpoint: int) -> None:
        self.token.reverse_transfers(self.custody_wallet, checkpoint)

    def __repr__(self):
        return f"TokenSettlement({self.token.symbol}, custody={self.custody_wallet})"
