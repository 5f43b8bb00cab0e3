"""Knowledge Ledger - fungible balance primitives (mint, burn, transfer, allowances).

Invariants:
    - Balances and allowances are never negative
    - total_supply == sum of all balances (mint adds, burn subtracts, transfer preserves)
    - Every primitive records a ledger event (Transfer or Approval)
    - Primitives know nothing about decay, states or pricing
    - The zero address is never an approved spender

Design Decisions:
    - Working copy of the persisted ledger for one operation: hydrated with the
      accounts an operation touches, written back by the shell via the dirty sets
    - Mint and burn use the zero address as counterparty, like any token ledger
"""

from dataclasses import dataclass, field

from posterity.core.domain_types import EventKind, ZERO_ADDRESS
from posterity.core.errors import (
    InsufficientBalanceError, InsufficientAllowanceError, ErrorContext,
    ZeroAddressError,
)


@dataclass
class KnowledgeLedger:
    balances: dict[str, int] = field(default_factory=dict)
    allowances: dict[tuple[str, str], int] = field(default_factory=dict)
    total_supply: int = 0
    events: list[dict] = field(default_factory=list)
    dirty_balances: set[str] = field(default_factory=set)
    dirty_allowances: set[tuple[str, str]] = field(default_factory=set)

    def balance_of(self, address: str) -> int:
        return self.balances.get(address, 0)

    def mint(self, to: str, amount: int) -> None:
        self._set_balance(to, self.balance_of(to) + amount)
        self.total_supply += amount
        self._record_transfer(ZERO_ADDRESS, to, amount)

    def burn(self, holder: str, amount: int) -> None:
        balance = self.balance_of(holder)
        if amount > balance:
            raise InsufficientBalanceError(
                holder, balance, amount, ErrorContext(address=holder),
            )
        self._set_balance(holder, balance - amount)
        self.total_supply -= amount
        self._record_transfer(holder, ZERO_ADDRESS, amount)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        balance = self.balance_of(sender)
        if amount > balance:
            raise InsufficientBalanceError(
                sender, balance, amount, ErrorContext(address=sender),
            )
        self._set_balance(sender, balance - amount)
        self._set_balance(recipient, self.balance_of(recipient) + amount)
        self._record_transfer(sender, recipient, amount)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((owner, spender), 0)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("allowance cannot be negative")
        if spender == ZERO_ADDRESS:
            raise ZeroAddressError("spender", ErrorContext(address=owner))
        self.allowances[(owner, spender)] = amount
        self.dirty_allowances.add((owner, spender))
        self.events.append({
            "kind": EventKind.APPROVAL.value,
            "owner": owner, "spender": spender, "amount": amount,
        })

    def spend_allowance(self, owner: str, spender: str, amount: int) -> None:
        current = self.allowance(owner, spender)
        if amount > current:
            raise InsufficientAllowanceError(
                current, amount, ErrorContext(address=owner),
            )
        self.allowances[(owner, spender)] = current - amount
        self.dirty_allowances.add((owner, spender))

    def _set_balance(self, address: str, amount: int) -> None:
        self.balances[address] = amount
        self.dirty_balances.add(address)

    def _record_transfer(self, sender: str, recipient: str, amount: int) -> None:
        self.events.append({
            "kind": EventKind.TRANSFER.value,
            "from": sender, "to": recipient, "amount": amount,
        })
