"""Billing gate charged before an aggregation may run.

The real wallet/ledger lives outside this service; `InMemoryWallet` stands
in for development and tests.
"""

import logging
import threading
from typing import Literal, Protocol

logger = logging.getLogger(__name__)

ChargeStatus = Literal["ok", "insufficient_funds"]


class InsufficientFundsError(ValueError):
    """The acting user cannot pay the feature fee."""

    def __init__(self, required: int, current: int):
        self.required = required
        self.current = current
        super().__init__(f"Insufficient balance: {required} required, {current} available")


class FeeGate(Protocol):
    def charge_feature_fee(self, user_id: str, amount: int) -> ChargeStatus:
        ...

    def balance(self, user_id: str) -> int:
        ...


class InMemoryWallet:
    """Process-local wallet keyed by user id."""

    def __init__(self, starting_balance: int = 0):
        self.starting_balance = starting_balance
        self._balances: dict[str, int] = {}
        self._lock = threading.Lock()

    def deposit(self, user_id: str, amount: int) -> int:
        if amount <= 0:
            raise ValueError("Deposit amount must be positive")
        with self._lock:
            new_balance = self._balances.get(user_id, self.starting_balance) + amount
            self._balances[user_id] = new_balance
        return new_balance

    def balance(self, user_id: str) -> int:
        with self._lock:
            return self._balances.get(user_id, self.starting_balance)

    def charge_feature_fee(self, user_id: str, amount: int) -> ChargeStatus:
        with self._lock:
            current = self._balances.get(user_id, self.starting_balance)
            if current < amount:
                logger.warning(f"Fee of {amount} refused for '{user_id}': balance {current}")
                return "insufficient_funds"
            self._balances[user_id] = current - amount
        logger.info(f"Charged {amount} to '{user_id}'")
        return "ok"


def charge_or_raise(gate: FeeGate, user_id: str, amount: int) -> None:
    """Charge `amount`; a zero fee is a no-op.

    Raises:
        InsufficientFundsError: If the gate refuses the charge
    """
    if amount <= 0:
        return
    if gate.charge_feature_fee(user_id, amount) == "insufficient_funds":
        raise InsufficientFundsError(required=amount, current=gate.balance(user_id))
