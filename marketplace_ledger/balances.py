"""
Balance Top-up Module

Deposits into a profile's own balance. A deposit may not exceed a share
(25% by default) of what the profile still owes on unpaid jobs as a client;
a profile that owes nothing cannot deposit at all.
"""

from decimal import Decimal, ROUND_DOWN
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Dict

from .errors import (
    LedgerError, InvalidInputError, NotFoundError, UnauthorizedError,
    PolicyViolationError, StoreError, require_id
)
from .logging_config import get_logger, log_action
from .models import Contract, Job, Profile
from .money import CENT, ZERO, AmountLike, format_amount, to_amount
from .storage import StorageInterface, PROFILES_TABLE, CONTRACTS_TABLE, JOBS_TABLE


DEFAULT_DEPOSIT_CAP_RATIO = Decimal('0.25')


@dataclass
class DepositReceipt:
    """Outcome of a successful deposit"""
    profile_id: str
    amount: Decimal
    balance: Decimal
    total_owed: Decimal
    cap: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "profile_id": self.profile_id,
            "amount": str(self.amount),
            "balance": str(self.balance),
            "total_owed": str(self.total_owed),
            "cap": str(self.cap)
        }


class BalanceService:
    """Bounded deposits into a caller's own balance"""

    def __init__(self, storage: StorageInterface, deposit_cap_ratio: Decimal = DEFAULT_DEPOSIT_CAP_RATIO):
        self.storage = storage
        self.deposit_cap_ratio = Decimal(str(deposit_cap_ratio))
        self.logger = get_logger("marketplace_ledger.balances")

    def deposit(self, user_id: str, caller_id: str, amount: AmountLike) -> DepositReceipt:
        """
        Credit the caller's own balance

        The outstanding total and the new balance are read and written in
        the same transaction.

        Raises:
            InvalidInputError: If an id is missing or the amount is not a
                positive monetary value
            UnauthorizedError: If the caller is not the profile being credited
            NotFoundError: If the profile does not exist
            PolicyViolationError: If nothing is owed or the amount exceeds
                the cap
            StoreError: If the store fails; nothing is written
        """
        user_id = require_id(user_id, "user id")
        caller_id = require_id(caller_id, "profile id")

        try:
            if user_id != caller_id:
                raise UnauthorizedError("A profile can only deposit into its own balance")
            try:
                amount = to_amount(amount, exact=True)
            except ValueError as e:
                raise InvalidInputError(str(e))
            if amount <= ZERO:
                raise InvalidInputError("Deposit amount must be positive")

            with self.storage.atomic():
                receipt = self._credit(user_id, amount)
        except LedgerError as e:
            log_action(
                self.logger, "warning", f"Deposit rejected: {e.message}",
                user_id=caller_id, action="deposit", resource=f"profile:{user_id}",
                extra={"error": e.kind.value}
            )
            raise
        except Exception as e:
            log_action(
                self.logger, "error", "Deposit failed in store; transaction rolled back",
                user_id=caller_id, action="deposit", resource=f"profile:{user_id}",
                extra={"error": StoreError.kind.value}, exc_info=True
            )
            raise StoreError(f"Deposit for profile {user_id} failed: {e}") from e

        log_action(
            self.logger, "info", "Deposit credited",
            user_id=caller_id, action="deposit", resource=f"profile:{user_id}",
            extra={"amount": str(receipt.amount), "balance": str(receipt.balance)}
        )
        return receipt

    def total_owed(self, profile_id: str) -> Decimal:
        """Sum of prices of unpaid jobs on all contracts where the profile is the client"""
        total = ZERO
        for contract_data in self.storage.find(CONTRACTS_TABLE, {"client_id": profile_id}):
            contract = Contract.from_dict(contract_data)
            for job_data in self.storage.find(JOBS_TABLE, {"contract_id": contract.id}):
                job = Job.from_dict(job_data)
                if not job.is_paid:
                    total += job.price
        return total

    def _credit(self, profile_id: str, amount: Decimal) -> DepositReceipt:
        data = self.storage.load_for_update(PROFILES_TABLE, profile_id)
        if not data:
            raise NotFoundError(f"Profile {profile_id} not found")
        profile = Profile.from_dict(data)

        total_owed = self.total_owed(profile_id)
        if total_owed == ZERO:
            raise PolicyViolationError(
                "No unpaid jobs; nothing to deposit for",
                context={"total_owed": str(total_owed)}
            )
        # Amounts are whole cents; a floored cap compares the same as the exact one
        cap = (total_owed * self.deposit_cap_ratio).quantize(CENT, rounding=ROUND_DOWN)
        if amount > cap:
            raise PolicyViolationError(
                f"Can't deposit more than {self.deposit_cap_ratio:.0%} of your total of jobs to pay "
                f"({format_amount(amount)} requested, {format_amount(cap)} allowed)",
                context={"total_owed": str(total_owed), "cap": str(cap)}
            )

        profile.balance += amount
        profile.updated_at = datetime.now(timezone.utc)
        self.storage.save(PROFILES_TABLE, profile.id, profile.to_dict())

        return DepositReceipt(
            profile_id=profile.id,
            amount=amount,
            balance=profile.balance,
            total_owed=total_owed,
            cap=cap
        )
