"""
Payment Engine Module

Pays for a job by moving its price from the client's balance to the
contractor's balance and marking the job paid. The debit, the credit and the
paid flag are written in a single store transaction: either all three commit
or none do.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .errors import (
    LedgerError, NotFoundError, UnauthorizedError, AlreadyPaidError,
    InsufficientFundsError, StoreError, require_id
)
from .logging_config import get_logger, log_action
from .models import Contract, Job, Profile
from .money import format_amount
from .storage import StorageInterface, PROFILES_TABLE, CONTRACTS_TABLE, JOBS_TABLE


@dataclass
class PaymentReceipt:
    """Outcome of a successful job payment"""
    job_id: str
    client_id: str
    contractor_id: str
    amount: Decimal
    payment_date: datetime
    client_balance: Decimal
    contractor_balance: Decimal
    paid: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "client_id": self.client_id,
            "contractor_id": self.contractor_id,
            "amount": str(self.amount),
            "payment_date": self.payment_date.isoformat(),
            "client_balance": str(self.client_balance),
            "contractor_balance": str(self.contractor_balance),
            "paid": self.paid
        }


class PaymentEngine:
    """
    Pays jobs out of client balances

    Preconditions are checked inside the transaction, after the job row has
    been loaded for update, so of several concurrent payments for the same
    job exactly one observes it unpaid.
    """

    def __init__(
        self,
        storage: StorageInterface,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.storage = storage
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = get_logger("marketplace_ledger.payments")

    def pay_job(self, job_id: str, caller_id: str) -> PaymentReceipt:
        """
        Pay for a job on behalf of the contract's client

        Args:
            job_id: Job to pay
            caller_id: Authenticated profile making the payment

        Returns:
            PaymentReceipt with the balances after the transfer

        Raises:
            InvalidInputError: If an id is missing
            NotFoundError: If the job does not exist or the caller is not a
                party to its contract
            UnauthorizedError: If the caller is the contractor, or the
                contract is terminated
            AlreadyPaidError: If the job has been paid already
            InsufficientFundsError: If the client's balance is below the price
            StoreError: If the store fails; nothing is written
        """
        job_id = require_id(job_id, "job id")
        caller_id = require_id(caller_id, "profile id")

        try:
            with self.storage.atomic():
                receipt = self._transfer(job_id, caller_id)
        except LedgerError as e:
            log_action(
                self.logger, "warning", f"Job payment rejected: {e.message}",
                user_id=caller_id, action="pay_job", resource=f"job:{job_id}",
                extra={"error": e.kind.value}
            )
            raise
        except Exception as e:
            log_action(
                self.logger, "error", "Job payment failed in store; transaction rolled back",
                user_id=caller_id, action="pay_job", resource=f"job:{job_id}",
                extra={"error": StoreError.kind.value}, exc_info=True
            )
            raise StoreError(f"Payment for job {job_id} failed: {e}") from e

        log_action(
            self.logger, "info", "Job paid",
            user_id=caller_id, action="pay_job", resource=f"job:{job_id}",
            extra={
                "amount": str(receipt.amount),
                "contractor_id": receipt.contractor_id,
                "client_balance": str(receipt.client_balance)
            }
        )
        return receipt

    def _transfer(self, job_id: str, caller_id: str) -> PaymentReceipt:
        job_data = self.storage.load_for_update(JOBS_TABLE, job_id)
        if not job_data:
            raise NotFoundError(f"Job {job_id} not found")
        job = Job.from_dict(job_data)

        contract_data = self.storage.load(CONTRACTS_TABLE, job.contract_id)
        contract = Contract.from_dict(contract_data) if contract_data else None
        if contract is None or not contract.has_party(caller_id):
            raise NotFoundError(f"Job {job_id} not found")
        if contract.client_id != caller_id:
            raise UnauthorizedError(f"Only the client of contract {contract.id} can pay for job {job_id}")
        if job.is_paid:
            raise AlreadyPaidError(f"Job {job_id} has been paid already")
        if contract.is_terminated:
            raise UnauthorizedError(f"Contract {contract.id} is terminated; job {job_id} cannot be paid")

        # Client rows are always locked before contractor rows
        client = self._load_profile_for_update(contract.client_id)
        contractor = self._load_profile_for_update(contract.contractor_id)
        if client.balance < job.price:
            raise InsufficientFundsError(
                f"Insufficient funds to pay for job {job_id}: "
                f"balance {format_amount(client.balance)}, price {format_amount(job.price)}",
                context={"balance": str(client.balance), "price": str(job.price)}
            )

        now = self.clock()
        client.balance -= job.price
        client.updated_at = now
        contractor.balance += job.price
        contractor.updated_at = now
        job.mark_paid(now)

        self.storage.save(PROFILES_TABLE, client.id, client.to_dict())
        self.storage.save(PROFILES_TABLE, contractor.id, contractor.to_dict())
        self.storage.save(JOBS_TABLE, job.id, job.to_dict())

        return PaymentReceipt(
            job_id=job.id,
            client_id=client.id,
            contractor_id=contractor.id,
            amount=job.price,
            payment_date=job.payment_date,
            client_balance=client.balance,
            contractor_balance=contractor.balance
        )

    def _load_profile_for_update(self, profile_id: str) -> Profile:
        data = self.storage.load_for_update(PROFILES_TABLE, profile_id)
        if not data:
            raise NotFoundError(f"Profile {profile_id} not found")
        return Profile.from_dict(data)
