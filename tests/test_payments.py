"""
Tests for the payment engine

Covers the zero-sum transfer, every precondition, rollback on store failure
and the exactly-once guarantee under concurrent payment attempts.
"""

import pytest
import tempfile
import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from datetime import datetime, timezone
from pathlib import Path

from marketplace_ledger.errors import (
    AlreadyPaidError, ErrorKind, InsufficientFundsError, InvalidInputError,
    LedgerError, NotFoundError, StoreError, UnauthorizedError
)
from marketplace_ledger.models import ContractStatus, ProfileType
from marketplace_ledger.payments import PaymentEngine
from marketplace_ledger.provisioning import LedgerProvisioner
from marketplace_ledger.queries import QueryService
from marketplace_ledger.storage import (
    InMemoryStorage, SQLiteStorage, JOBS_TABLE
)


PAYMENT_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FailingJobWrites(InMemoryStorage):
    """In-memory store whose job writes fail after the balances are written"""

    def save(self, table, record_id, data):
        if table == JOBS_TABLE and data.get("paid"):
            raise RuntimeError("disk full")
        super().save(table, record_id, data)


def build_ledger(provisioner, client_balance="50.00", price="50.00",
                 status=ContractStatus.IN_PROGRESS):
    client = provisioner.create_profile("Harry", "Potter", ProfileType.CLIENT, balance=client_balance)
    contractor = provisioner.create_profile(
        "Linus", "Torvalds", ProfileType.CONTRACTOR, profession="Programmer", balance="10.00"
    )
    contract = provisioner.create_contract(client.id, contractor.id, status=status)
    job = provisioner.create_job(contract.id, price, description="work")
    return client, contractor, contract, job


class TestPayJob:
    """Test job payment on the in-memory store"""

    def setup_method(self):
        """Set up test fixtures"""
        self.storage = InMemoryStorage()
        self.provisioner = LedgerProvisioner(self.storage)
        self.queries = QueryService(self.storage)
        self.engine = PaymentEngine(self.storage, clock=lambda: PAYMENT_TIME)
        self.client, self.contractor, self.contract, self.job = build_ledger(self.provisioner)

    def _balances(self):
        return (
            self.queries.get_profile(self.client.id).balance,
            self.queries.get_profile(self.contractor.id).balance
        )

    def _job(self):
        return self.queries.get_unpaid_jobs_for_user(self.client.id)

    def test_pay_job_transfers_price(self):
        """Client balance 50 pays a 50 job: client 0, contractor +50, job paid"""
        receipt = self.engine.pay_job(self.job.id, self.client.id)

        assert receipt.paid is True
        assert receipt.amount == Decimal('50.00')
        assert receipt.client_balance == Decimal('0.00')
        assert receipt.contractor_balance == Decimal('60.00')
        assert receipt.payment_date == PAYMENT_TIME
        assert self._balances() == (Decimal('0.00'), Decimal('60.00'))

        stored = self.storage.load(JOBS_TABLE, self.job.id)
        assert stored["paid"] is True
        assert stored["payment_date"] == PAYMENT_TIME.isoformat()
        assert self._job() == []

    def test_second_payment_is_already_paid(self):
        """Paying twice fails and leaves balances unchanged"""
        self.engine.pay_job(self.job.id, self.client.id)
        before = self._balances()

        with pytest.raises(AlreadyPaidError) as exc_info:
            self.engine.pay_job(self.job.id, self.client.id)

        assert exc_info.value.kind == ErrorKind.ALREADY_PAID
        assert self._balances() == before

    def test_insufficient_funds(self):
        """A balance below the price is rejected without any change"""
        job = self.provisioner.create_job(self.contract.id, "50.01")
        before = self._balances()

        with pytest.raises(InsufficientFundsError):
            self.engine.pay_job(job.id, self.client.id)

        assert self._balances() == before
        assert self.storage.load(JOBS_TABLE, job.id)["paid"] is None

    def test_insufficient_funds_reports_amounts(self):
        storage = InMemoryStorage()
        provisioner = LedgerProvisioner(storage)
        client, _contractor, _contract, job = build_ledger(
            provisioner, client_balance="1234.00", price="1234.01"
        )

        with pytest.raises(InsufficientFundsError, match="balance 1,234.00, price 1,234.01") as exc_info:
            PaymentEngine(storage).pay_job(job.id, client.id)

        assert exc_info.value.to_dict()["context"] == {"balance": "1234.00", "price": "1234.01"}

    @pytest.mark.parametrize("balance,price", [
        ("0.00", "0.01"),
        ("10.00", "10.01"),
        ("99.99", "100.00"),
    ])
    def test_balance_never_goes_negative(self, balance, price):
        """Any balance below the price fails with InsufficientFunds"""
        storage = InMemoryStorage()
        provisioner = LedgerProvisioner(storage)
        client, contractor, _contract, job = build_ledger(provisioner, client_balance=balance, price=price)

        with pytest.raises(InsufficientFundsError):
            PaymentEngine(storage).pay_job(job.id, client.id)

        queries = QueryService(storage)
        assert queries.get_profile(client.id).balance == Decimal(balance)
        assert queries.get_profile(contractor.id).balance == Decimal('10.00')

    def test_unknown_job_is_not_found(self):
        with pytest.raises(NotFoundError):
            self.engine.pay_job("missing", self.client.id)

    def test_stranger_cannot_see_job(self):
        """A caller who is not a party gets NotFound, not Unauthorized"""
        stranger = self.provisioner.create_profile("Mr", "Robot", ProfileType.CLIENT, balance="500")

        with pytest.raises(NotFoundError):
            self.engine.pay_job(self.job.id, stranger.id)

        assert self.storage.load(JOBS_TABLE, self.job.id)["paid"] is None

    def test_contractor_cannot_pay(self):
        with pytest.raises(UnauthorizedError):
            self.engine.pay_job(self.job.id, self.contractor.id)

        assert self._balances() == (Decimal('50.00'), Decimal('10.00'))

    def test_terminated_contract_cannot_be_paid(self):
        contract = self.provisioner.create_contract(
            self.client.id, self.contractor.id, status=ContractStatus.TERMINATED
        )
        job = self.provisioner.create_job(contract.id, "5.00")

        with pytest.raises(UnauthorizedError, match="terminated"):
            self.engine.pay_job(job.id, self.client.id)

        assert self._balances() == (Decimal('50.00'), Decimal('10.00'))

    def test_new_contract_can_be_paid(self):
        """Only terminated contracts block payment"""
        contract = self.provisioner.create_contract(
            self.client.id, self.contractor.id, status=ContractStatus.NEW
        )
        job = self.provisioner.create_job(contract.id, "5.00")

        receipt = self.engine.pay_job(job.id, self.client.id)

        assert receipt.client_balance == Decimal('45.00')

    @pytest.mark.parametrize("job_id,caller_id", [
        (None, "1"),
        ("", "1"),
        ("1", None),
        ("1", "   "),
    ])
    def test_missing_ids_are_invalid_input(self, job_id, caller_id):
        with pytest.raises(InvalidInputError):
            self.engine.pay_job(job_id, caller_id)

    def test_store_failure_rolls_back_everything(self):
        """A failed job write leaves both balances and the job untouched"""
        storage = FailingJobWrites()
        provisioner = LedgerProvisioner(storage)
        client, contractor, _contract, job = build_ledger(provisioner)

        with pytest.raises(StoreError) as exc_info:
            PaymentEngine(storage).pay_job(job.id, client.id)

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        queries = QueryService(storage)
        assert queries.get_profile(client.id).balance == Decimal('50.00')
        assert queries.get_profile(contractor.id).balance == Decimal('10.00')
        assert storage.load(JOBS_TABLE, job.id)["paid"] is None
        assert storage.load(JOBS_TABLE, job.id)["payment_date"] is None

    def test_failures_are_logged(self, caplog):
        with caplog.at_level("WARNING", logger="marketplace_ledger.payments"):
            with pytest.raises(NotFoundError):
                self.engine.pay_job("missing", self.client.id)

        assert any("rejected" in record.getMessage() for record in caplog.records)


def race(engine, job_id, caller_id, attempts=10):
    """Fire concurrent payments for one job; return (successes, failures)"""
    barrier = threading.Barrier(attempts)

    def attempt(_):
        barrier.wait()
        try:
            return engine.pay_job(job_id, caller_id)
        except LedgerError as e:
            return e

    with ThreadPoolExecutor(max_workers=attempts) as pool:
        outcomes = list(pool.map(attempt, range(attempts)))

    successes = [o for o in outcomes if not isinstance(o, LedgerError)]
    failures = [o for o in outcomes if isinstance(o, LedgerError)]
    return successes, failures


class TestConcurrentPayments:
    """Exactly one of many concurrent payments for the same job succeeds"""

    def _assert_single_winner(self, storage, engine):
        provisioner = LedgerProvisioner(storage)
        client, contractor, _contract, job = build_ledger(provisioner, client_balance="500.00")

        successes, failures = race(engine, job.id, client.id)

        assert len(successes) == 1
        assert all(isinstance(f, AlreadyPaidError) for f in failures)

        queries = QueryService(storage)
        client_after = queries.get_profile(client.id).balance
        contractor_after = queries.get_profile(contractor.id).balance
        assert client_after == Decimal('450.00')
        assert contractor_after == Decimal('60.00')
        assert client_after + contractor_after == Decimal('510.00')

    def test_in_memory_race(self):
        storage = InMemoryStorage()
        self._assert_single_winner(storage, PaymentEngine(storage))

    def test_sqlite_race_shared_connection(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            storage = SQLiteStorage(Path(temp_dir) / "ledger.db")
            try:
                self._assert_single_winner(storage, PaymentEngine(storage))
            finally:
                storage.close()

    def test_sqlite_race_separate_connections(self):
        """Each payer has its own connection, as separate processes would"""
        with tempfile.TemporaryDirectory() as temp_dir:
            db_path = Path(temp_dir) / "ledger.db"
            setup_storage = SQLiteStorage(db_path)
            provisioner = LedgerProvisioner(setup_storage)
            client, contractor, _contract, job = build_ledger(provisioner, client_balance="500.00")

            attempts = 6
            storages = [SQLiteStorage(db_path) for _ in range(attempts)]
            barrier = threading.Barrier(attempts)

            def attempt(storage):
                barrier.wait()
                try:
                    return PaymentEngine(storage).pay_job(job.id, client.id)
                except LedgerError as e:
                    return e

            try:
                with ThreadPoolExecutor(max_workers=attempts) as pool:
                    outcomes = list(pool.map(attempt, storages))
            finally:
                for storage in storages:
                    storage.close()

            successes = [o for o in outcomes if not isinstance(o, LedgerError)]
            assert len(successes) == 1
            assert all(isinstance(o, AlreadyPaidError) for o in outcomes if o not in successes)

            queries = QueryService(setup_storage)
            assert queries.get_profile(client.id).balance == Decimal('450.00')
            assert queries.get_profile(contractor.id).balance == Decimal('60.00')
            setup_storage.close()
