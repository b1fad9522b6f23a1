"""
Ledger Records

Profiles, contracts and jobs as stored in the Ledger Store. Profiles hold
balances; contracts link exactly one client to one contractor; jobs are the
billable units paid out of the client's balance.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Dict, Optional
from enum import Enum

from .money import ZERO, to_amount
from .storage import StorageRecord


class ProfileType(Enum):
    """Marketplace roles"""
    CLIENT = "client"
    CONTRACTOR = "contractor"


class ContractStatus(Enum):
    """Contract lifecycle states"""
    NEW = "new"
    IN_PROGRESS = "in_progress"
    TERMINATED = "terminated"


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class Profile(StorageRecord):
    """A marketplace participant with a balance"""
    first_name: str
    last_name: str
    profile_type: ProfileType
    profession: str = ""
    balance: Decimal = ZERO

    def __post_init__(self):
        self.balance = to_amount(self.balance)
        if self.balance < ZERO:
            raise ValueError("Profile balance cannot be negative")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_client(self) -> bool:
        return self.profile_type == ProfileType.CLIENT

    @property
    def is_contractor(self) -> bool:
        return self.profile_type == ProfileType.CONTRACTOR

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Profile':
        data = dict(data)
        data['profile_type'] = ProfileType(data['profile_type'])
        data['balance'] = Decimal(data['balance'])
        return super().from_dict(data)


@dataclass
class Contract(StorageRecord):
    """Binding relationship between one client and one contractor"""
    client_id: str
    contractor_id: str
    status: ContractStatus = ContractStatus.NEW
    terms: str = ""

    @property
    def is_terminated(self) -> bool:
        return self.status == ContractStatus.TERMINATED

    @property
    def is_active(self) -> bool:
        return self.status == ContractStatus.IN_PROGRESS

    def has_party(self, profile_id: str) -> bool:
        """Check if the profile is the client or the contractor"""
        return profile_id in (self.client_id, self.contractor_id)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Contract':
        data = dict(data)
        data['status'] = ContractStatus(data['status'])
        return super().from_dict(data)


@dataclass
class Job(StorageRecord):
    """
    Billable work under a contract.

    `paid` is None until the job is paid and True afterwards; the payment
    date is present exactly when the job is paid.
    """
    contract_id: str
    price: Decimal
    description: str = ""
    paid: Optional[bool] = None
    payment_date: Optional[datetime] = None

    def __post_init__(self):
        self.price = to_amount(self.price)
        if self.price <= ZERO:
            raise ValueError("Job price must be positive")
        if self.paid is False:
            self.paid = None
        if self.paid and self.payment_date is None:
            raise ValueError("A paid job must have a payment date")
        if not self.paid and self.payment_date is not None:
            raise ValueError("An unpaid job cannot have a payment date")
        if self.payment_date is not None:
            self.payment_date = as_utc(self.payment_date)

    @property
    def is_paid(self) -> bool:
        return bool(self.paid)

    def mark_paid(self, when: datetime) -> None:
        """Record payment; a job can only be paid once"""
        if self.is_paid:
            raise ValueError(f"Job {self.id} has been paid already")
        self.paid = True
        self.payment_date = as_utc(when)
        self.updated_at = self.payment_date

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Job':
        data = dict(data)
        data['price'] = Decimal(data['price'])
        if data.get('payment_date'):
            data['payment_date'] = datetime.fromisoformat(data['payment_date'])
        return super().from_dict(data)
