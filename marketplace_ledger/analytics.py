"""
Analytics Engine Module

Revenue rankings over paid jobs whose payment date falls inside an
inclusive time window: the best-earning contractor profession and the
clients who paid the most.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Tuple, Union

from .errors import InvalidInputError, NotFoundError
from .models import Contract, Job, Profile, ProfileType, as_utc
from .money import ZERO
from .storage import StorageInterface, PROFILES_TABLE, CONTRACTS_TABLE, JOBS_TABLE


DEFAULT_BEST_CLIENTS_LIMIT = 2

TimeBound = Union[datetime, str, int, float]


@dataclass
class ClientRanking:
    """A client's total paid amount over a window"""
    id: str
    full_name: str
    amount_paid: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "fullName": self.full_name,
            "paid": str(self.amount_paid)
        }


def parse_time_bound(value: TimeBound, name: str) -> datetime:
    """
    Parse a window bound given as a datetime, an ISO-8601 string or Unix
    epoch milliseconds. Naive values are taken as UTC.
    """
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, bool) or value is None:
        raise InvalidInputError(f"Invalid {name}: {value!r}")
    text = str(value).strip()
    if not text:
        raise InvalidInputError(f"No {name} is provided")
    try:
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        if text.lstrip("-").isdigit():
            return datetime.fromtimestamp(int(text) / 1000, tz=timezone.utc)
        return as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except (ValueError, OverflowError, OSError):
        raise InvalidInputError(f"Invalid {name}: {value!r}")


class AnalyticsEngine:
    """Read-only revenue rankings; runs without a transaction"""

    def __init__(self, storage: StorageInterface, default_limit: int = DEFAULT_BEST_CLIENTS_LIMIT):
        self.storage = storage
        self.default_limit = default_limit

    def best_profession(self, start: TimeBound, end: TimeBound) -> str:
        """
        Profession whose contractors earned the most in the window

        Equal totals resolve to the alphabetically first profession.

        Raises:
            InvalidInputError: If a bound cannot be parsed
            NotFoundError: If no job was paid in the window (including when
                start is after end)
        """
        totals: Dict[str, Decimal] = {}
        for job, _client, contractor in self._paid_jobs(start, end):
            if contractor.profile_type != ProfileType.CONTRACTOR:
                continue
            totals[contractor.profession] = totals.get(contractor.profession, ZERO) + job.price

        if not totals:
            raise NotFoundError("No paid jobs in the given period")
        ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
        return ranked[0][0]

    def best_clients(self, start: TimeBound, end: TimeBound, limit: int = None) -> List[ClientRanking]:
        """
        Clients ranked by amount paid in the window, highest first

        Clients without paid jobs in the window are left out. Equal totals
        are ordered by client id. An empty list means no data.

        Raises:
            InvalidInputError: If a bound cannot be parsed or limit is not a
                positive integer
        """
        limit = self._validate_limit(self.default_limit if limit is None else limit)

        totals: Dict[str, Decimal] = {}
        clients: Dict[str, Profile] = {}
        for job, client, _contractor in self._paid_jobs(start, end):
            if client.profile_type != ProfileType.CLIENT:
                continue
            clients[client.id] = client
            totals[client.id] = totals.get(client.id, ZERO) + job.price

        ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
        return [
            ClientRanking(id=client_id, full_name=clients[client_id].full_name, amount_paid=total)
            for client_id, total in ranked[:limit]
        ]

    def _paid_jobs(self, start: TimeBound, end: TimeBound) -> Iterator[Tuple[Job, Profile, Profile]]:
        """Yield (job, client, contractor) for jobs paid within [start, end]"""
        start = parse_time_bound(start, "start")
        end = parse_time_bound(end, "end")
        if start > end:
            return

        profiles = {data['id']: Profile.from_dict(data) for data in self.storage.load_all(PROFILES_TABLE)}
        contracts = {data['id']: Contract.from_dict(data) for data in self.storage.load_all(CONTRACTS_TABLE)}

        for data in self.storage.load_all(JOBS_TABLE):
            job = Job.from_dict(data)
            if not job.is_paid or not start <= job.payment_date <= end:
                continue
            contract = contracts.get(job.contract_id)
            if contract is None:
                continue
            client = profiles.get(contract.client_id)
            contractor = profiles.get(contract.contractor_id)
            if client is None or contractor is None:
                continue
            yield job, client, contractor

    @staticmethod
    def _validate_limit(limit: Any) -> int:
        if isinstance(limit, bool):
            raise InvalidInputError(f"Limit must be a positive integer, got {limit!r}")
        try:
            value = int(limit)
        except (TypeError, ValueError, OverflowError):
            raise InvalidInputError(f"Limit must be a positive integer, got {limit!r}")
        if value != limit and str(value) != str(limit).strip():
            raise InvalidInputError(f"Limit must be a positive integer, got {limit!r}")
        if value <= 0:
            raise InvalidInputError(f"Limit must be a positive integer, got {limit!r}")
        return value
