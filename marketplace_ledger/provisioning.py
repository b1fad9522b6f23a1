"""
Provisioning Module

Creates profiles, contracts and jobs. These flows sit outside the financial
engine (which never creates or deletes records); they back the seed command
and the test suites.
"""

from datetime import datetime, timezone
from typing import Optional, Union
import uuid

from .errors import InvalidInputError, NotFoundError, require_id
from .logging_config import get_logger, log_action
from .models import Contract, ContractStatus, Job, Profile, ProfileType
from .money import ZERO, AmountLike
from .storage import (
    StorageInterface, PROFILES_TABLE, CONTRACTS_TABLE, JOBS_TABLE
)


class LedgerProvisioner:
    """Creates ledger records on behalf of onboarding and contract authoring"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.logger = get_logger("marketplace_ledger.provisioning")

    def create_profile(
        self,
        first_name: str,
        last_name: str,
        profile_type: Union[ProfileType, str],
        profession: str = "",
        balance: AmountLike = ZERO,
        profile_id: Optional[str] = None
    ) -> Profile:
        """
        Create a new profile

        Args:
            first_name: Profile's first name
            last_name: Profile's last name
            profile_type: client or contractor
            profession: Contractor's profession (informational for clients)
            balance: Opening balance
            profile_id: Explicit id, generated when omitted

        Returns:
            Created Profile object
        """
        now = datetime.now(timezone.utc)
        try:
            profile = Profile(
                id=str(profile_id) if profile_id else str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                first_name=first_name,
                last_name=last_name,
                profile_type=ProfileType(profile_type),
                profession=profession,
                balance=balance
            )
        except ValueError as e:
            raise InvalidInputError(str(e))

        self.storage.save(PROFILES_TABLE, profile.id, profile.to_dict())
        log_action(
            self.logger, "info", f"Profile created: {profile.full_name}",
            action="create_profile", resource=f"profile:{profile.id}",
            extra={"profile_type": profile.profile_type.value, "balance": str(profile.balance)}
        )
        return profile

    def create_contract(
        self,
        client_id: str,
        contractor_id: str,
        terms: str = "",
        status: Union[ContractStatus, str] = ContractStatus.NEW,
        contract_id: Optional[str] = None
    ) -> Contract:
        """Create a contract between an existing client and contractor"""
        client = self._get_profile(require_id(client_id, "client id"))
        contractor = self._get_profile(require_id(contractor_id, "contractor id"))
        if not client.is_client:
            raise InvalidInputError(f"Profile {client.id} is not a client")
        if not contractor.is_contractor:
            raise InvalidInputError(f"Profile {contractor.id} is not a contractor")

        now = datetime.now(timezone.utc)
        try:
            contract = Contract(
                id=str(contract_id) if contract_id else str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                client_id=client.id,
                contractor_id=contractor.id,
                status=ContractStatus(status),
                terms=terms
            )
        except ValueError as e:
            raise InvalidInputError(str(e))

        self.storage.save(CONTRACTS_TABLE, contract.id, contract.to_dict())
        log_action(
            self.logger, "info", "Contract created",
            action="create_contract", resource=f"contract:{contract.id}",
            extra={"client_id": client.id, "contractor_id": contractor.id,
                   "status": contract.status.value}
        )
        return contract

    def create_job(
        self,
        contract_id: str,
        price: AmountLike,
        description: str = "",
        paid: bool = False,
        payment_date: Optional[datetime] = None,
        job_id: Optional[str] = None
    ) -> Job:
        """
        Create a job under an existing contract

        Historical jobs can be loaded already paid by passing ``paid=True``
        together with their payment date.
        """
        contract_id = require_id(contract_id, "contract id")
        if not self.storage.exists(CONTRACTS_TABLE, contract_id):
            raise NotFoundError(f"Contract {contract_id} not found")

        now = datetime.now(timezone.utc)
        try:
            job = Job(
                id=str(job_id) if job_id else str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                contract_id=contract_id,
                price=price,
                description=description,
                paid=True if paid else None,
                payment_date=payment_date
            )
        except (ValueError, ArithmeticError) as e:
            raise InvalidInputError(str(e))

        self.storage.save(JOBS_TABLE, job.id, job.to_dict())
        log_action(
            self.logger, "info", "Job created",
            action="create_job", resource=f"job:{job.id}",
            extra={"contract_id": contract_id, "price": str(job.price), "paid": job.is_paid}
        )
        return job

    def _get_profile(self, profile_id: str) -> Profile:
        data = self.storage.load(PROFILES_TABLE, profile_id)
        if not data:
            raise NotFoundError(f"Profile {profile_id} not found")
        return Profile.from_dict(data)
