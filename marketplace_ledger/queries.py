"""
Query Service Module

Read-only lookups scoped to the calling profile. A contract that exists but
belongs to someone else is reported exactly like a missing one.
"""

from typing import Dict, List

from .errors import NotFoundError, require_id
from .models import Contract, ContractStatus, Job, Profile
from .storage import StorageInterface, PROFILES_TABLE, CONTRACTS_TABLE, JOBS_TABLE


class QueryService:
    """Contract, job and profile lookups for a caller"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage

    def get_profile(self, profile_id: str) -> Profile:
        """Resolve a profile by id"""
        profile_id = require_id(profile_id, "profile id")
        data = self.storage.load(PROFILES_TABLE, profile_id)
        if not data:
            raise NotFoundError(f"Profile {profile_id} not found")
        return Profile.from_dict(data)

    def get_contract_by_id(self, contract_id: str, caller_id: str) -> Contract:
        """
        Get a contract the caller is a party to

        Raises:
            InvalidInputError: If either id is missing
            NotFoundError: If the contract does not exist or the caller is
                neither its client nor its contractor
        """
        contract_id = require_id(contract_id, "contract id")
        caller_id = require_id(caller_id, "profile id")

        data = self.storage.load(CONTRACTS_TABLE, contract_id)
        if data:
            contract = Contract.from_dict(data)
            if contract.has_party(caller_id):
                return contract
        raise NotFoundError(f"Contract {contract_id} not found")

    def get_contracts_for_user(self, caller_id: str) -> List[Contract]:
        """Get in-progress contracts where the caller is client or contractor"""
        caller_id = require_id(caller_id, "user id")
        contracts = [
            contract for contract in self._contracts_of(caller_id).values()
            if contract.status == ContractStatus.IN_PROGRESS
        ]
        contracts.sort(key=lambda contract: contract.created_at)
        return contracts

    def get_unpaid_jobs_for_user(self, caller_id: str) -> List[Job]:
        """Get unpaid jobs on the caller's contracts that are not terminated"""
        caller_id = require_id(caller_id, "user id")
        open_contracts = {
            contract_id for contract_id, contract in self._contracts_of(caller_id).items()
            if not contract.is_terminated
        }

        jobs = []
        for contract_id in open_contracts:
            for data in self.storage.find(JOBS_TABLE, {"contract_id": contract_id}):
                job = Job.from_dict(data)
                if not job.is_paid:
                    jobs.append(job)
        jobs.sort(key=lambda job: job.created_at)
        return jobs

    def _contracts_of(self, profile_id: str) -> Dict[str, Contract]:
        """Contracts where the profile is either party, keyed by id"""
        contracts = {}
        for role in ("client_id", "contractor_id"):
            for data in self.storage.find(CONTRACTS_TABLE, {role: profile_id}):
                contract = Contract.from_dict(data)
                contracts[contract.id] = contract
        return contracts
