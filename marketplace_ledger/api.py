"""
FastAPI REST API Module

HTTP boundary for the marketplace ledger. The caller is resolved from the
``profile_id`` header; results are relayed as JSON and classified ledger
failures are mapped to status codes.
"""

from decimal import Decimal
from typing import Dict, Optional

from fastapi import FastAPI, HTTPException, Depends, Header, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
import uvicorn

from . import __version__
from .config import get_config
from .errors import ErrorKind, LedgerError, NotFoundError
from .logging_config import setup_logging
from .models import Profile
from .system import LedgerSystem


ERROR_STATUS: Dict[ErrorKind, int] = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.UNAUTHORIZED: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.ALREADY_PAID: 409,
    ErrorKind.INSUFFICIENT_FUNDS: 422,
    ErrorKind.POLICY_VIOLATION: 422,
    ErrorKind.STORE_ERROR: 503,
}


class DepositRequest(BaseModel):
    amount: Decimal = Field(..., description="Amount to deposit, as a number or decimal string")


def get_ledger_system(request: Request) -> LedgerSystem:
    """Ledger system attached to the app, built from configuration on first use"""
    system = request.app.state.ledger
    if system is None:
        system = LedgerSystem()
        request.app.state.ledger = system
    return system


def get_caller(
    profile_id: Optional[str] = Header(None, convert_underscores=False),
    system: LedgerSystem = Depends(get_ledger_system)
) -> Profile:
    """Resolve the authenticated caller from the profile_id header"""
    if not profile_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing profile_id header")
    try:
        return system.queries.get_profile(profile_id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown profile")


def create_app(system: Optional[LedgerSystem] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Marketplace Ledger API",
        description="Contracts, job payments, deposits and revenue analytics",
        version=__version__
    )
    app.state.ledger = system

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError):
        return JSONResponse(
            status_code=ERROR_STATUS[exc.kind],
            content={"success": False, **exc.to_dict()}
        )

    @app.get("/health")
    def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "marketplace_ledger_api",
            "version": __version__
        }

    @app.get("/contracts/{contract_id}")
    def get_contract(
        contract_id: str,
        caller: Profile = Depends(get_caller),
        system: LedgerSystem = Depends(get_ledger_system)
    ):
        """Contract by id, if the caller is a party to it"""
        return system.queries.get_contract_by_id(contract_id, caller.id).to_dict()

    @app.get("/contracts")
    def list_contracts(
        caller: Profile = Depends(get_caller),
        system: LedgerSystem = Depends(get_ledger_system)
    ):
        """In-progress contracts of the caller"""
        return [contract.to_dict() for contract in system.queries.get_contracts_for_user(caller.id)]

    @app.get("/jobs/unpaid")
    def list_unpaid_jobs(
        caller: Profile = Depends(get_caller),
        system: LedgerSystem = Depends(get_ledger_system)
    ):
        """Unpaid jobs on the caller's active contracts"""
        return [job.to_dict() for job in system.queries.get_unpaid_jobs_for_user(caller.id)]

    @app.post("/jobs/{job_id}/pay")
    def pay_job(
        job_id: str,
        caller: Profile = Depends(get_caller),
        system: LedgerSystem = Depends(get_ledger_system)
    ):
        """Pay for a job out of the caller's balance"""
        receipt = system.payments.pay_job(job_id, caller.id)
        return {"success": True, "payment": receipt.to_dict()}

    @app.post("/balances/deposit/{user_id}")
    def deposit(
        user_id: str,
        request: DepositRequest,
        caller: Profile = Depends(get_caller),
        system: LedgerSystem = Depends(get_ledger_system)
    ):
        """Deposit into the caller's own balance"""
        receipt = system.balances.deposit(user_id, caller.id, request.amount)
        return {"success": True, "deposit": receipt.to_dict()}

    @app.get("/admin/best-profession")
    def best_profession(
        start: str,
        end: str,
        caller: Profile = Depends(get_caller),
        system: LedgerSystem = Depends(get_ledger_system)
    ):
        """Profession that earned the most in the period"""
        return {"bestProfession": system.analytics.best_profession(start, end)}

    @app.get("/admin/best-clients")
    def best_clients(
        start: str,
        end: str,
        limit: Optional[int] = None,
        caller: Profile = Depends(get_caller),
        system: LedgerSystem = Depends(get_ledger_system)
    ):
        """Clients who paid the most in the period"""
        clients = system.analytics.best_clients(start, end, limit)
        return {"clients": [client.to_dict() for client in clients]}

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Run the API server"""
    config = get_config()
    setup_logging(config.log_level, config.log_format, config.log_file)
    uvicorn.run(create_app(), host=host or config.api_host, port=port or config.api_port)
