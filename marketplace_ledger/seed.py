#!/usr/bin/env python3
"""Seed script for the marketplace ledger

Loads a fixed demo data set:
- 4 clients and 4 contractors across several professions
- 9 contracts in every status
- unpaid jobs on open contracts and paid jobs with payment dates for analytics

Run with: python -m marketplace_ledger.seed
"""

from datetime import datetime, timezone

from .config import get_config
from .logging_config import setup_logging, get_logger
from .storage import LEDGER_TABLES
from .system import LedgerSystem

PROFILES = [
    # id, first name, last name, profession, balance, type
    ("1", "Harry", "Potter", "Wizard", "1150", "client"),
    ("2", "Mr", "Robot", "Hacker", "231.11", "client"),
    ("3", "John", "Snow", "Knows nothing", "451.3", "client"),
    ("4", "Ash", "Kethcum", "Pokemon master", "1.3", "client"),
    ("5", "John", "Lenon", "Musician", "64", "contractor"),
    ("6", "Linus", "Torvalds", "Programmer", "1214", "contractor"),
    ("7", "Alan", "Turing", "Programmer", "22", "contractor"),
    ("8", "Aragorn", "Elessar", "Fighter", "314", "contractor"),
]

CONTRACTS = [
    # id, client, contractor, status, terms
    ("1", "1", "5", "terminated", "bla bla bla"),
    ("2", "1", "6", "in_progress", "bla bla bla"),
    ("3", "2", "6", "in_progress", "bla bla bla"),
    ("4", "2", "7", "in_progress", "bla bla bla"),
    ("5", "3", "8", "new", "bla bla bla"),
    ("6", "3", "7", "in_progress", "bla bla bla"),
    ("7", "4", "7", "in_progress", "bla bla bla"),
    ("8", "4", "6", "in_progress", "bla bla bla"),
    ("9", "4", "8", "in_progress", "bla bla bla"),
]

JOBS = [
    # id, contract, description, price, payment date (None = unpaid)
    ("1", "1", "work", "200", None),
    ("2", "2", "work", "201", None),
    ("3", "3", "work", "202", None),
    ("4", "4", "work", "200", None),
    ("5", "7", "work", "200", None),
    ("6", "7", "work", "2020", datetime(2020, 8, 15, 19, 11, 26, tzinfo=timezone.utc)),
    ("7", "7", "work", "200", datetime(2020, 8, 15, 19, 11, 26, tzinfo=timezone.utc)),
    ("8", "6", "work", "200", datetime(2020, 8, 16, 19, 11, 26, tzinfo=timezone.utc)),
    ("9", "5", "work", "200", datetime(2020, 8, 17, 19, 11, 26, tzinfo=timezone.utc)),
    ("10", "3", "work", "200", datetime(2020, 8, 17, 19, 11, 26, tzinfo=timezone.utc)),
    ("11", "4", "work", "21", datetime(2020, 8, 10, 19, 11, 26, tzinfo=timezone.utc)),
    ("12", "4", "work", "21", datetime(2020, 8, 15, 19, 11, 26, tzinfo=timezone.utc)),
    ("13", "3", "work", "121", datetime(2020, 8, 15, 19, 11, 26, tzinfo=timezone.utc)),
    ("14", "3", "work", "121", datetime(2020, 8, 14, 23, 11, 26, tzinfo=timezone.utc)),
]


def seed(system: LedgerSystem) -> None:
    """Replace all ledger records with the demo data set"""
    for table in LEDGER_TABLES:
        system.storage.clear_table(table)
    
    provisioner = system.provisioner
    for profile_id, first_name, last_name, profession, balance, profile_type in PROFILES:
        provisioner.create_profile(
            first_name, last_name, profile_type,
            profession=profession, balance=balance, profile_id=profile_id
        )
    
    for contract_id, client_id, contractor_id, status, terms in CONTRACTS:
        provisioner.create_contract(
            client_id, contractor_id, terms=terms, status=status, contract_id=contract_id
        )
    
    for job_id, contract_id, description, price, payment_date in JOBS:
        provisioner.create_job(
            contract_id, price, description=description,
            paid=payment_date is not None, payment_date=payment_date, job_id=job_id
        )


def main() -> None:
    config = get_config()
    setup_logging(config.log_level, config.log_format, config.log_file)
    logger = get_logger("marketplace_ledger.seed")
    
    system = LedgerSystem(config=config)
    try:
        seed(system)
        logger.info(
            f"Seeded {len(PROFILES)} profiles, {len(CONTRACTS)} contracts "
            f"and {len(JOBS)} jobs into {config.database_url}"
        )
    finally:
        system.close()


if __name__ == "__main__":
    main()
