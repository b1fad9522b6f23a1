"""
Ledger System Module

Builds the Ledger Store and every service on top of it from configuration.
"""

from typing import Optional

from .analytics import AnalyticsEngine
from .balances import BalanceService
from .config import LedgerConfig, get_config
from .payments import PaymentEngine
from .provisioning import LedgerProvisioner
from .queries import QueryService
from .storage import StorageInterface, create_storage


class LedgerSystem:
    """Marketplace ledger with all components initialized"""
    
    def __init__(self, storage: Optional[StorageInterface] = None, config: Optional[LedgerConfig] = None):
        self.config = config or get_config()
        
        # Initialize storage
        if storage is None:
            storage = create_storage(self.config.database_url, timeout=self.config.database_timeout)
        self.storage = storage
        
        # Initialize core components
        self.queries = QueryService(self.storage)
        self.payments = PaymentEngine(self.storage)
        self.balances = BalanceService(self.storage, deposit_cap_ratio=self.config.deposit_cap_ratio)
        self.analytics = AnalyticsEngine(self.storage, default_limit=self.config.best_clients_default_limit)
        self.provisioner = LedgerProvisioner(self.storage)
    
    def close(self) -> None:
        self.storage.close()
