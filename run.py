#!/usr/bin/env python3
"""
Marketplace Ledger Entry Point

Starts the FastAPI server with the marketplace ledger.
"""

import sys

from marketplace_ledger.api import run_server
from marketplace_ledger.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("Starting Marketplace Ledger...")
    print(f"Database: {config.database_url}")
    print(f"API available at: http://localhost:{config.api_port}")
    print(f"Documentation at: http://localhost:{config.api_port}/docs")
    print()
    
    try:
        run_server()
    except KeyboardInterrupt:
        print("\nShutting down Marketplace Ledger...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
