"""
Trading bounded context, domain layer.

This module contains all domain logic for the trading context:
- Users, holdings and coins
- Trade execution and price impact
- Random-walk price simulation
- Ports for the ledger store, authentication and event publishing
"""
