"""
Infrastructure adapters for the trading bounded context.

Each adapter implements a domain port (ABC) and connects
to external systems: the SQL ledger store, password hashing,
token signing and the real-time stream.
"""
