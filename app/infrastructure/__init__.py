"""
Infrastructure layer package.

Adapters for the domain ports: the SQL ledger, bcrypt and JWT, and the
WebSocket event publisher.
"""
