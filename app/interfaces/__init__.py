"""
Interfaces layer package.

HTTP and WebSocket entry points: FastAPI routers, Pydantic schemas and
dependency wiring. Routes call use cases and shape their results.
"""
