"""
Shared module package.

Cross-cutting concerns of the API: domain error mapping, security
headers, rate limiting and logging setup.
"""
