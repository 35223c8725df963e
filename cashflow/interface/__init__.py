"""Mini README: Network interface of the cashflow ledger.

Exports the FastAPI application factory serving the REST API and the live
synchronisation channel.
"""

from .web_app import create_application

__all__ = ["create_application"]
