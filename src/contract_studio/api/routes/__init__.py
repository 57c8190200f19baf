"""
API route modules.
"""

from contract_studio.api.routes import catalog, contracts, documents, functions

__all__ = ["catalog", "contracts", "documents", "functions"]
