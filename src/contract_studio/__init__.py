"""
Contract Studio: AI-assisted legal document workflow

Analyzes uploaded legal documents for risk and drafts new contracts from
structured parameters through interchangeable hosted LLM backends.
"""

__version__ = "0.1.0"

from contract_studio.config import get_settings

__all__ = ["get_settings", "__version__"]
