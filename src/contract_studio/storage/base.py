"""
Store interface and the in-memory backend.
"""

from abc import ABC, abstractmethod
from datetime import datetime

import structlog

from contract_studio.exceptions import PersistenceError
from contract_studio.models.contract import Contract, ContractStatus
from contract_studio.models.document import (
    AnalyzingDocument,
    CompletedDocument,
    Document,
    DocumentStatus,
    RiskLevel,
)

logger = structlog.get_logger(__name__)


class Store(ABC):
    """
    Owner-scoped persistence for documents and contracts.

    Passing ``owner_id=None`` to a read skips the ownership filter; only the
    workflow services do that, keyed by an id they were handed.
    """

    async def init_schema(self) -> None:
        """Create tables if the backend needs them."""

    async def close(self) -> None:
        """Release connections."""

    async def health_check(self) -> bool:
        return True

    # =========================================================================
    # Documents
    # =========================================================================

    @abstractmethod
    async def create_document(self, document: Document, content: str | None = None) -> Document:
        ...

    @abstractmethod
    async def get_document(self, document_id: str, owner_id: str | None = None) -> Document | None:
        ...

    @abstractmethod
    async def list_documents(
        self,
        owner_id: str,
        limit: int = 100,
        offset: int = 0,
        query: str | None = None,
        status: DocumentStatus | None = None,
        risk_level: RiskLevel | None = None,
    ) -> list[Document]:
        """
        List a user's documents, newest first.

        ``query`` matches titles case-insensitively. ``risk_level`` only ever
        matches completed documents.
        """

    @abstractmethod
    async def save_document(self, document: Document) -> Document:
        """Overwrite the stored state of an existing document."""

    @abstractmethod
    async def delete_document(self, document_id: str, owner_id: str) -> bool:
        ...

    @abstractmethod
    async def list_stale_documents(self, created_before: datetime) -> list[AnalyzingDocument]:
        """Documents still analyzing that were created before the cutoff."""

    # =========================================================================
    # Contracts
    # =========================================================================

    @abstractmethod
    async def create_contract(self, contract: Contract) -> Contract:
        ...

    @abstractmethod
    async def get_contract(self, contract_id: str, owner_id: str | None = None) -> Contract | None:
        ...

    @abstractmethod
    async def list_contracts(
        self,
        owner_id: str,
        limit: int = 100,
        offset: int = 0,
        query: str | None = None,
        status: ContractStatus | None = None,
    ) -> list[Contract]:
        """List a user's contracts, newest first, filtered like list_documents."""

    @abstractmethod
    async def save_contract(self, contract: Contract) -> Contract:
        """Overwrite the stored state of an existing contract."""

    @abstractmethod
    async def delete_contract(self, contract_id: str, owner_id: str) -> bool:
        ...

    @abstractmethod
    async def list_stale_contracts(self, updated_before: datetime) -> list[Contract]:
        """Contracts still generating whose last transition predates the cutoff."""


class InMemoryStore(Store):
    """Process-local store used in development and tests."""

    def __init__(self):
        self._documents: dict[str, Document] = {}
        self._contents: dict[str, str] = {}
        self._contracts: dict[str, Contract] = {}

    async def create_document(self, document: Document, content: str | None = None) -> Document:
        self._documents[document.id] = document
        if content is not None:
            self._contents[document.id] = content
        logger.info("document_created", document_id=document.id, owner_id=document.owner_id)
        return document

    async def get_document(self, document_id: str, owner_id: str | None = None) -> Document | None:
        document = self._documents.get(document_id)
        if document is None or (owner_id is not None and document.owner_id != owner_id):
            return None
        return document

    async def list_documents(
        self,
        owner_id: str,
        limit: int = 100,
        offset: int = 0,
        query: str | None = None,
        status: DocumentStatus | None = None,
        risk_level: RiskLevel | None = None,
    ) -> list[Document]:
        owned = [
            d for d in self._documents.values()
            if d.owner_id == owner_id
            and _title_matches(d.title, query)
            and (status is None or d.status == status)
            and (risk_level is None or (isinstance(d, CompletedDocument) and d.risk_level == risk_level))
        ]
        owned.sort(key=lambda d: d.created_at, reverse=True)
        return owned[offset:offset + limit]

    async def save_document(self, document: Document) -> Document:
        if document.id not in self._documents:
            raise PersistenceError(f"Document {document.id} no longer exists")
        self._documents[document.id] = document
        return document

    async def delete_document(self, document_id: str, owner_id: str) -> bool:
        if await self.get_document(document_id, owner_id) is None:
            return False
        del self._documents[document_id]
        self._contents.pop(document_id, None)
        logger.info("document_deleted", document_id=document_id)
        return True

    async def list_stale_documents(self, created_before: datetime) -> list[AnalyzingDocument]:
        return [
            d for d in self._documents.values()
            if isinstance(d, AnalyzingDocument) and d.created_at < created_before
        ]

    def get_content(self, document_id: str) -> str | None:
        return self._contents.get(document_id)

    async def create_contract(self, contract: Contract) -> Contract:
        self._contracts[contract.id] = contract
        logger.info("contract_created", contract_id=contract.id, owner_id=contract.owner_id)
        return contract

    async def get_contract(self, contract_id: str, owner_id: str | None = None) -> Contract | None:
        contract = self._contracts.get(contract_id)
        if contract is None or (owner_id is not None and contract.owner_id != owner_id):
            return None
        return contract

    async def list_contracts(
        self,
        owner_id: str,
        limit: int = 100,
        offset: int = 0,
        query: str | None = None,
        status: ContractStatus | None = None,
    ) -> list[Contract]:
        owned = [
            c for c in self._contracts.values()
            if c.owner_id == owner_id
            and _title_matches(c.title, query)
            and (status is None or c.status == status)
        ]
        owned.sort(key=lambda c: c.created_at, reverse=True)
        return owned[offset:offset + limit]

    async def save_contract(self, contract: Contract) -> Contract:
        if contract.id not in self._contracts:
            raise PersistenceError(f"Contract {contract.id} no longer exists")
        self._contracts[contract.id] = contract
        return contract

    async def delete_contract(self, contract_id: str, owner_id: str) -> bool:
        if await self.get_contract(contract_id, owner_id) is None:
            return False
        del self._contracts[contract_id]
        logger.info("contract_deleted", contract_id=contract_id)
        return True

    async def list_stale_contracts(self, updated_before: datetime) -> list[Contract]:
        return [
            c for c in self._contracts.values()
            if c.status == ContractStatus.GENERATING and c.updated_at < updated_before
        ]


def _title_matches(title: str, query: str | None) -> bool:
    return not query or query.lower() in title.lower()
