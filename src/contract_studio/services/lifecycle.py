"""
Lifecycle Coordinator

State machines for documents and contracts.

Documents: analyzing(progress) -> completed | error, exactly once. Progress
only moves forward; anything arriving after a terminal state is ignored.

Contracts: draft -> generating -> generated | failed, generated -> saved.
A failed contract may be generated again, and so may one left generating
longer than the stale-generation window.

Every write for an entity runs under that entity's lock so updates apply in
issuance order and a stale update cannot overwrite a terminal state.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any
from uuid import uuid4
from weakref import WeakValueDictionary

import structlog

from contract_studio.exceptions import NotFoundError, ValidationError
from contract_studio.models.contract import Contract, ContractStatus
from contract_studio.models.document import (
    AnalysisResult,
    AnalyzingDocument,
    CompletedDocument,
    Document,
    ErrorDocument,
    utcnow,
)
from contract_studio.storage.base import Store

logger = structlog.get_logger(__name__)


# Milestones reported by the analysis workflow
PROGRESS_STARTED = 10
PROGRESS_DISPATCHED = 40
PROGRESS_RECEIVED = 80

STALE_ANALYSIS_MESSAGE = "Analysis timed out"
STALE_GENERATION_MESSAGE = "Generation timed out"

CONTRACT_TRANSITIONS: dict[ContractStatus, frozenset[ContractStatus]] = {
    ContractStatus.DRAFT: frozenset({ContractStatus.GENERATING}),
    ContractStatus.GENERATING: frozenset({ContractStatus.GENERATED, ContractStatus.FAILED}),
    ContractStatus.GENERATED: frozenset({ContractStatus.SAVED}),
    ContractStatus.FAILED: frozenset({ContractStatus.GENERATING}),
    ContractStatus.SAVED: frozenset(),
}


class LifecycleCoordinator:
    """Applies state transitions to stored documents and contracts."""

    def __init__(self, store: Store, generation_stale_after: timedelta | None = None):
        self.store = store
        self.generation_stale_after = generation_stale_after
        self._locks: WeakValueDictionary[str, asyncio.Lock] = WeakValueDictionary()

    def _lock(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    # =========================================================================
    # Documents
    # =========================================================================

    async def create_document(self, owner_id: str, title: str, content: str) -> AnalyzingDocument:
        """Insert a document in analyzing(0) before any AI work starts."""
        document = AnalyzingDocument(id=str(uuid4()), owner_id=owner_id, title=title)
        await self.store.create_document(document, content=content)
        return document

    async def get_document(self, document_id: str, owner_id: str | None = None) -> Document:
        document = await self.store.get_document(document_id, owner_id)
        if document is None:
            raise NotFoundError(f"Document {document_id} not found")
        return document

    async def report_progress(self, document_id: str, progress: int) -> Document:
        """
        Record analysis progress.

        Values lower than the current progress, and any update after a terminal
        state, are ignored and the current document is returned.
        """
        if not 0 <= progress <= 100:
            raise ValidationError(f"Progress must be between 0 and 100, got {progress}")

        async with self._lock(f"document:{document_id}"):
            current = await self.get_document(document_id)
            match current:
                case AnalyzingDocument() if progress > current.progress:
                    updated = current.model_copy(update={"progress": progress, "updated_at": utcnow()})
                    await self.store.save_document(updated)
                    logger.debug("document_progress", document_id=document_id, progress=progress)
                    return updated
                case AnalyzingDocument():
                    return current
                case _:
                    logger.info(
                        "late_progress_ignored",
                        document_id=document_id,
                        status=current.status,
                        progress=progress,
                    )
                    return current

    async def complete(
        self,
        document_id: str,
        result: AnalysisResult,
        body: str | None = None,
    ) -> Document:
        """Move a document to completed with every risk field at once."""
        async with self._lock(f"document:{document_id}"):
            current = await self.get_document(document_id)
            if not isinstance(current, AnalyzingDocument):
                logger.warning("late_terminal_ignored", document_id=document_id, status=current.status)
                return current

            completed = CompletedDocument(
                **self._document_common(current),
                risk_level=result.risk_level,
                risk_score=result.risk_score,
                findings=list(result.findings),
                recommendations=result.recommendations,
                body=body,
            )
            await self.store.save_document(completed)

        logger.info(
            "document_completed",
            document_id=document_id,
            risk_level=completed.risk_level.value,
            risk_score=completed.risk_score,
        )
        return completed

    async def fail(self, document_id: str, message: str) -> Document:
        """Move a document to error."""
        async with self._lock(f"document:{document_id}"):
            current = await self.get_document(document_id)
            if not isinstance(current, AnalyzingDocument):
                logger.warning("late_terminal_ignored", document_id=document_id, status=current.status)
                return current

            failed = ErrorDocument(**self._document_common(current), error=message)
            await self.store.save_document(failed)

        logger.info("document_failed", document_id=document_id, error=message)
        return failed

    async def expire_stale(self, max_age: timedelta, now: datetime | None = None) -> list[Document]:
        """Fail documents that have been analyzing for longer than max_age."""
        cutoff = (now or utcnow()) - max_age
        expired: list[Document] = []
        for document in await self.store.list_stale_documents(cutoff):
            updated = await self.fail(document.id, STALE_ANALYSIS_MESSAGE)
            if isinstance(updated, ErrorDocument) and updated.error == STALE_ANALYSIS_MESSAGE:
                expired.append(updated)
        logger.info("stale_documents_expired", count=len(expired))
        return expired

    async def delete_document(self, document_id: str, owner_id: str) -> None:
        async with self._lock(f"document:{document_id}"):
            if not await self.store.delete_document(document_id, owner_id):
                raise NotFoundError(f"Document {document_id} not found")

    @staticmethod
    def _document_common(document: Document) -> dict[str, Any]:
        return {
            "id": document.id,
            "owner_id": document.owner_id,
            "title": document.title,
            "created_at": document.created_at,
            "updated_at": utcnow(),
        }

    # =========================================================================
    # Contracts
    # =========================================================================

    async def create_contract(self, owner_id: str, **fields: Any) -> Contract:
        """Capture contract parameters as a draft."""
        contract = Contract(id=str(uuid4()), owner_id=owner_id, **fields)
        await self.store.create_contract(contract)
        return contract

    async def get_contract(self, contract_id: str, owner_id: str | None = None) -> Contract:
        contract = await self.store.get_contract(contract_id, owner_id)
        if contract is None:
            raise NotFoundError(f"Contract {contract_id} not found")
        return contract

    async def begin_generation(self, contract_id: str, owner_id: str | None = None) -> Contract:
        """
        draft/failed -> generating. Rejects contracts already generating or done,
        unless the earlier generation has outlived ``generation_stale_after``.
        """
        async with self._lock(f"contract:{contract_id}"):
            current = await self.get_contract(contract_id, owner_id)
            if self._is_stale_generation(current):
                logger.warning("stale_generation_restarted", contract_id=contract_id)
            elif ContractStatus.GENERATING not in CONTRACT_TRANSITIONS[current.status]:
                raise ValidationError(
                    f"Contract {contract_id} cannot be generated while {current.status.value}"
                )
            return await self._transition(current, ContractStatus.GENERATING, error=None)

    async def record_generated(self, contract_id: str, content: str) -> Contract:
        """generating -> generated with content. No-op from any other status."""
        async with self._lock(f"contract:{contract_id}"):
            current = await self.get_contract(contract_id)
            if current.status != ContractStatus.GENERATING:
                logger.warning("late_generation_ignored", contract_id=contract_id, status=current.status.value)
                return current
            return await self._transition(
                current, ContractStatus.GENERATED, contract_content=content, error=None
            )

    async def record_failure(self, contract_id: str, message: str) -> Contract:
        """generating -> failed. Content is left untouched."""
        async with self._lock(f"contract:{contract_id}"):
            current = await self.get_contract(contract_id)
            if current.status != ContractStatus.GENERATING:
                logger.warning("late_generation_ignored", contract_id=contract_id, status=current.status.value)
                return current
            return await self._transition(current, ContractStatus.FAILED, error=message)

    async def save_contract(self, contract_id: str, owner_id: str) -> Contract:
        """generated -> saved on explicit user action. Saving twice is a no-op."""
        async with self._lock(f"contract:{contract_id}"):
            current = await self.get_contract(contract_id, owner_id)
            if current.status == ContractStatus.SAVED:
                return current
            if current.status != ContractStatus.GENERATED:
                raise ValidationError(
                    f"Only generated contracts can be saved; contract is {current.status.value}"
                )
            return await self._transition(current, ContractStatus.SAVED)

    async def delete_contract(self, contract_id: str, owner_id: str) -> None:
        async with self._lock(f"contract:{contract_id}"):
            if not await self.store.delete_contract(contract_id, owner_id):
                raise NotFoundError(f"Contract {contract_id} not found")

    async def expire_stale_contracts(self, max_age: timedelta, now: datetime | None = None) -> list[Contract]:
        """Fail contracts that have been generating for longer than max_age."""
        cutoff = (now or utcnow()) - max_age
        expired: list[Contract] = []
        for contract in await self.store.list_stale_contracts(cutoff):
            updated = await self.record_failure(contract.id, STALE_GENERATION_MESSAGE)
            if updated.status == ContractStatus.FAILED and updated.error == STALE_GENERATION_MESSAGE:
                expired.append(updated)
        logger.info("stale_contracts_expired", count=len(expired))
        return expired

    def _is_stale_generation(self, contract: Contract) -> bool:
        if contract.status != ContractStatus.GENERATING or self.generation_stale_after is None:
            return False
        return contract.updated_at < utcnow() - self.generation_stale_after

    async def _transition(self, contract: Contract, status: ContractStatus, **changes: Any) -> Contract:
        updated = contract.model_copy(update={"status": status, "updated_at": utcnow(), **changes})
        await self.store.save_contract(updated)
        logger.info(
            "contract_transition",
            contract_id=contract.id,
            from_status=contract.status.value,
            to_status=status.value,
        )
        return updated
