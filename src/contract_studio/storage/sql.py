"""
SQL database adapter using SQLAlchemy async.

PostgreSQL (asyncpg) in production; SQLite (aiosqlite) works for local use.
"""

import json
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncGenerator

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from contract_studio.exceptions import PersistenceError
from contract_studio.models.contract import Contract, ContractStatus, Party
from contract_studio.models.document import (
    AnalyzingDocument,
    CompletedDocument,
    Document,
    DocumentStatus,
    ErrorDocument,
    RiskLevel,
)
from contract_studio.storage.base import Store

logger = structlog.get_logger(__name__)


SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS documents (
        id VARCHAR(64) PRIMARY KEY,
        user_id VARCHAR(128) NOT NULL,
        title TEXT NOT NULL,
        content TEXT,
        status VARCHAR(16) NOT NULL,
        progress INTEGER,
        risk_level VARCHAR(8),
        risk_score INTEGER,
        findings TEXT,
        recommendations TEXT,
        error TEXT,
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_documents_user_id ON documents (user_id)",
    """
    CREATE TABLE IF NOT EXISTS contracts (
        id VARCHAR(64) PRIMARY KEY,
        user_id VARCHAR(128) NOT NULL,
        title TEXT NOT NULL,
        contract_type VARCHAR(64) NOT NULL,
        first_party_name TEXT NOT NULL,
        first_party_address TEXT,
        first_party_email TEXT,
        second_party_name TEXT NOT NULL,
        second_party_address TEXT,
        second_party_email TEXT,
        jurisdiction VARCHAR(32),
        description TEXT,
        key_terms TEXT,
        intensity VARCHAR(16) NOT NULL,
        ai_model VARCHAR(32) NOT NULL,
        status VARCHAR(16) NOT NULL,
        contract_content TEXT,
        error TEXT,
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_contracts_user_id ON contracts (user_id)",
)


def _parse_timestamp(value: Any) -> datetime:
    # SQLite hands timestamps back as ISO strings
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


def _library_filters(owner_id: str, query: str | None) -> tuple[list[str], dict[str, Any]]:
    """Owner scope plus an optional case-insensitive title search."""
    where = ["user_id = :user_id"]
    params: dict[str, Any] = {"user_id": owner_id}
    if query:
        escaped = query.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        where.append("LOWER(title) LIKE :title_pattern ESCAPE '\\'")
        params["title_pattern"] = f"%{escaped}%"
    return where, params


class SQLStore(Store):
    """
    SQL database adapter.

    Handles all database operations for documents and contracts.
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url

        engine_kwargs: dict[str, Any] = {"echo": echo}
        if database_url.startswith("postgresql"):
            engine_kwargs.update(pool_size=5, max_overflow=10, pool_pre_ping=True)

        self.engine = create_async_engine(database_url, **engine_kwargs)

        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get a database session; driver failures surface as PersistenceError."""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("database_operation_failed", error=str(e))
                raise PersistenceError(f"Database operation failed: {e}") from e
            except Exception:
                await session.rollback()
                raise

    async def init_schema(self) -> None:
        """Create tables and indexes if missing."""
        async with self.session() as session:
            for statement in SCHEMA_STATEMENTS:
                await session.execute(text(statement))
        logger.info("database_schema_ready")

    async def close(self) -> None:
        """Close database connections."""
        await self.engine.dispose()

    async def health_check(self) -> bool:
        """Check database connectivity."""
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except PersistenceError as e:
            logger.error("database_health_check_failed", error=str(e))
            return False

    # =========================================================================
    # Document Operations
    # =========================================================================

    async def create_document(self, document: Document, content: str | None = None) -> Document:
        """Create a new document record."""
        params = self._document_params(document)
        params["content"] = content
        async with self.session() as session:
            await session.execute(
                text("""
                    INSERT INTO documents (
                        id, user_id, title, content, status, progress, risk_level,
                        risk_score, findings, recommendations, error, created_at, updated_at
                    ) VALUES (
                        :id, :user_id, :title, :content, :status, :progress, :risk_level,
                        :risk_score, :findings, :recommendations, :error, :created_at, :updated_at
                    )
                """),
                params,
            )
        logger.info("document_created", document_id=document.id, owner_id=document.owner_id)
        return document

    async def get_document(self, document_id: str, owner_id: str | None = None) -> Document | None:
        """Get a document by ID, optionally scoped to its owner."""
        query = "SELECT * FROM documents WHERE id = :id"
        params: dict[str, Any] = {"id": document_id}
        if owner_id is not None:
            query += " AND user_id = :user_id"
            params["user_id"] = owner_id

        async with self.session() as session:
            result = await session.execute(text(query), params)
            row = result.mappings().fetchone()
            if row:
                return self._row_to_document(row)
            return None

    async def list_documents(
        self,
        owner_id: str,
        limit: int = 100,
        offset: int = 0,
        query: str | None = None,
        status: DocumentStatus | None = None,
        risk_level: RiskLevel | None = None,
    ) -> list[Document]:
        """List a user's documents, newest first."""
        where, params = _library_filters(owner_id, query)
        if status is not None:
            where.append("status = :status")
            params["status"] = DocumentStatus(status).value
        if risk_level is not None:
            where.append("status = :completed AND risk_level = :risk_level")
            params["completed"] = DocumentStatus.COMPLETED.value
            params["risk_level"] = RiskLevel(risk_level).value

        async with self.session() as session:
            result = await session.execute(
                text(f"""
                    SELECT * FROM documents WHERE {' AND '.join(where)}
                    ORDER BY created_at DESC LIMIT :limit OFFSET :offset
                """),
                {**params, "limit": limit, "offset": offset},
            )
            return [self._row_to_document(row) for row in result.mappings().fetchall()]

    async def save_document(self, document: Document) -> Document:
        """Write every status field of a document in one statement."""
        params = self._document_params(document)
        # The analyzed text replaces the submitted content only when present
        params["body"] = document.body if isinstance(document, CompletedDocument) else None

        async with self.session() as session:
            result = await session.execute(
                text("""
                    UPDATE documents SET
                        status = :status, progress = :progress, risk_level = :risk_level,
                        risk_score = :risk_score, findings = :findings,
                        recommendations = :recommendations, error = :error,
                        content = COALESCE(:body, content), updated_at = :updated_at
                    WHERE id = :id
                """),
                params,
            )
            if result.rowcount == 0:
                raise PersistenceError(f"Document {document.id} no longer exists")

        logger.info("document_saved", document_id=document.id, status=document.status)
        return document

    async def delete_document(self, document_id: str, owner_id: str) -> bool:
        async with self.session() as session:
            result = await session.execute(
                text("DELETE FROM documents WHERE id = :id AND user_id = :user_id"),
                {"id": document_id, "user_id": owner_id},
            )
            deleted = result.rowcount > 0
        if deleted:
            logger.info("document_deleted", document_id=document_id)
        return deleted

    async def list_stale_documents(self, created_before: datetime) -> list[AnalyzingDocument]:
        async with self.session() as session:
            result = await session.execute(
                text("""
                    SELECT * FROM documents
                    WHERE status = :status AND created_at < :cutoff
                """),
                {"status": DocumentStatus.ANALYZING.value, "cutoff": created_before},
            )
            rows = result.mappings().fetchall()
        return [doc for doc in map(self._row_to_document, rows) if isinstance(doc, AnalyzingDocument)]

    # =========================================================================
    # Contract Operations
    # =========================================================================

    async def create_contract(self, contract: Contract) -> Contract:
        """Create a new contract record."""
        async with self.session() as session:
            await session.execute(
                text("""
                    INSERT INTO contracts (
                        id, user_id, title, contract_type,
                        first_party_name, first_party_address, first_party_email,
                        second_party_name, second_party_address, second_party_email,
                        jurisdiction, description, key_terms, intensity, ai_model,
                        status, contract_content, error, created_at, updated_at
                    ) VALUES (
                        :id, :user_id, :title, :contract_type,
                        :first_party_name, :first_party_address, :first_party_email,
                        :second_party_name, :second_party_address, :second_party_email,
                        :jurisdiction, :description, :key_terms, :intensity, :ai_model,
                        :status, :contract_content, :error, :created_at, :updated_at
                    )
                """),
                self._contract_params(contract),
            )
        logger.info("contract_created", contract_id=contract.id, owner_id=contract.owner_id)
        return contract

    async def get_contract(self, contract_id: str, owner_id: str | None = None) -> Contract | None:
        query = "SELECT * FROM contracts WHERE id = :id"
        params: dict[str, Any] = {"id": contract_id}
        if owner_id is not None:
            query += " AND user_id = :user_id"
            params["user_id"] = owner_id

        async with self.session() as session:
            result = await session.execute(text(query), params)
            row = result.mappings().fetchone()
            if row:
                return self._row_to_contract(row)
            return None

    async def list_contracts(
        self,
        owner_id: str,
        limit: int = 100,
        offset: int = 0,
        query: str | None = None,
        status: ContractStatus | None = None,
    ) -> list[Contract]:
        where, params = _library_filters(owner_id, query)
        if status is not None:
            where.append("status = :status")
            params["status"] = ContractStatus(status).value

        async with self.session() as session:
            result = await session.execute(
                text(f"""
                    SELECT * FROM contracts WHERE {' AND '.join(where)}
                    ORDER BY created_at DESC LIMIT :limit OFFSET :offset
                """),
                {**params, "limit": limit, "offset": offset},
            )
            return [self._row_to_contract(row) for row in result.mappings().fetchall()]

    async def save_contract(self, contract: Contract) -> Contract:
        """Update the status and content fields of a contract."""
        async with self.session() as session:
            result = await session.execute(
                text("""
                    UPDATE contracts SET
                        status = :status, contract_content = :contract_content,
                        error = :error, updated_at = :updated_at
                    WHERE id = :id
                """),
                {
                    "id": contract.id,
                    "status": contract.status.value,
                    "contract_content": contract.contract_content,
                    "error": contract.error,
                    "updated_at": contract.updated_at,
                },
            )
            if result.rowcount == 0:
                raise PersistenceError(f"Contract {contract.id} no longer exists")

        logger.info("contract_saved", contract_id=contract.id, status=contract.status.value)
        return contract

    async def delete_contract(self, contract_id: str, owner_id: str) -> bool:
        async with self.session() as session:
            result = await session.execute(
                text("DELETE FROM contracts WHERE id = :id AND user_id = :user_id"),
                {"id": contract_id, "user_id": owner_id},
            )
            deleted = result.rowcount > 0
        if deleted:
            logger.info("contract_deleted", contract_id=contract_id)
        return deleted

    async def list_stale_contracts(self, updated_before: datetime) -> list[Contract]:
        async with self.session() as session:
            result = await session.execute(
                text("""
                    SELECT * FROM contracts
                    WHERE status = :status AND updated_at < :cutoff
                """),
                {"status": ContractStatus.GENERATING.value, "cutoff": updated_before},
            )
            return [self._row_to_contract(row) for row in result.mappings().fetchall()]

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _document_params(self, document: Document) -> dict[str, Any]:
        params: dict[str, Any] = {
            "id": document.id,
            "user_id": document.owner_id,
            "title": document.title,
            "status": document.status,
            "progress": None,
            "risk_level": None,
            "risk_score": None,
            "findings": None,
            "recommendations": None,
            "error": None,
            "created_at": document.created_at,
            "updated_at": document.updated_at,
        }
        match document:
            case AnalyzingDocument(progress=progress):
                params["progress"] = progress
            case CompletedDocument():
                params["risk_level"] = document.risk_level.value
                params["risk_score"] = document.risk_score
                params["findings"] = json.dumps(document.findings)
                params["recommendations"] = document.recommendations
            case ErrorDocument(error=error):
                params["error"] = error
        return params

    def _row_to_document(self, row: Any) -> Document:
        """Convert database row to the matching Document variant."""
        common = {
            "id": row["id"],
            "owner_id": row["user_id"],
            "title": row["title"],
            "created_at": _parse_timestamp(row["created_at"]),
            "updated_at": _parse_timestamp(row["updated_at"]),
        }
        match DocumentStatus(row["status"]):
            case DocumentStatus.ANALYZING:
                return AnalyzingDocument(progress=row["progress"] or 0, **common)
            case DocumentStatus.COMPLETED:
                return CompletedDocument(
                    risk_level=row["risk_level"],
                    risk_score=row["risk_score"],
                    findings=json.loads(row["findings"]) if row["findings"] else [],
                    recommendations=row["recommendations"],
                    body=row["content"],
                    **common,
                )
            case DocumentStatus.ERROR:
                return ErrorDocument(error=row["error"] or "", **common)

    def _contract_params(self, contract: Contract) -> dict[str, Any]:
        return {
            "id": contract.id,
            "user_id": contract.owner_id,
            "title": contract.title,
            "contract_type": contract.contract_type.value,
            "first_party_name": contract.first_party.name,
            "first_party_address": contract.first_party.address,
            "first_party_email": contract.first_party.email,
            "second_party_name": contract.second_party.name,
            "second_party_address": contract.second_party.address,
            "second_party_email": contract.second_party.email,
            "jurisdiction": contract.jurisdiction,
            "description": contract.description,
            "key_terms": contract.key_terms,
            "intensity": contract.intensity.value,
            "ai_model": contract.ai_model,
            "status": contract.status.value,
            "contract_content": contract.contract_content,
            "error": contract.error,
            "created_at": contract.created_at,
            "updated_at": contract.updated_at,
        }

    def _row_to_contract(self, row: Any) -> Contract:
        """Convert database row to Contract model."""
        return Contract(
            id=row["id"],
            owner_id=row["user_id"],
            title=row["title"],
            contract_type=row["contract_type"],
            first_party=Party(
                name=row["first_party_name"],
                address=row["first_party_address"],
                email=row["first_party_email"],
            ),
            second_party=Party(
                name=row["second_party_name"],
                address=row["second_party_address"],
                email=row["second_party_email"],
            ),
            jurisdiction=row["jurisdiction"],
            description=row["description"],
            key_terms=row["key_terms"],
            intensity=row["intensity"],
            ai_model=row["ai_model"],
            status=ContractStatus(row["status"]),
            contract_content=row["contract_content"],
            error=row["error"],
            created_at=_parse_timestamp(row["created_at"]),
            updated_at=_parse_timestamp(row["updated_at"]),
        )
