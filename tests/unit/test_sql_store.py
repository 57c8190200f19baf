"""Tests for contract_studio.storage.sql against a SQLite file database."""

from datetime import timedelta

import pytest

from contract_studio.exceptions import PersistenceError
from contract_studio.models import (
    AnalysisResult,
    AnalyzingDocument,
    CompletedDocument,
    ContractStatus,
    DocumentStatus,
    ErrorDocument,
    RiskLevel,
)
from contract_studio.models.document import utcnow
from contract_studio.services.lifecycle import LifecycleCoordinator
from contract_studio.storage import InMemoryStore, SQLStore, build_store


@pytest.fixture
async def sql_store(tmp_path):
    store = SQLStore(f"sqlite+aiosqlite:///{tmp_path / 'studio.db'}")
    await store.init_schema()
    yield store
    await store.close()


@pytest.fixture
def sql_lifecycle(sql_store):
    return LifecycleCoordinator(sql_store)


class TestBuildStore:

    def test_in_memory_without_database_url(self, settings):
        assert isinstance(build_store(settings), InMemoryStore)

    def test_sql_with_database_url(self, settings, tmp_path):
        configured = settings.model_copy(
            update={"database_url": f"sqlite+aiosqlite:///{tmp_path / 'x.db'}"}
        )
        assert isinstance(build_store(configured), SQLStore)


class TestDocuments:

    async def test_round_trip_through_states(self, sql_lifecycle, sql_store):
        doc = await sql_lifecycle.create_document("u1", "Lease", "original text")
        await sql_lifecycle.report_progress(doc.id, 40)

        loaded = await sql_store.get_document(doc.id)
        assert isinstance(loaded, AnalyzingDocument)
        assert loaded.progress == 40
        assert loaded.created_at == doc.created_at

        await sql_lifecycle.complete(
            doc.id,
            AnalysisResult(findings=["a", "b"], risk_level=RiskLevel.MEDIUM, risk_score=65),
            body="original text",
        )

        completed = await sql_store.get_document(doc.id, "u1")
        assert isinstance(completed, CompletedDocument)
        assert completed.findings == ["a", "b"]
        assert completed.risk_level is RiskLevel.MEDIUM
        assert completed.risk_score == 65
        assert completed.body == "original text"

    async def test_error_state(self, sql_lifecycle, sql_store):
        doc = await sql_lifecycle.create_document("u1", "Lease", "text")
        await sql_lifecycle.fail(doc.id, "Gemini API key not found. Set GEMINI_API_KEY.")

        loaded = await sql_store.get_document(doc.id)
        assert isinstance(loaded, ErrorDocument)
        assert "GEMINI_API_KEY" in loaded.error

    async def test_owner_scoping(self, sql_lifecycle, sql_store):
        doc = await sql_lifecycle.create_document("u1", "Lease", "text")
        await sql_lifecycle.create_document("u2", "Other", "text")

        assert await sql_store.get_document(doc.id, "u2") is None
        assert [d.id for d in await sql_store.list_documents("u1")] == [doc.id]
        assert await sql_store.delete_document(doc.id, "u2") is False
        assert await sql_store.delete_document(doc.id, "u1") is True
        assert await sql_store.get_document(doc.id) is None

    async def test_save_missing_document(self, sql_store):
        ghost = AnalyzingDocument(id="ghost", owner_id="u1", title="Ghost", progress=10)
        with pytest.raises(PersistenceError):
            await sql_store.save_document(ghost)

    async def test_expire_stale(self, sql_lifecycle, sql_store):
        doc = await sql_lifecycle.create_document("u1", "Lease", "text")

        expired = await sql_lifecycle.expire_stale(
            timedelta(minutes=30), now=utcnow() + timedelta(hours=2)
        )

        assert [d.id for d in expired] == [doc.id]
        assert isinstance(await sql_store.get_document(doc.id), ErrorDocument)


class TestContracts:

    async def test_round_trip(self, sql_lifecycle, sql_store, contract_fields):
        contract = await sql_lifecycle.create_contract("u1", **contract_fields)
        await sql_lifecycle.begin_generation(contract.id, "u1")
        await sql_lifecycle.record_generated(contract.id, "<h1>NDA</h1>")

        loaded = await sql_store.get_contract(contract.id, "u1")
        assert loaded.status is ContractStatus.GENERATED
        assert loaded.contract_content == "<h1>NDA</h1>"
        assert loaded.first_party.name == "Acme Corp"
        assert loaded.second_party.address == "9 Elm Ave, Shelbyville"
        assert loaded.jurisdiction == "Delaware"
        assert loaded.contract_type == contract.contract_type

    async def test_list_and_delete(self, sql_lifecycle, sql_store, contract_fields):
        contract = await sql_lifecycle.create_contract("u1", **contract_fields)

        assert [c.id for c in await sql_store.list_contracts("u1")] == [contract.id]
        assert await sql_store.list_contracts("u2") == []
        assert await sql_store.delete_contract(contract.id, "u1") is True
        assert await sql_store.get_contract(contract.id) is None

    async def test_health_check(self, sql_store):
        assert await sql_store.health_check() is True

    async def test_stale_contracts(self, sql_lifecycle, sql_store, contract_fields):
        contract = await sql_lifecycle.create_contract("u1", **contract_fields)
        await sql_lifecycle.begin_generation(contract.id)

        assert await sql_store.list_stale_contracts(utcnow() - timedelta(hours=1)) == []
        stale = await sql_store.list_stale_contracts(utcnow() + timedelta(hours=1))
        assert [c.id for c in stale] == [contract.id]


class TestLibraryFilters:

    @pytest.fixture
    async def library(self, sql_lifecycle):
        lease = await sql_lifecycle.create_document("u1", "Office Lease", "text")
        nda = await sql_lifecycle.create_document("u1", "Mutual NDA", "text")
        await sql_lifecycle.create_document("u1", "Lease renewal 100%_final", "text")
        await sql_lifecycle.complete(
            nda.id, AnalysisResult(findings=[], risk_level=RiskLevel.HIGH, risk_score=90)
        )
        await sql_lifecycle.create_document("u2", "Lease", "text")
        return {"lease": lease, "nda": nda}

    async def test_title_search_is_case_insensitive(self, sql_store, library):
        titles = {d.title for d in await sql_store.list_documents("u1", query="lease")}
        assert titles == {"Office Lease", "Lease renewal 100%_final"}

    async def test_title_search_escapes_wildcards(self, sql_store, library):
        titles = [d.title for d in await sql_store.list_documents("u1", query="%_")]
        assert titles == ["Lease renewal 100%_final"]

    async def test_status_filter(self, sql_store, library):
        completed = await sql_store.list_documents("u1", status=DocumentStatus.COMPLETED)
        assert [d.id for d in completed] == [library["nda"].id]

    async def test_risk_filter_only_matches_completed(self, sql_store, library):
        assert [d.id for d in await sql_store.list_documents("u1", risk_level=RiskLevel.HIGH)] == [
            library["nda"].id
        ]
        assert await sql_store.list_documents("u1", risk_level=RiskLevel.LOW) == []

    async def test_contract_filters(self, sql_lifecycle, sql_store, contract_fields):
        nda = await sql_lifecycle.create_contract("u1", **contract_fields)
        other = await sql_lifecycle.create_contract("u1", **{**contract_fields, "title": "Consulting"})
        await sql_lifecycle.begin_generation(other.id)

        assert [c.id for c in await sql_store.list_contracts("u1", query="nda")] == [nda.id]
        generating = await sql_store.list_contracts("u1", status=ContractStatus.GENERATING)
        assert [c.id for c in generating] == [other.id]
