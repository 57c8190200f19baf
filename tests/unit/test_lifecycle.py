"""Tests for contract_studio.services.lifecycle: document and contract state machines."""

import asyncio
from datetime import timedelta

import pytest

from contract_studio.exceptions import NotFoundError, ValidationError
from contract_studio.models import (
    AnalysisResult,
    AnalyzingDocument,
    CompletedDocument,
    ContractStatus,
    ErrorDocument,
    RiskLevel,
)
from contract_studio.models.document import utcnow
from contract_studio.services.lifecycle import (
    STALE_ANALYSIS_MESSAGE,
    STALE_GENERATION_MESSAGE,
    LifecycleCoordinator,
)


@pytest.fixture
def result():
    return AnalysisResult(
        findings=["Unlimited liability"],
        risk_level=RiskLevel.HIGH,
        risk_score=90,
        recommendations="Cap liability",
    )


class TestDocumentCreation:

    async def test_starts_analyzing_at_zero(self, lifecycle, store):
        doc = await lifecycle.create_document("u1", "Lease", "text")

        assert isinstance(doc, AnalyzingDocument)
        assert doc.progress == 0
        assert await store.get_document(doc.id) == doc
        assert store.get_content(doc.id) == "text"

    async def test_ids_are_unique(self, lifecycle):
        first = await lifecycle.create_document("u1", "A", "text")
        second = await lifecycle.create_document("u1", "B", "text")
        assert first.id != second.id

    async def test_owner_scoped_lookup(self, lifecycle):
        doc = await lifecycle.create_document("u1", "Lease", "text")
        with pytest.raises(NotFoundError):
            await lifecycle.get_document(doc.id, "u2")


class TestProgress:

    async def test_monotonic(self, lifecycle):
        doc = await lifecycle.create_document("u1", "Lease", "text")

        await lifecycle.report_progress(doc.id, 40)
        lowered = await lifecycle.report_progress(doc.id, 10)

        assert lowered.progress == 40
        assert (await lifecycle.get_document(doc.id)).progress == 40

    async def test_out_of_range(self, lifecycle):
        doc = await lifecycle.create_document("u1", "Lease", "text")
        with pytest.raises(ValidationError):
            await lifecycle.report_progress(doc.id, 101)

    async def test_ignored_after_terminal_state(self, lifecycle, result):
        doc = await lifecycle.create_document("u1", "Lease", "text")
        await lifecycle.complete(doc.id, result)

        late = await lifecycle.report_progress(doc.id, 80)

        assert isinstance(late, CompletedDocument)
        assert isinstance(await lifecycle.get_document(doc.id), CompletedDocument)

    async def test_concurrent_updates_keep_highest(self, lifecycle):
        doc = await lifecycle.create_document("u1", "Lease", "text")

        await asyncio.gather(*(lifecycle.report_progress(doc.id, p) for p in (30, 10, 80, 40, 60)))

        assert (await lifecycle.get_document(doc.id)).progress == 80


class TestTerminalTransitions:

    async def test_complete_sets_every_risk_field(self, lifecycle, result):
        doc = await lifecycle.create_document("u1", "Lease", "text")

        completed = await lifecycle.complete(doc.id, result, body="text")

        assert isinstance(completed, CompletedDocument)
        assert completed.risk_level is RiskLevel.HIGH
        assert completed.risk_score == 90
        assert completed.findings == ["Unlimited liability"]
        assert completed.recommendations == "Cap liability"
        assert completed.created_at == doc.created_at

    async def test_terminal_transition_fires_once(self, lifecycle, result):
        doc = await lifecycle.create_document("u1", "Lease", "text")
        await lifecycle.fail(doc.id, "Upstream unavailable")

        after = await lifecycle.complete(doc.id, result)

        assert isinstance(after, ErrorDocument)
        assert after.error == "Upstream unavailable"

    async def test_concurrent_terminal_updates_resolve_to_one(self, lifecycle, result):
        doc = await lifecycle.create_document("u1", "Lease", "text")

        await asyncio.gather(
            lifecycle.complete(doc.id, result),
            lifecycle.fail(doc.id, "boom"),
            lifecycle.report_progress(doc.id, 90),
        )

        final = await lifecycle.get_document(doc.id)
        assert final.is_terminal
        assert isinstance(final, (CompletedDocument, ErrorDocument))

    async def test_unknown_document(self, lifecycle):
        with pytest.raises(NotFoundError):
            await lifecycle.fail("missing", "boom")


class TestExpireStale:

    async def test_only_old_analyses_expire(self, lifecycle, result):
        old = await lifecycle.create_document("u1", "Old", "text")
        done = await lifecycle.create_document("u1", "Done", "text")
        await lifecycle.complete(done.id, result)

        expired = await lifecycle.expire_stale(
            timedelta(minutes=30), now=utcnow() + timedelta(hours=1)
        )

        assert [d.id for d in expired] == [old.id]
        stored = await lifecycle.get_document(old.id)
        assert isinstance(stored, ErrorDocument)
        assert stored.error == STALE_ANALYSIS_MESSAGE
        assert isinstance(await lifecycle.get_document(done.id), CompletedDocument)

    async def test_recent_analyses_kept(self, lifecycle):
        doc = await lifecycle.create_document("u1", "Fresh", "text")

        assert await lifecycle.expire_stale(timedelta(minutes=30)) == []
        assert isinstance(await lifecycle.get_document(doc.id), AnalyzingDocument)


class TestDeleteDocument:

    async def test_delete(self, lifecycle):
        doc = await lifecycle.create_document("u1", "Lease", "text")
        await lifecycle.delete_document(doc.id, "u1")
        with pytest.raises(NotFoundError):
            await lifecycle.get_document(doc.id)

    async def test_other_owner_cannot_delete(self, lifecycle):
        doc = await lifecycle.create_document("u1", "Lease", "text")
        with pytest.raises(NotFoundError):
            await lifecycle.delete_document(doc.id, "u2")


class TestContractLifecycle:

    async def test_full_path(self, lifecycle, contract_fields):
        contract = await lifecycle.create_contract("u1", **contract_fields)
        assert contract.status is ContractStatus.DRAFT

        generating = await lifecycle.begin_generation(contract.id, "u1")
        assert generating.status is ContractStatus.GENERATING
        assert generating.contract_content is None

        generated = await lifecycle.record_generated(contract.id, "<h1>NDA</h1>")
        assert generated.status is ContractStatus.GENERATED
        assert generated.contract_content == "<h1>NDA</h1>"

        saved = await lifecycle.save_contract(contract.id, "u1")
        assert saved.status is ContractStatus.SAVED
        assert saved.contract_content == "<h1>NDA</h1>"

    async def test_failure_stores_no_content(self, lifecycle, contract_fields):
        contract = await lifecycle.create_contract("u1", **contract_fields)
        await lifecycle.begin_generation(contract.id)

        failed = await lifecycle.record_failure(contract.id, "OpenAI API error (500)")

        assert failed.status is ContractStatus.FAILED
        assert failed.contract_content is None
        assert failed.error == "OpenAI API error (500)"

    async def test_failed_contract_can_restart(self, lifecycle, contract_fields):
        contract = await lifecycle.create_contract("u1", **contract_fields)
        await lifecycle.begin_generation(contract.id)
        await lifecycle.record_failure(contract.id, "boom")

        restarted = await lifecycle.begin_generation(contract.id)

        assert restarted.status is ContractStatus.GENERATING
        assert restarted.error is None

    async def test_cannot_begin_twice(self, lifecycle, contract_fields):
        contract = await lifecycle.create_contract("u1", **contract_fields)
        await lifecycle.begin_generation(contract.id)
        with pytest.raises(ValidationError):
            await lifecycle.begin_generation(contract.id)

    async def test_concurrent_begin_admits_one(self, lifecycle, contract_fields):
        contract = await lifecycle.create_contract("u1", **contract_fields)

        outcomes = await asyncio.gather(
            lifecycle.begin_generation(contract.id),
            lifecycle.begin_generation(contract.id),
            return_exceptions=True,
        )

        assert sum(isinstance(o, ValidationError) for o in outcomes) == 1

    async def test_late_results_ignored(self, lifecycle, contract_fields):
        contract = await lifecycle.create_contract("u1", **contract_fields)

        unchanged = await lifecycle.record_generated(contract.id, "<h1>stray</h1>")

        assert unchanged.status is ContractStatus.DRAFT
        assert unchanged.contract_content is None

    async def test_only_generated_contracts_can_be_saved(self, lifecycle, contract_fields):
        contract = await lifecycle.create_contract("u1", **contract_fields)
        with pytest.raises(ValidationError):
            await lifecycle.save_contract(contract.id, "u1")

    async def test_save_is_idempotent(self, lifecycle, contract_fields):
        contract = await lifecycle.create_contract("u1", **contract_fields)
        await lifecycle.begin_generation(contract.id)
        await lifecycle.record_generated(contract.id, "<h1>NDA</h1>")
        await lifecycle.save_contract(contract.id, "u1")

        again = await lifecycle.save_contract(contract.id, "u1")

        assert again.status is ContractStatus.SAVED

    async def test_delete_scoped_to_owner(self, lifecycle, contract_fields):
        contract = await lifecycle.create_contract("u1", **contract_fields)
        with pytest.raises(NotFoundError):
            await lifecycle.delete_contract(contract.id, "u2")
        await lifecycle.delete_contract(contract.id, "u1")
        with pytest.raises(NotFoundError):
            await lifecycle.get_contract(contract.id)


class TestStaleGeneration:

    @staticmethod
    async def _age(store, contract_id, minutes):
        contract = await store.get_contract(contract_id)
        await store.save_contract(
            contract.model_copy(update={"updated_at": utcnow() - timedelta(minutes=minutes)})
        )

    async def test_stuck_generation_can_restart(self, store, contract_fields):
        lifecycle = LifecycleCoordinator(store, generation_stale_after=timedelta(minutes=10))
        contract = await lifecycle.create_contract("u1", **contract_fields)
        await lifecycle.begin_generation(contract.id)
        await self._age(store, contract.id, 30)

        restarted = await lifecycle.begin_generation(contract.id, "u1")

        assert restarted.status is ContractStatus.GENERATING
        assert restarted.updated_at > utcnow() - timedelta(minutes=1)

    async def test_recent_generation_still_rejected(self, store, contract_fields):
        lifecycle = LifecycleCoordinator(store, generation_stale_after=timedelta(minutes=10))
        contract = await lifecycle.create_contract("u1", **contract_fields)
        await lifecycle.begin_generation(contract.id)

        with pytest.raises(ValidationError):
            await lifecycle.begin_generation(contract.id)

    async def test_expire_stale_contracts(self, lifecycle, store, contract_fields):
        stuck = await lifecycle.create_contract("u1", **contract_fields)
        await lifecycle.begin_generation(stuck.id)
        draft = await lifecycle.create_contract("u1", **contract_fields)

        expired = await lifecycle.expire_stale_contracts(
            timedelta(minutes=10), now=utcnow() + timedelta(hours=1)
        )

        assert [c.id for c in expired] == [stuck.id]
        stored = await lifecycle.get_contract(stuck.id)
        assert stored.status is ContractStatus.FAILED
        assert stored.error == STALE_GENERATION_MESSAGE
        assert (await lifecycle.get_contract(draft.id)).status is ContractStatus.DRAFT
        assert (await lifecycle.begin_generation(stuck.id)).status is ContractStatus.GENERATING
