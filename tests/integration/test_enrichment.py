"""Integration tests for the enrichment orchestrator."""

import tempfile
import threading
from collections.abc import Generator, Sequence
from pathlib import Path
from unittest.mock import patch

import pytest

from hybridrank.config.schemas import (
    EnrichmentConfig,
    HybridScoringConfig,
    HybridWeights,
    ScoringConfig,
)
from hybridrank.embeddings.errors import EmbeddingProviderUnavailable
from hybridrank.embeddings.gateway import EmbeddingGateway
from hybridrank.embeddings.metrics import EmbeddingMetrics
from hybridrank.enrichment.metrics import EnrichmentMetrics
from hybridrank.enrichment.models import ALREADY_RUNNING, RunRequest
from hybridrank.enrichment.orchestrator import EnrichmentOrchestrator
from hybridrank.enrichment.state_machine import EnrichmentPhase
from hybridrank.store.errors import BatchUpdateError
from hybridrank.store.metrics import StoreMetrics
from hybridrank.store.models import ContentItem
from hybridrank.store.store import FeatureStore
from tests.helpers.fakes import FakeEmbeddingProvider


@pytest.fixture
def temp_db_path() -> Generator[Path]:
    """Create a temporary database path."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "features.sqlite"


@pytest.fixture
def store(temp_db_path: Path) -> Generator[FeatureStore]:
    """Create a connected feature store with fresh metrics."""
    StoreMetrics.reset()
    EnrichmentMetrics.reset()
    EmbeddingMetrics.reset()
    store = FeatureStore(temp_db_path, run_id="test-run-001")
    store.connect()
    yield store
    store.close()


def _statement(
    store: FeatureStore,
    embedding: Sequence[float] | None = (1.0, 0.0),
    keywords: Sequence[str] = (),
    name: str = "RAG",
) -> int:
    """Create an active statement, optionally with an embedding."""
    statement_id = store.create_statement(
        name, "Retrieval augmented generation", keywords=keywords
    )
    if embedding is not None:
        store.update_statement_embedding(statement_id, embedding)
    return statement_id


def _item(
    store: FeatureStore,
    statement_id: int | None,
    source_id: str,
    title: str = "Retrieval paper",
    embedding: Sequence[float] | None = None,
) -> int:
    """Insert an item, optionally with an embedding for the statement."""
    item_id = store.insert_item(
        ContentItem(source_type="rss", source_id=source_id, title=title)
    )
    if statement_id is not None and embedding is not None:
        store.upsert_embedding(item_id, statement_id, embedding)
    return item_id


def _gateway(store: FeatureStore, provider: FakeEmbeddingProvider) -> EmbeddingGateway:
    return EmbeddingGateway(provider, store=store)


class TestScoring:
    """End-to-end scoring of stored embeddings."""

    def test_perfect_match(self, store: FeatureStore) -> None:
        """Identical embeddings give similarity 1 and a blended final score."""
        statement_id = _statement(store)
        item_id = _item(store, statement_id, "a", embedding=[1.0, 0.0])

        result = EnrichmentOrchestrator(store).run()

        assert result.ok
        feature = store.get_feature(item_id, statement_id)
        assert feature is not None
        assert feature.similarity_score == 1.0
        assert feature.keyword_score == 0.5
        assert feature.feedback_score == 0.0
        assert feature.final_score == pytest.approx(0.3 * 0.5 + 0.4 * 1.0)
        assert feature.relevance_tier == 2

    def test_unrelated_item(self, store: FeatureStore) -> None:
        """Orthogonal embeddings give similarity 0 and tier 1."""
        statement_id = _statement(store)
        item_id = _item(store, statement_id, "a", embedding=[0.0, 1.0])

        EnrichmentOrchestrator(store).run()

        feature = store.get_feature(item_id, statement_id)
        assert feature is not None
        assert feature.similarity_score == pytest.approx(0.0)
        assert feature.relevance_tier == 1

    def test_statement_without_keywords_is_neutral(self, store: FeatureStore) -> None:
        """Every item scores 0.5 on keywords when the statement has none."""
        statement_id = _statement(store, keywords=())
        ids = [
            _item(store, statement_id, "a", "Quantum chemistry", [1.0, 0.0]),
            _item(store, statement_id, "b", "Retrieval retrieval", [0.0, 1.0]),
        ]

        EnrichmentOrchestrator(store).run()

        for item_id in ids:
            feature = store.get_feature(item_id, statement_id)
            assert feature is not None
            assert feature.keyword_score == 0.5

    def test_keywords_rank_matching_items(self, store: FeatureStore) -> None:
        """Matching items score above non-matching ones."""
        statement_id = _statement(store, keywords=("retrieval",))
        hit = _item(store, statement_id, "a", "Dense retrieval", [1.0, 0.0])
        miss = _item(store, statement_id, "b", "Protein folding", [1.0, 0.0])

        EnrichmentOrchestrator(store).run()

        hit_feature = store.get_feature(hit, statement_id)
        miss_feature = store.get_feature(miss, statement_id)
        assert hit_feature is not None and miss_feature is not None
        assert hit_feature.keyword_score > 0.0
        assert miss_feature.keyword_score == 0.0
        assert hit_feature.final_score > miss_feature.final_score  # type: ignore[operator]

    def test_feedback_from_similar_rating(self, store: FeatureStore) -> None:
        """An item similar to a top-rated item inherits a high feedback score."""
        statement_id = _statement(store)
        rated = _item(store, statement_id, "rated", embedding=[1.0, 0.0])
        target = _item(store, statement_id, "target", embedding=[1.0, 0.0])
        store.upsert_rating(rated, statement_id, 4)

        EnrichmentOrchestrator(store).run()

        target_feature = store.get_feature(target, statement_id)
        rated_feature = store.get_feature(rated, statement_id)
        assert target_feature is not None and rated_feature is not None
        assert target_feature.feedback_score == pytest.approx(1.0)
        assert rated_feature.feedback_score == 0.0

    def test_cold_start_feedback_is_zero(self, store: FeatureStore) -> None:
        """Without ratings feedback scores are written as 0."""
        statement_id = _statement(store)
        item_id = _item(store, statement_id, "a", embedding=[0.6, 0.8])

        EnrichmentOrchestrator(store).run()

        feature = store.get_feature(item_id, statement_id)
        assert feature is not None
        assert feature.feedback_score == 0.0

    def test_unbalanced_weights_still_clamped(self, store: FeatureStore) -> None:
        """Heavy weights are accepted and the final score stays within 1."""
        config = ScoringConfig(
            hybrid=HybridScoringConfig(
                weights=HybridWeights(keyword=1.0, similarity=1.0, feedback=1.0)
            )
        )
        statement_id = _statement(store)
        item_id = _item(store, statement_id, "a", embedding=[1.0, 0.0])

        assert EnrichmentOrchestrator(store, config=config).run().ok

        feature = store.get_feature(item_id, statement_id)
        assert feature is not None
        assert feature.final_score == 1.0

    def test_paging_covers_every_row(self, store: FeatureStore) -> None:
        """Rows beyond the first page are scored."""
        statement_id = _statement(store)
        for i in range(7):
            _item(store, statement_id, f"i{i}", embedding=[1.0, float(i)])

        orchestrator = EnrichmentOrchestrator(store)
        assert orchestrator.run(RunRequest(batch_size=2)).ok

        counts = store.get_counts(statement_id)
        assert counts.missing_similarity == 0
        assert counts.missing_final == 0
        assert len(store.get_final_scores(statement_id)) == 7


class TestResumability:
    """Runs only fill missing scores unless forced."""

    def test_second_run_does_nothing(self, store: FeatureStore) -> None:
        """A repeated run finds no work."""
        statement_id = _statement(store)
        _item(store, statement_id, "a", embedding=[1.0, 0.0])
        _item(store, statement_id, "b", embedding=[0.0, 1.0])
        orchestrator = EnrichmentOrchestrator(store)

        orchestrator.run()
        first = orchestrator.get_status()
        orchestrator.run()
        second = orchestrator.get_status()

        assert first.updated > 0
        assert second.processed == 0
        assert second.updated == 0
        assert second.run_id != first.run_id

    def test_existing_scores_untouched(self, store: FeatureStore) -> None:
        """Scores that already exist are not recomputed."""
        statement_id = _statement(store)
        item_id = _item(store, statement_id, "a", embedding=[1.0, 0.0])
        store.set_similarity_and_tier(item_id, statement_id, 0.1, 1)

        EnrichmentOrchestrator(store).run()

        feature = store.get_feature(item_id, statement_id)
        assert feature is not None
        assert feature.similarity_score == pytest.approx(0.1)
        assert feature.final_score is not None

    def test_force_recomputes_similarity(self, store: FeatureStore) -> None:
        """A forced run clears and recomputes similarity and final scores."""
        statement_id = _statement(store)
        item_id = _item(store, statement_id, "a", embedding=[1.0, 0.0])
        store.set_similarity_and_tier(item_id, statement_id, 0.1, 1)
        store.set_hybrid_score(item_id, statement_id, 0.05, 1)

        EnrichmentOrchestrator(store).run(RunRequest(force=True))

        feature = store.get_feature(item_id, statement_id)
        assert feature is not None
        assert feature.similarity_score == 1.0
        assert feature.final_score == pytest.approx(0.55)

    def test_force_resets_feedback_by_default(self, store: FeatureStore) -> None:
        """Forced runs also recompute feedback unless told otherwise."""
        statement_id = _statement(store)
        item_id = _item(store, statement_id, "a", embedding=[1.0, 0.0])
        store.set_feedback_score(item_id, statement_id, 0.9)

        EnrichmentOrchestrator(store).run(RunRequest(force=True))

        feature = store.get_feature(item_id, statement_id)
        assert feature is not None
        assert feature.feedback_score == 0.0

    def test_force_can_keep_feedback(self, store: FeatureStore) -> None:
        """reset_feedback=False keeps existing feedback scores."""
        statement_id = _statement(store)
        item_id = _item(store, statement_id, "a", embedding=[1.0, 0.0])
        store.set_feedback_score(item_id, statement_id, 0.9)

        EnrichmentOrchestrator(store).run(RunRequest(force=True, reset_feedback=False))

        feature = store.get_feature(item_id, statement_id)
        assert feature is not None
        assert feature.feedback_score == pytest.approx(0.9)

    def test_keyword_edit_is_rescored(self, store: FeatureStore) -> None:
        """Changing keywords feeds through to keyword and final scores."""
        statement_id = _statement(store, keywords=["quantum"])
        item_id = _item(
            store, statement_id, "a", "retrieval retrieval", embedding=[1.0, 0.0]
        )
        orchestrator = EnrichmentOrchestrator(store)
        orchestrator.run()
        before = store.get_feature(item_id, statement_id)
        assert before is not None
        assert before.keyword_score == 0.0
        assert before.final_score == pytest.approx(0.4)

        store.set_statement_keywords(statement_id, ["retrieval"])
        orchestrator.run()

        after = store.get_feature(item_id, statement_id)
        assert after is not None
        assert after.keyword_score is not None
        assert after.keyword_score > 0.0
        assert after.final_score == pytest.approx(0.4 + 0.3 * after.keyword_score)

    def test_force_recomputes_keyword(self, store: FeatureStore) -> None:
        """A forced run clears stale keyword scores."""
        statement_id = _statement(store)
        item_id = _item(store, statement_id, "a", embedding=[1.0, 0.0])
        store.set_keyword_score(item_id, statement_id, 0.0)

        EnrichmentOrchestrator(store).run(RunRequest(force=True))

        feature = store.get_feature(item_id, statement_id)
        assert feature is not None
        assert feature.keyword_score == 0.5
        assert feature.final_score == pytest.approx(0.55)

    def test_config_disables_feedback_reset(self, store: FeatureStore) -> None:
        """The configuration can keep feedback on every forced run."""
        config = ScoringConfig(
            enrichment=EnrichmentConfig(reset_feedback_on_force=False)
        )
        statement_id = _statement(store)
        item_id = _item(store, statement_id, "a", embedding=[1.0, 0.0])
        store.set_feedback_score(item_id, statement_id, 0.9)

        EnrichmentOrchestrator(store, config=config).run(RunRequest(force=True))

        feature = store.get_feature(item_id, statement_id)
        assert feature is not None
        assert feature.feedback_score == pytest.approx(0.9)


class TestEmbeddingPhase:
    """Embedding through the gateway."""

    def test_embeds_items_and_statement(self, store: FeatureStore) -> None:
        """Missing item and statement embeddings are computed."""
        provider = FakeEmbeddingProvider(
            {"Retrieval": [1.0, 0.0], "Cooking": [0.0, 1.0]}
        )
        statement_id = _statement(store, embedding=None)
        match = _item(store, None, "a", "Retrieval paper")
        other = _item(store, None, "b", "Cooking show")

        result = EnrichmentOrchestrator(store, gateway=_gateway(store, provider)).run()

        assert result.ok
        statement = store.get_statement(statement_id)
        assert statement is not None
        assert statement.embedding is not None
        match_feature = store.get_feature(match, statement_id)
        other_feature = store.get_feature(other, statement_id)
        assert match_feature is not None and other_feature is not None
        assert match_feature.similarity_score == 1.0
        assert other_feature.similarity_score == pytest.approx(0.0)

    def test_item_without_text_is_skipped(self, store: FeatureStore) -> None:
        """Items with nothing to embed stay without a feature row."""
        provider = FakeEmbeddingProvider()
        statement_id = _statement(store, embedding=[0.0, 1.0])
        empty = _item(store, None, "empty", title="")
        _item(store, None, "full", title="Some text")

        orchestrator = EnrichmentOrchestrator(store, gateway=_gateway(store, provider))
        assert orchestrator.run().ok

        assert store.get_feature(empty, statement_id) is None
        assert orchestrator.get_status().failed >= 1
        assert len(provider.calls) == 1

    def test_provider_failure_is_isolated(self, store: FeatureStore) -> None:
        """One failing item does not stop the others and is retried later."""
        provider = FakeEmbeddingProvider(fail_on=("Broken",))
        statement_id = _statement(store, embedding=[0.0, 1.0])
        broken = _item(store, None, "a", "Broken item")
        good = _item(store, None, "b", "Good item")
        orchestrator = EnrichmentOrchestrator(store, gateway=_gateway(store, provider))

        result = orchestrator.run()

        assert result.ok
        assert orchestrator.get_status().failed == 1
        assert store.get_feature(broken, statement_id) is None
        good_feature = store.get_feature(good, statement_id)
        assert good_feature is not None
        assert good_feature.final_score is not None

        orchestrator.run()
        assert sum("Broken" in call for call in provider.calls) == 2

    def test_item_embedding_reused_across_statements(self, store: FeatureStore) -> None:
        """An item is sent to the provider once for all statements."""
        provider = FakeEmbeddingProvider()
        first = _statement(store, name="A")
        second = _statement(store, name="B")
        item_id = _item(store, None, "a", "Shared item")

        EnrichmentOrchestrator(store, gateway=_gateway(store, provider)).run()

        assert provider.calls.count("Shared item") == 1
        assert store.get_feature(item_id, first) is not None
        assert store.get_feature(item_id, second) is not None

    def test_usage_recorded(self, store: FeatureStore) -> None:
        """Token usage reported by the provider is accumulated."""
        provider = FakeEmbeddingProvider(tokens=10)
        _statement(store)
        _item(store, None, "a")
        _item(store, None, "b", "Other")

        EnrichmentOrchestrator(store, gateway=_gateway(store, provider)).run()

        usage = store.get_ai_usage()
        assert usage is not None
        assert usage.tokens_used == 20
        assert usage.requests_count == 2

    def test_missing_statement_embedding_skips_similarity(
        self, store: FeatureStore
    ) -> None:
        """Without a statement embedding only keyword and feedback run."""
        statement_id = _statement(store, embedding=None)
        item_id = _item(store, statement_id, "a", embedding=[1.0, 0.0])

        result = EnrichmentOrchestrator(store).run()

        assert result.ok
        feature = store.get_feature(item_id, statement_id)
        assert feature is not None
        assert feature.similarity_score is None
        assert feature.final_score is None
        assert feature.keyword_score == 0.5

    def test_statement_embedding_disabled(self, store: FeatureStore) -> None:
        """Statements are not embedded when the option is off."""
        config = ScoringConfig(
            enrichment=EnrichmentConfig(embed_missing_statements=False)
        )
        provider = FakeEmbeddingProvider()
        statement_id = _statement(store, embedding=None)
        _item(store, None, "a")

        EnrichmentOrchestrator(
            store, config=config, gateway=_gateway(store, provider)
        ).run()

        statement = store.get_statement(statement_id)
        assert statement is not None
        assert statement.embedding is None

    def test_unavailable_provider_ends_embedding_only(self, store: FeatureStore) -> None:
        """An unavailable provider skips embedding and later phases still run."""
        calls: list[str] = []

        class UnavailableProvider:
            model = "none"

            def embed(self, text: str) -> None:
                calls.append(text)
                raise EmbeddingProviderUnavailable("credentials revoked")

        statement_id = _statement(store)
        _item(store, None, "a")
        _item(store, None, "b")
        embedded = _item(store, statement_id, "c", embedding=[1.0, 0.0])
        orchestrator = EnrichmentOrchestrator(
            store, gateway=EmbeddingGateway(UnavailableProvider())  # type: ignore[arg-type]
        )

        result = orchestrator.run()

        assert result.ok
        assert len(calls) == 1
        status = orchestrator.get_status()
        assert status.phase == EnrichmentPhase.DONE
        assert status.failed == 2
        feature = store.get_feature(embedded, statement_id)
        assert feature is not None
        assert feature.final_score == pytest.approx(0.55)
        assert store.get_counts(statement_id).missing_embedding == 2


class TestFailureIsolation:
    """Per-row failures do not abort a run."""

    def test_hybrid_batch_falls_back_to_rows(self, store: FeatureStore) -> None:
        """A rejected batch is retried row by row."""
        statement_id = _statement(store)
        ids = [
            _item(store, statement_id, "a", embedding=[1.0, 0.0]),
            _item(store, statement_id, "b", embedding=[0.0, 1.0]),
        ]
        error = BatchUpdateError("set_hybrid_scores", 2, "database is locked")

        with patch.object(store, "set_hybrid_scores", side_effect=error):
            result = EnrichmentOrchestrator(store).run()

        assert result.ok
        for item_id in ids:
            feature = store.get_feature(item_id, statement_id)
            assert feature is not None
            assert feature.final_score is not None
        assert EnrichmentMetrics.get_instance().batch_fallbacks_total == 1

    def test_row_write_failure_is_skipped(self, store: FeatureStore) -> None:
        """A failing keyword write is counted and the others succeed."""
        statement_id = _statement(store)
        bad = _item(store, statement_id, "a", embedding=[1.0, 0.0])
        good = _item(store, statement_id, "b", embedding=[1.0, 0.0])
        real_set_keyword_score = store.set_keyword_score

        def flaky(item_id: int, sid: int, score: float) -> bool:
            if item_id == bad:
                raise RuntimeError("disk full")
            return real_set_keyword_score(item_id, sid, score)

        orchestrator = EnrichmentOrchestrator(store)
        with patch.object(store, "set_keyword_score", side_effect=flaky):
            assert orchestrator.run().ok

        bad_feature = store.get_feature(bad, statement_id)
        good_feature = store.get_feature(good, statement_id)
        assert bad_feature is not None and good_feature is not None
        assert bad_feature.keyword_score is None
        assert good_feature.keyword_score == 0.5
        assert orchestrator.get_status().failed == 1

    def test_corrupt_embedding_is_skipped(self, store: FeatureStore) -> None:
        """Rows whose embedding cannot be decoded get no similarity."""
        statement_id = _statement(store)
        corrupt = _item(store, statement_id, "a", embedding=[1.0, 0.0])
        fine = _item(store, statement_id, "b", embedding=[1.0, 0.0])
        store._ensure_connected().execute(
            "UPDATE content_features SET content_embedding = ? WHERE content_item_id = ?",
            (b"\x00\x01\x02", corrupt),
        )

        orchestrator = EnrichmentOrchestrator(store)
        assert orchestrator.run().ok

        corrupt_feature = store.get_feature(corrupt, statement_id)
        fine_feature = store.get_feature(fine, statement_id)
        assert corrupt_feature is not None and fine_feature is not None
        assert corrupt_feature.similarity_score is None
        assert fine_feature.similarity_score == 1.0
        assert orchestrator.get_status().failed == 1


class TestRunLifecycle:
    """Run selection, status and concurrency."""

    def test_no_active_statements(self, store: FeatureStore) -> None:
        """A run with nothing to do reports an error."""
        orchestrator = EnrichmentOrchestrator(store)

        result = orchestrator.run()

        assert not result.ok
        assert result.error == "No active research statements found"
        status = orchestrator.get_status()
        assert status.phase == EnrichmentPhase.ERROR
        assert status.error == result.error
        assert status.finished_at is not None

    def test_inactive_statement_ignored(self, store: FeatureStore) -> None:
        """Inactive statements are not processed."""
        statement_id = _statement(store)
        item_id = _item(store, statement_id, "a", embedding=[1.0, 0.0])
        store.set_statement_active(statement_id, False)

        result = EnrichmentOrchestrator(store).run()

        assert not result.ok
        feature = store.get_feature(item_id, statement_id)
        assert feature is not None
        assert feature.similarity_score is None

    def test_single_statement(self, store: FeatureStore) -> None:
        """statement_id restricts the run to one statement."""
        first = _statement(store, name="A")
        second = _statement(store, name="B")
        item_id = _item(store, first, "a", embedding=[1.0, 0.0])
        store.upsert_embedding(item_id, second, [1.0, 0.0])

        assert EnrichmentOrchestrator(store).run(RunRequest(statement_id=second)).ok

        first_feature = store.get_feature(item_id, first)
        second_feature = store.get_feature(item_id, second)
        assert first_feature is not None and second_feature is not None
        assert first_feature.final_score is None
        assert second_feature.final_score is not None

    def test_unknown_statement(self, store: FeatureStore) -> None:
        """Requesting an unknown statement fails with its id."""
        _statement(store)
        result = EnrichmentOrchestrator(store).run(RunRequest(statement_id=99))
        assert not result.ok
        assert result.error is not None
        assert "99" in result.error

    def test_status_after_run(self, store: FeatureStore) -> None:
        """The snapshot reflects the finished run."""
        statement_id = _statement(store)
        _item(store, statement_id, "a", embedding=[1.0, 0.0])
        _item(store, statement_id, "b", embedding=[0.0, 1.0])
        orchestrator = EnrichmentOrchestrator(store)

        result = orchestrator.run()
        status = orchestrator.get_status()

        assert not status.running
        assert status.phase == EnrichmentPhase.DONE
        assert status.run_id == result.run_id
        assert status.statement_id == statement_id
        assert status.total == 2
        # similarity, keyword, feedback and hybrid each touch both rows
        assert status.processed == 8
        assert status.updated == 8
        assert status.failed == 0
        assert status.error is None
        assert status.started_at is not None
        assert status.finished_at is not None

        metrics = EnrichmentMetrics.get_instance()
        assert metrics.runs_started_total == 1
        assert metrics.runs_succeeded_total == 1
        assert metrics.phase_updated["hybrid"] == 2

    def test_idle_status(self, store: FeatureStore) -> None:
        """Before any run the orchestrator is idle."""
        status = EnrichmentOrchestrator(store).get_status()
        assert not status.running
        assert status.phase == EnrichmentPhase.IDLE
        assert status.run_id is None

    def test_background_run(self, store: FeatureStore) -> None:
        """Background runs finish and publish their status."""
        statement_id = _statement(store)
        _item(store, statement_id, "a", embedding=[1.0, 0.0])
        orchestrator = EnrichmentOrchestrator(store)

        started = orchestrator.start_background()

        assert started.ok
        assert orchestrator.wait(timeout=10)
        status = orchestrator.get_status()
        assert status.run_id == started.run_id
        assert status.phase == EnrichmentPhase.DONE

    def test_second_request_while_running_is_rejected(
        self, store: FeatureStore
    ) -> None:
        """A request during a run is refused without touching the run."""
        gate = threading.Event()
        provider = FakeEmbeddingProvider(gate=gate)
        _statement(store)
        _item(store, None, "a")
        orchestrator = EnrichmentOrchestrator(store, gateway=_gateway(store, provider))

        first = orchestrator.start_background()
        try:
            assert first.ok
            assert orchestrator.get_status().running

            second = orchestrator.run()
            third = orchestrator.start_background()

            assert not second.ok
            assert second.error == ALREADY_RUNNING
            assert not third.ok
            assert third.error == ALREADY_RUNNING
            status = orchestrator.get_status()
            assert status.running
            assert status.run_id == first.run_id
        finally:
            gate.set()
            assert orchestrator.wait(timeout=10)

        assert orchestrator.get_status().phase == EnrichmentPhase.DONE
        assert EnrichmentMetrics.get_instance().runs_rejected_total == 2

    def test_lock_released_after_failure(self, store: FeatureStore) -> None:
        """A failed run does not block the next one."""
        orchestrator = EnrichmentOrchestrator(store)
        assert not orchestrator.run().ok

        _statement(store)
        assert orchestrator.run().ok
