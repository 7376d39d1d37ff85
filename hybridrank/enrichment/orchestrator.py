"""Enrichment orchestrator: drives every scorer over the feature store."""

import threading
import time
import uuid
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, TypeVar

import structlog

from hybridrank.config.schemas import ScoringConfig
from hybridrank.embeddings.errors import (
    EmbeddingError,
    EmbeddingProviderUnavailable,
)
from hybridrank.embeddings.gateway import EmbeddingGateway
from hybridrank.enrichment.errors import NoActiveStatementsError
from hybridrank.enrichment.metrics import EnrichmentMetrics
from hybridrank.enrichment.models import (
    ALREADY_RUNNING,
    EnrichmentStatus,
    RunRequest,
    RunResult,
)
from hybridrank.enrichment.state_machine import EnrichmentPhase, EnrichmentStateMachine
from hybridrank.observability.logging import (
    bind_run_context,
    bind_statement_context,
    clear_run_context,
)
from hybridrank.scoring.feedback import (
    batch_compute_feedback_scores,
    feedback_rating_stats,
)
from hybridrank.scoring.hybrid import batch_calculate_hybrid_scores
from hybridrank.scoring.keyword import calculate_keyword_score
from hybridrank.scoring.similarity import cosine_similarity, determine_relevance_tier
from hybridrank.store.errors import FeatureStoreError
from hybridrank.store.models import ResearchStatement
from hybridrank.store.store import FeatureStore


logger = structlog.get_logger()

Row = TypeVar("Row")


@dataclass
class PhaseCounts:
    """Row counters of one phase for one statement."""

    processed: int = 0
    updated: int = 0
    failed: int = 0
    halted: bool = False


class EnrichmentOrchestrator:
    """Runs the enrichment phases for each active research statement.

    For every statement the orchestrator optionally resets derived scores,
    embeds missing items, then fills similarity, keyword, feedback and
    final scores in pages of ``batch_size`` rows. Each phase only touches
    rows whose output is still NULL, so an interrupted run resumes where
    it stopped. At most one run is in flight per instance.
    """

    def __init__(
        self,
        store: FeatureStore,
        config: ScoringConfig | None = None,
        gateway: EmbeddingGateway | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            store: Connected feature store.
            config: Scoring configuration (defaults when omitted).
            gateway: Embedding gateway; without one the embedding phase is
                skipped and only existing embeddings are scored.
        """
        self._store = store
        self._config = config or ScoringConfig()
        self._gateway = gateway
        self._run_lock = threading.Lock()
        self._status_lock = threading.Lock()
        self._status = EnrichmentStatus()
        self._thread: threading.Thread | None = None
        self._metrics = EnrichmentMetrics.get_instance()
        self._log = logger.bind(component="enrichment")

    # ===== Public API =====

    def get_status(self) -> EnrichmentStatus:
        """Get a snapshot of the current or last run."""
        with self._status_lock:
            return self._status

    def run(self, request: RunRequest | None = None) -> RunResult:
        """Run enrichment synchronously.

        Returns immediately with ``ok=False`` when another run is in flight.

        Args:
            request: Run parameters (defaults when omitted).

        Returns:
            RunResult; fatal failures are reported in ``error``.
        """
        request = request or RunRequest()
        if not self._run_lock.acquire(blocking=False):
            return self._reject()

        try:
            run_id = self._begin(request)
            return self._execute(request, run_id)
        finally:
            self._run_lock.release()

    def start_background(self, request: RunRequest | None = None) -> RunResult:
        """Start a run on a worker thread and return at once.

        Progress is visible through ``get_status``.
        """
        request = request or RunRequest()
        if not self._run_lock.acquire(blocking=False):
            return self._reject()

        try:
            run_id = self._begin(request)
            self._thread = threading.Thread(
                target=self._execute_and_release,
                args=(request, run_id),
                name=f"enrichment-{run_id[:8]}",
                daemon=True,
            )
            self._thread.start()
        except Exception:
            self._run_lock.release()
            raise

        return RunResult(ok=True, run_id=run_id)

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for a background run to finish.

        Returns:
            True if no background run is still alive.
        """
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
            return not thread.is_alive()
        return True

    # ===== Run lifecycle =====

    def _reject(self) -> RunResult:
        self._metrics.record_run_rejected()
        self._log.warning("enrichment_already_running")
        return RunResult(ok=False, error=ALREADY_RUNNING)

    def _begin(self, request: RunRequest) -> str:
        run_id = str(uuid.uuid4())
        self._set_status(
            EnrichmentStatus(
                running=True,
                run_id=run_id,
                statement_id=request.statement_id,
                phase=EnrichmentPhase.STARTING,
                started_at=datetime.now(UTC),
            )
        )
        self._metrics.record_run_started()
        return run_id

    def _execute_and_release(self, request: RunRequest, run_id: str) -> None:
        try:
            self._execute(request, run_id)
        finally:
            self._run_lock.release()

    def _execute(self, request: RunRequest, run_id: str) -> RunResult:
        machine = EnrichmentStateMachine(run_id)
        bind_run_context(run_id)
        log = self._log.bind(run_id=run_id)
        start = time.perf_counter()

        try:
            machine.transition(EnrichmentPhase.STARTING)
            log.info(
                "enrichment_started",
                statement_id=request.statement_id,
                force=request.force,
                batch_size=request.batch_size,
            )
            self._warn_unbalanced_weights()

            for statement in self._select_statements(request):
                bind_statement_context(statement.id)
                self._process_statement(machine, statement, request)

            machine.transition(EnrichmentPhase.DONE)
        except Exception as e:  # noqa: BLE001
            if not machine.is_terminal():
                machine.transition(EnrichmentPhase.ERROR)
            log.error(
                "enrichment_failed",
                error_type=type(e).__name__,
                error=str(e),
                exc_info=True,
            )
            self._finish(EnrichmentPhase.ERROR, str(e))
            return RunResult(ok=False, error=str(e), run_id=run_id)
        finally:
            clear_run_context()

        status = self._finish(EnrichmentPhase.DONE, None)
        log.info(
            "enrichment_complete",
            processed=status.processed,
            updated=status.updated,
            failed=status.failed,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return RunResult(ok=True, run_id=run_id)

    def _finish(self, phase: EnrichmentPhase, error: str | None) -> EnrichmentStatus:
        self._metrics.record_run_finished(success=error is None)
        return self._update_status(
            running=False,
            phase=phase,
            error=error,
            finished_at=datetime.now(UTC),
        )

    def _select_statements(self, request: RunRequest) -> list[ResearchStatement]:
        statements = self._store.get_active_statements()
        if request.statement_id is not None:
            statements = [s for s in statements if s.id == request.statement_id]
        if not statements:
            raise NoActiveStatementsError(request.statement_id)
        return statements

    def _warn_unbalanced_weights(self) -> None:
        weights = self._config.hybrid.weights
        if not weights.is_balanced:
            self._log.warning(
                "hybrid_weights_unbalanced",
                keyword=weights.keyword,
                similarity=weights.similarity,
                feedback=weights.feedback,
                weights_sum=round(weights.total, 6),
            )

    # ===== Status =====

    def _set_status(self, status: EnrichmentStatus) -> None:
        with self._status_lock:
            self._status = status

    def _update_status(self, **changes: Any) -> EnrichmentStatus:
        with self._status_lock:
            self._status = self._status.model_copy(update=changes)
            return self._status

    def _enter_phase(self, machine: EnrichmentStateMachine, phase: EnrichmentPhase) -> None:
        machine.transition(phase)
        self._update_status(phase=phase)

    def _add_counts(self, processed: int = 0, updated: int = 0, failed: int = 0) -> None:
        with self._status_lock:
            current = self._status
            self._status = current.model_copy(
                update={
                    "processed": current.processed + processed,
                    "updated": current.updated + updated,
                    "failed": current.failed + failed,
                }
            )

    # ===== Per statement =====

    def _process_statement(
        self,
        machine: EnrichmentStateMachine,
        statement: ResearchStatement,
        request: RunRequest,
    ) -> None:
        counts = self._store.get_counts(statement.id)
        self._update_status(statement_id=statement.id, total=counts.total)
        log = self._log.bind(statement_id=statement.id)
        log.info(
            "statement_enrichment_started",
            total=counts.total,
            missing_similarity=counts.missing_similarity,
            missing_final=counts.missing_final,
        )

        if request.force:
            self._enter_phase(machine, EnrichmentPhase.RESET)
            reset_feedback = (
                request.reset_feedback and self._config.enrichment.reset_feedback_on_force
            )
            rows = self._store.reset_similarity_and_final(statement.id)
            self._store.reset_keyword(statement.id)
            if reset_feedback:
                self._store.reset_feedback(statement.id)
            log.info("statement_scores_reset", rows=rows, reset_feedback=reset_feedback)

        gateway = self._gateway
        if gateway is not None and gateway.is_available:
            self._enter_phase(machine, EnrichmentPhase.EMBEDDING)
            self._run_phase(
                EnrichmentPhase.EMBEDDING,
                statement,
                lambda after: self._store.get_missing_embedding(
                    statement.id, request.batch_size, after
                ),
                lambda item: item.id or 0,
                lambda stmt, items: self._embed_batch(stmt, items, gateway),
            )
            statement = self._ensure_statement_embedding(statement)

        self._enter_phase(machine, EnrichmentPhase.SIMILARITY)
        if statement.embedding is None or statement.embedding.size == 0:
            log.warning("statement_embedding_missing_skipping_similarity")
        else:
            self._run_phase(
                EnrichmentPhase.SIMILARITY,
                statement,
                lambda after: self._store.get_missing_similarity(
                    statement.id, request.batch_size, after
                ),
                lambda row: row.content_item_id,
                self._similarity_batch,
            )

        self._enter_phase(machine, EnrichmentPhase.KEYWORD)
        self._run_phase(
            EnrichmentPhase.KEYWORD,
            statement,
            lambda after: self._store.get_missing_keyword_score(
                statement.id, request.batch_size, after
            ),
            lambda row: row.content_item_id,
            self._keyword_batch,
        )

        self._enter_phase(machine, EnrichmentPhase.FEEDBACK)
        rated = self._store.get_rated_with_embeddings(statement.id)
        rating_stats = feedback_rating_stats(rated)
        if not rating_stats.available:
            log.info("feedback_cold_start")
        else:
            log.info(
                "feedback_ratings_loaded",
                total_rated=rating_stats.total_rated,
                average_rating=round(rating_stats.average_rating, 3),
            )
        self._run_phase(
            EnrichmentPhase.FEEDBACK,
            statement,
            lambda after: self._store.get_missing_feedback_score(
                statement.id, request.batch_size, after
            ),
            lambda row: row.content_item_id,
            lambda stmt, rows: self._feedback_batch(stmt, rows, rated),
        )

        self._enter_phase(machine, EnrichmentPhase.HYBRID)
        self._run_phase(
            EnrichmentPhase.HYBRID,
            statement,
            lambda after: self._store.get_missing_final_score(
                statement.id, request.batch_size, after
            ),
            lambda row: row.content_item_id,
            self._hybrid_batch,
        )

    def _ensure_statement_embedding(self, statement: ResearchStatement) -> ResearchStatement:
        if statement.embedding is not None and statement.embedding.size > 0:
            return statement
        if self._gateway is None or not self._config.enrichment.embed_missing_statements:
            return statement

        try:
            result = self._gateway.embed_statement(statement)
        except EmbeddingError as e:
            self._log.warning(
                "statement_embedding_failed", statement_id=statement.id, error=str(e)
            )
            return statement

        self._store.update_statement_embedding(statement.id, result.vector)
        self._log.info("statement_embedding_computed", statement_id=statement.id)
        return self._store.get_statement(statement.id) or statement

    # ===== Phase loop =====

    def _pages(
        self,
        fetch: Callable[[int], Sequence[Row]],
        key: Callable[[Row], int],
    ) -> Iterator[Sequence[Row]]:
        """Yield pages until a fetch comes back empty.

        Each fetch starts after the last item of the previous page, so rows
        that could not be computed are never fetched twice in one phase.
        """
        after = 0
        while True:
            rows = fetch(after)
            if not rows:
                return
            yield rows
            after = key(rows[-1])

    def _run_phase(
        self,
        phase: EnrichmentPhase,
        statement: ResearchStatement,
        fetch: Callable[[int], Sequence[Row]],
        key: Callable[[Row], int],
        process: Callable[[ResearchStatement, Sequence[Row]], PhaseCounts],
    ) -> PhaseCounts:
        start = time.perf_counter()
        totals = PhaseCounts()

        for rows in self._pages(fetch, key):
            counts = process(statement, rows)
            counts.processed = len(rows)
            totals.processed += counts.processed
            totals.updated += counts.updated
            totals.failed += counts.failed
            self._add_counts(counts.processed, counts.updated, counts.failed)
            if counts.halted:
                break

        duration_ms = (time.perf_counter() - start) * 1000
        self._metrics.record_phase(
            phase.value, totals.processed, totals.updated, totals.failed, duration_ms
        )
        self._log.info(
            "enrichment_phase_complete",
            phase=phase.value,
            statement_id=statement.id,
            processed=totals.processed,
            updated=totals.updated,
            failed=totals.failed,
            duration_ms=round(duration_ms, 2),
        )
        return totals

    def _item_failed(self, phase: EnrichmentPhase, item_id: int, error: Exception) -> None:
        self._log.warning(
            "enrichment_item_failed",
            phase=phase.value,
            content_item_id=item_id,
            error_type=type(error).__name__,
            error=str(error),
        )

    # ===== Phase bodies =====

    def _embed_batch(
        self,
        statement: ResearchStatement,
        items: Sequence[Any],
        gateway: EmbeddingGateway,
    ) -> PhaseCounts:
        counts = PhaseCounts()
        for index, item in enumerate(items):
            try:
                vector = self._store.find_item_embedding(item.id)
                if vector is None:
                    result = gateway.embed_item(item)
                    if result is None:
                        counts.failed += 1
                        continue
                    vector = result.vector
                self._store.upsert_embedding(item.id, statement.id, vector)
                counts.updated += 1
            except EmbeddingProviderUnavailable as e:
                # no item left in this phase can be embedded
                counts.failed += len(items) - index
                counts.halted = True
                self._log.warning(
                    "embedding_provider_unavailable",
                    statement_id=statement.id,
                    content_item_id=item.id,
                    skipped=len(items) - index,
                    error=str(e),
                )
                break
            except Exception as e:  # noqa: BLE001
                counts.failed += 1
                self._item_failed(EnrichmentPhase.EMBEDDING, item.id, e)
        return counts

    def _similarity_batch(
        self, statement: ResearchStatement, rows: Sequence[Any]
    ) -> PhaseCounts:
        thresholds = self._config.similarity.thresholds
        counts = PhaseCounts()
        for row in rows:
            if row.embedding is None:
                counts.failed += 1
                self._log.warning(
                    "content_embedding_unreadable", content_item_id=row.content_item_id
                )
                continue
            similarity = cosine_similarity(row.embedding, statement.embedding)
            tier = determine_relevance_tier(similarity, thresholds)
            try:
                written = self._store.set_similarity_and_tier(
                    row.content_item_id, statement.id, similarity, int(tier)
                )
            except Exception as e:  # noqa: BLE001
                counts.failed += 1
                self._item_failed(EnrichmentPhase.SIMILARITY, row.content_item_id, e)
                continue
            counts.updated += int(written)
        return counts

    def _keyword_batch(
        self, statement: ResearchStatement, rows: Sequence[Any]
    ) -> PhaseCounts:
        counts = PhaseCounts()
        for row in rows:
            score = calculate_keyword_score(row.item, statement, self._config.keyword)
            try:
                written = self._store.set_keyword_score(
                    row.content_item_id, statement.id, score
                )
            except Exception as e:  # noqa: BLE001
                counts.failed += 1
                self._item_failed(EnrichmentPhase.KEYWORD, row.content_item_id, e)
                continue
            counts.updated += int(written)
        return counts

    def _feedback_batch(
        self,
        statement: ResearchStatement,
        rows: Sequence[Any],
        rated: Sequence[Any],
    ) -> PhaseCounts:
        counts = PhaseCounts()
        results = batch_compute_feedback_scores(rows, rated, self._config.feedback)
        for result in results:
            try:
                written = self._store.set_feedback_score(
                    result.content_item_id, statement.id, result.score
                )
            except Exception as e:  # noqa: BLE001
                counts.failed += 1
                self._item_failed(EnrichmentPhase.FEEDBACK, result.content_item_id, e)
                continue
            counts.updated += int(written)
        return counts

    def _hybrid_batch(
        self, statement: ResearchStatement, rows: Sequence[Any]
    ) -> PhaseCounts:
        counts = PhaseCounts()
        updates = batch_calculate_hybrid_scores(rows, self._config.hybrid)
        try:
            result = self._store.set_hybrid_scores(updates)
        except FeatureStoreError as e:
            self._metrics.record_batch_fallback()
            self._log.warning(
                "hybrid_batch_update_failed",
                statement_id=statement.id,
                batch_size=len(updates),
                error=str(e),
            )
        else:
            counts.updated = result.completed
            counts.failed = result.failed
            return counts

        for update in updates:
            try:
                written = self._store.set_hybrid_score(
                    update.content_item_id,
                    update.research_statement_id,
                    update.final_score,
                    update.relevance_tier,
                )
            except Exception as e:  # noqa: BLE001
                counts.failed += 1
                self._item_failed(EnrichmentPhase.HYBRID, update.content_item_id, e)
                continue
            if written:
                counts.updated += 1
            else:
                counts.failed += 1
        return counts
