"""
Assessment engine for Shadow Risk.

Runs a full assessment over a snapshot of entities: per-entity scoring and
shadow detection fanned out over a worker pool, then organization-level
aggregation and timeline projection once every entity is done.
"""

from __future__ import annotations

import time
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Sequence

from shadowrisk.aggregation import SecurityScoreAggregator
from shadowrisk.config import EngineConfiguration
from shadowrisk.models import (
    ENTITY_TYPES,
    AggregationMode,
    GoogleRiskAssessment,
    IdentityEntity,
    RiskAssessment,
    SecurityScore,
    ShadowFinding,
    SubScores,
    TimelineResult,
)
from shadowrisk.normalizer import UnknownEntityKindError
from shadowrisk.observability import get_logger
from shadowrisk.scoring import RiskScorer
from shadowrisk.shadow import (
    DetectionResult,
    ShadowPermissionDetector,
    deduplicate_findings,
)
from shadowrisk.timeline import ShadowTimelineProjector

logger = get_logger("engine")


@dataclass(frozen=True)
class EntityResult:
    """Per-entity output of the fan-out stage."""

    assessment: RiskAssessment | GoogleRiskAssessment
    detection: DetectionResult
    subscores: SubScores


@dataclass(frozen=True)
class RiskReport:
    """
    Complete result of an assessment run.

    Attributes:
        run_id: Identifier of the run
        generated_at: The run's "now", shared by every component
        assessments: Per-entity assessments (with their findings), in input order
        findings: Organization-level deduplicated shadow findings
        security_score: Posture score in the requested mode
        timeline: Time-to-shadow projection
        mode: Aggregation mode used
        detections: Per-entity detection results with legacy points, in input order
    """

    run_id: str
    generated_at: datetime
    assessments: tuple[RiskAssessment | GoogleRiskAssessment, ...]
    findings: tuple[ShadowFinding, ...]
    security_score: SecurityScore
    timeline: TimelineResult
    mode: AggregationMode
    detections: tuple[DetectionResult, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        """Convert report to dictionary."""
        return {
            "run_id": self.run_id,
            "generated_at": self.generated_at.isoformat(),
            "mode": self.mode.value,
            "assessments": [a.to_dict() for a in self.assessments],
            "findings": [f.to_dict() for f in self.findings],
            "security_score": self.security_score.to_dict(),
            "timeline": self.timeline.to_dict(),
            "detections": [d.to_dict() for d in self.detections],
        }


class AssessmentEngine:
    """
    Orchestrates scoring, detection, aggregation and projection.

    Example:
        >>> engine = AssessmentEngine()
        >>> report = engine.run(entities, previous_score=72)
        >>> report.security_score.overall_score
        64
    """

    def __init__(self, config: EngineConfiguration | None = None):
        """
        Initialize the engine.

        Args:
            config: Engine configuration (defaults used if None)
        """
        self.config = config or EngineConfiguration()
        self.scorer = RiskScorer(self.config)
        self.detector = ShadowPermissionDetector(self.config)
        self.aggregator = SecurityScoreAggregator(self.config, scorer=self.scorer)
        self.projector = ShadowTimelineProjector(self.config)

    def run(
        self,
        entities: Sequence[IdentityEntity],
        now: datetime | None = None,
        previous_score: float | None = None,
        mode: AggregationMode | None = None,
    ) -> RiskReport:
        """
        Run a full assessment.

        Args:
            entities: Normalized entities
            now: Run time, captured once and shared (defaults to the current time)
            previous_score: Previous overall score for the trend
            mode: Aggregation mode (defaults to the configured mode)

        Returns:
            RiskReport

        Raises:
            UnknownEntityKindError: If any entity is not a known variant
        """
        entities = list(entities)
        for entity in entities:
            if not isinstance(entity, ENTITY_TYPES):
                raise UnknownEntityKindError(type(entity).__name__)

        now = now or datetime.now(timezone.utc)
        mode = mode or self.config.aggregation.default_mode
        run_id = str(uuid.uuid4())
        started = time.monotonic()

        logger.assessment_started(run_id, len(entities), mode.value)

        results = self._score_all(entities, now)

        assessments = tuple(
            r.assessment.with_findings(list(r.detection.findings)) for r in results
        )
        findings = deduplicate_findings(
            f for r in results for f in r.detection.findings
        )

        if mode == AggregationMode.WEIGHTED:
            security_score = self.aggregator.aggregate_weighted(
                entities,
                now,
                previous_score,
                subscores=[r.subscores for r in results],
            )
        else:
            security_score = self.aggregator.compute(
                mode, findings, entities, previous_score, now
            )

        timeline = self.projector.project(entities, now)

        logger.assessment_completed(
            run_id,
            len(entities),
            len(findings),
            security_score.overall_score,
            round(time.monotonic() - started, 3),
        )

        return RiskReport(
            run_id=run_id,
            generated_at=now,
            assessments=assessments,
            findings=tuple(findings),
            security_score=security_score,
            timeline=timeline,
            mode=mode,
            detections=tuple(r.detection for r in results),
        )

    def score_entity(self, entity: IdentityEntity, now: datetime) -> EntityResult:
        """Score, detect and compute sub-scores for one entity."""
        assessment = self.scorer.score(entity, now)
        detection = self.detector.analyze(entity, now)
        subscores = assessment.subscores

        logger.entity_scored(
            entity.name,
            entity.provider.value,
            assessment.risk_level.value,
            len(detection.findings),
        )
        return EntityResult(assessment, detection, subscores)

    def _score_all(
        self, entities: list[IdentityEntity], now: datetime
    ) -> list[EntityResult]:
        """Fan out per-entity work and return results in input order."""
        max_workers = self.config.execution.max_workers
        if max_workers <= 1 or len(entities) <= 1:
            return [self.score_entity(e, now) for e in entities]

        results: list[EntityResult | None] = [None] * len(entities)
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_index = {
                executor.submit(self.score_entity, entity, now): index
                for index, entity in enumerate(entities)
            }

            for future in as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    results[index] = future.result()
                except Exception as e:
                    logger.error(
                        f"Failed to score entity {entities[index].name}: {e}"
                    )
                    raise

        return [r for r in results if r is not None]
