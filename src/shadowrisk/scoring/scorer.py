"""
Per-entity risk scorer.

Computes the three independent sub-scores of an entity (recency of use,
permission breadth, identity context) and derives its risk level from their
sum. Scoring is pure: the same entity and ``now`` always give the same
assessment.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from shadowrisk.config import EngineConfiguration
from shadowrisk.models import (
    AwsRiskScore,
    GoogleRiskAssessment,
    GoogleUserEntity,
    IdentityEntity,
    RiskAssessment,
    RoleEntity,
    SubScores,
    UserEntity,
    activity_signal,
)
from shadowrisk.normalizer import UnknownEntityKindError
from shadowrisk.scoring.google import GoogleRiskScorer, google_subscores
from shadowrisk.scoring.subscores import (
    Branch,
    permission_branch,
    recency_branch,
    role_identity_branch,
    user_identity_branch,
)

logger = logging.getLogger(__name__)


def _unknown(entity: object) -> UnknownEntityKindError:
    return UnknownEntityKindError(type(entity).__name__)


class RiskScorer:
    """
    Scores identity entities.

    AWS users and roles are scored on the sub-score sum (0-15); Google
    Workspace users are handed to GoogleRiskScorer and scored on its point
    scale.

    Example:
        >>> scorer = RiskScorer()
        >>> assessment = scorer.score(user, now=now)
        >>> assessment.risk_level
        <RiskLevel.HIGH: 'high'>
    """

    def __init__(self, config: EngineConfiguration | None = None):
        """
        Initialize the scorer.

        Args:
            config: Engine configuration (defaults used if None)
        """
        self.config = config or EngineConfiguration()
        self._google = GoogleRiskScorer(self.config)

    def score(
        self, entity: IdentityEntity, now: datetime | None = None
    ) -> RiskAssessment | GoogleRiskAssessment:
        """
        Score a single entity.

        Args:
            entity: Entity to score
            now: Scoring run time (defaults to the current time)

        Returns:
            RiskAssessment for AWS entities, GoogleRiskAssessment for Google users

        Raises:
            UnknownEntityKindError: If the entity is not a known variant
        """
        now = now or datetime.now(timezone.utc)

        if isinstance(entity, GoogleUserEntity):
            return self._google.score(entity, now)
        if not isinstance(entity, (UserEntity, RoleEntity)):
            raise _unknown(entity)

        branches = self._aws_branches(entity, now)
        subscores = SubScores(
            recency=branches[0][0],
            permission=branches[1][0],
            identity=branches[2][0],
        )
        factors = tuple(reason for score, reason in branches if score and reason)

        assessment = RiskAssessment(
            entity_name=entity.name,
            kind=entity.kind,
            provider=entity.provider,
            risk_score=AwsRiskScore(subscores),
            factors=factors,
        )

        logger.debug(
            f"Scored {entity.kind.value} {entity.name}: {subscores.to_dict()} "
            f"-> {assessment.risk_level.value}"
        )
        return assessment

    def subscores(self, entity: IdentityEntity, now: datetime | None = None) -> SubScores:
        """
        Compute the provider-agnostic sub-scores of any entity variant.

        Args:
            entity: Entity to score
            now: Scoring run time (defaults to the current time)

        Returns:
            SubScores

        Raises:
            UnknownEntityKindError: If the entity is not a known variant
        """
        now = now or datetime.now(timezone.utc)

        if isinstance(entity, GoogleUserEntity):
            return google_subscores(entity, now)
        if not isinstance(entity, (UserEntity, RoleEntity)):
            raise _unknown(entity)

        recency, permission, identity = self._aws_branches(entity, now)
        return SubScores(
            recency=recency[0], permission=permission[0], identity=identity[0]
        )

    def _aws_branches(
        self, entity: UserEntity | RoleEntity, now: datetime
    ) -> tuple[Branch, Branch, Branch]:
        """Recency, permission and identity branches, in factor order."""
        patterns = self.config.patterns

        if isinstance(entity, RoleEntity):
            return (
                recency_branch(entity.last_used_at, now, "Role"),
                permission_branch(entity.policies, patterns),
                role_identity_branch(entity, now),
            )

        signal = activity_signal(entity)
        return (
            recency_branch(signal, now, "User"),
            permission_branch(entity.policies, patterns),
            user_identity_branch(signal, entity.has_mfa, entity.access_keys, now),
        )
