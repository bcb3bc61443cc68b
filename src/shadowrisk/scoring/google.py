"""
Google Workspace user risk scoring.

Google users carry no IAM policies or access keys. Their risk is an additive
point score over account state flags, on a wider scale than the AWS
sub-score sum; the two scales only meet through ``risk_level``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from shadowrisk.config import EngineConfiguration, GoogleRiskPoints
from shadowrisk.models import (
    GoogleRiskAssessment,
    GoogleRiskScore,
    GoogleUserEntity,
    SubScores,
)
from shadowrisk.scoring.subscores import (
    google_permission_branch,
    recency_branch,
    user_identity_branch,
)

logger = logging.getLogger(__name__)


def google_subscores(user: GoogleUserEntity, now: datetime) -> SubScores:
    """
    Provider-agnostic sub-scores of a Google user.

    Recency comes from the last login, permission from admin status, and
    identity from the user branch without the access key rule (suspended
    counts as inactive).
    """
    recency, _ = recency_branch(user.last_used_at, now, "User")
    permission, _ = google_permission_branch(user)
    identity, _ = user_identity_branch(
        user.last_used_at, user.has_mfa, None, now, suspended=user.suspended
    )
    return SubScores(recency=recency, permission=permission, identity=identity)


class GoogleRiskScorer:
    """
    Scores Google Workspace users on the additive point scale.

    Point values come from GoogleRiskPoints; levels are critical at 15,
    high at 10 and medium at 5 points.
    """

    def __init__(self, config: EngineConfiguration | None = None):
        """
        Initialize the scorer.

        Args:
            config: Engine configuration (defaults used if None)
        """
        self.config = config or EngineConfiguration()

    @property
    def points(self) -> GoogleRiskPoints:
        return self.config.google_points

    def score(
        self, user: GoogleUserEntity, now: datetime | None = None
    ) -> GoogleRiskAssessment:
        """
        Score a Google Workspace user.

        Args:
            user: User to score
            now: Scoring run time (defaults to the current time)

        Returns:
            GoogleRiskAssessment
        """
        now = now or datetime.now(timezone.utc)
        points = self.points
        contributions: list[tuple[str, int]] = []

        never_logged_in = user.last_used_at is None
        if never_logged_in:
            contributions.append(("Never logged in", points.never_logged_in))
        if user.suspended:
            contributions.append(("Account is suspended", points.suspended))
        if user.has_admin_privileges:
            contributions.append(("User has admin privileges", points.admin_privileges))
        if user.change_password_at_next_login:
            contributions.append(
                ("Password change required at next login", points.change_password_required)
            )
        if not user.is_mailbox_setup:
            contributions.append(("Mailbox not set up", points.mailbox_not_setup))
        if not user.has_mfa:
            contributions.append(
                ("Not enrolled in 2-Step Verification", points.no_two_step_verification)
            )

        for provider in user.correlated_providers:
            contributions.append(
                (
                    f"Also holds {provider.value.upper()} access",
                    points.correlated_provider_access,
                )
            )
            if never_logged_in:
                contributions.append(
                    (
                        f"Holds {provider.value.upper()} access but never logged in",
                        points.correlated_while_never_logged_in,
                    )
                )

        risk_score = GoogleRiskScore(
            points=sum(value for _, value in contributions),
            contributions=tuple(contributions),
        )

        logger.debug(
            f"Scored Google user {user.name}: {risk_score.points} points "
            f"({risk_score.risk_level.value})"
        )

        return GoogleRiskAssessment(
            entity_name=user.name,
            risk_score=risk_score,
            subscores=google_subscores(user, now),
            factors=tuple(reason for reason, _ in contributions),
        )
