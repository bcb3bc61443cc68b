"""
CLI command handlers for Shadow Risk.

Provides commands for:
- Assessing every entity of a snapshot
- Listing organization-level shadow permission findings
- Showing the security posture score
- Projecting the time-to-shadow timeline
"""

from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime
from typing import Any

from shadowrisk.config import (
    ConfigurationError,
    EngineConfiguration,
    load_config_from_env,
)
from shadowrisk.engine import AssessmentEngine, RiskReport
from shadowrisk.models import AggregationMode, SecurityScore, Severity
from shadowrisk.normalizer import (
    NormalizationError,
    SnapshotLoadError,
    load_snapshot,
    normalize_snapshot,
    parse_timestamp,
)
from shadowrisk.observability import get_logger
from shadowrisk.timeline import filter_events

logger = logging.getLogger(__name__)

CLI_ERRORS = (ConfigurationError, SnapshotLoadError, NormalizationError, ValueError)


def _load_config(args: argparse.Namespace) -> EngineConfiguration:
    config_path = getattr(args, "config", None)
    if config_path:
        return EngineConfiguration.from_file(config_path)
    return load_config_from_env()


def _parse_now(args: argparse.Namespace) -> datetime | None:
    raw = getattr(args, "now", None)
    if not raw:
        return None
    now = parse_timestamp(raw)
    if now is None:
        raise ValueError(f"Invalid --now timestamp: {raw}")
    return now


def _run_assessment(args: argparse.Namespace) -> RiskReport:
    """Load configuration and snapshot, then run the engine."""
    config = _load_config(args)
    snapshot = load_snapshot(args.snapshot)

    try:
        entities = normalize_snapshot(snapshot)
    except NormalizationError as e:
        get_logger("cli").normalization_failed(
            getattr(e, "provider", None) or "",
            getattr(e, "kind", None) or "",
            str(e),
        )
        raise

    mode_name = getattr(args, "mode", None)
    mode = AggregationMode(mode_name) if mode_name else None

    engine = AssessmentEngine(config)
    return engine.run(
        entities,
        now=_parse_now(args),
        previous_score=getattr(args, "previous_score", None),
        mode=mode,
    )


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2))


def _print_score(score: SecurityScore) -> None:
    trend = (
        f"{score.trend_percent:+.1f}%" if score.trend_percent is not None else "n/a"
    )
    print(f"Security Score: {score.overall_score}/100 ({score.risk_tier.value})")
    print(f"Mode: {score.mode.value}")
    print(f"Trend: {trend}")

    if score.category_breakdown:
        print("")
        print("Breakdown:")
        for category in score.category_breakdown:
            print(f"  {category.category:<28} {category.score:>6.1f}")
            for detail in category.details:
                print(f"      {detail}")

    if score.recommendations:
        print("")
        print("Recommendations:")
        for rec in score.recommendations:
            print(f"  - {rec}")


def cmd_assess(args: argparse.Namespace) -> int:
    """
    Assess every entity of a snapshot.

    Returns:
        Exit code (0 success, 1 error)
    """
    try:
        report = _run_assessment(args)
    except CLI_ERRORS as e:
        logger.error(f"Assessment failed: {e}")
        print(f"Error: {e}")
        return 1

    if args.format == "json":
        _print_json(report.to_dict())
        return 0

    print("")
    print("Entity Risk")
    print("-" * 90)
    print(f"{'Entity':<40} {'Kind':<6} {'Provider':<8} {'Level':<9} {'Score':>5}  Findings")
    print("-" * 90)
    for assessment in report.assessments:
        name = assessment.entity_name
        name = name[:37] + "..." if len(name) > 40 else name
        print(
            f"{name:<40} {assessment.kind.value:<6} {assessment.provider.value:<8} "
            f"{assessment.risk_level.value:<9} {assessment.score:>5}  "
            f"{len(assessment.shadow_findings)}"
        )
    print("")
    print(f"Total: {len(report.assessments)} entities, "
          f"{len(report.findings)} unique shadow findings")
    print("")
    _print_score(report.security_score)
    return 0


def cmd_findings(args: argparse.Namespace) -> int:
    """
    List organization-level deduplicated shadow findings.

    Returns:
        Exit code (0 success, 1 error)
    """
    try:
        report = _run_assessment(args)
    except CLI_ERRORS as e:
        logger.error(f"Finding detection failed: {e}")
        print(f"Error: {e}")
        return 1

    findings = list(report.findings)
    severity = getattr(args, "severity", None)
    if severity:
        findings = [f for f in findings if f.severity == Severity.from_string(severity)]

    if args.format == "json":
        _print_json([f.to_dict() for f in findings])
        return 0

    if not findings:
        print("No shadow permission findings.")
        return 0

    print("")
    print("Shadow Permission Findings")
    print("-" * 100)
    print(f"{'Category':<24} {'Severity':<9} {'Entity':<30} Details")
    print("-" * 100)
    for finding in findings:
        entity = finding.entity_name
        entity = entity[:27] + "..." if len(entity) > 30 else entity
        print(
            f"{finding.category.value:<24} {finding.severity.value:<9} "
            f"{entity:<30} {finding.details}"
        )
    print("")
    print(f"Total: {len(findings)} findings")
    return 0


def cmd_score(args: argparse.Namespace) -> int:
    """
    Show the security posture score.

    Returns:
        Exit code (0 success, 1 error)
    """
    try:
        report = _run_assessment(args)
    except CLI_ERRORS as e:
        logger.error(f"Scoring failed: {e}")
        print(f"Error: {e}")
        return 1

    if args.format == "json":
        _print_json(report.security_score.to_dict())
        return 0

    _print_score(report.security_score)
    return 0


def cmd_timeline(args: argparse.Namespace) -> int:
    """
    Show the time-to-shadow timeline.

    Returns:
        Exit code (0 success, 1 error)
    """
    try:
        report = _run_assessment(args)
        severity = getattr(args, "severity", None)
        events = filter_events(
            report.timeline.events,
            report.generated_at,
            severity=Severity.from_string(severity) if severity else None,
            horizon_days=getattr(args, "horizon", None),
        )
    except CLI_ERRORS as e:
        logger.error(f"Timeline projection failed: {e}")
        print(f"Error: {e}")
        return 1

    summary = report.timeline.summary

    if args.format == "json":
        _print_json(
            {
                "generated_at": report.generated_at.isoformat(),
                "summary": summary.to_dict(),
                "events": [e.to_dict() for e in events],
            }
        )
        return 0

    print("")
    print(f"Timeline Summary ({summary.total_events} events)")
    print(f"  Critical: {summary.critical_events}  High: {summary.high_risk_events}  "
          f"Medium: {summary.medium_risk_events}  Low: {summary.low_risk_events}")
    print(f"  Next 30 days: {summary.next_30_days}  Next 90 days: {summary.next_90_days}  "
          f"Next 180 days: {summary.next_180_days}")
    print("")

    if not events:
        print("No matching timeline events.")
        return 0

    print("-" * 100)
    print(f"{'Date':<12} {'Severity':<9} {'Type':<20} {'Conf':>4}  Entity")
    print("-" * 100)
    for event in events:
        print(
            f"{event.estimated_date.date().isoformat():<12} {event.severity.value:<9} "
            f"{event.event_type.value:<20} {event.confidence:>3}%  {event.entity_ref.name}"
        )
        print(f"{'':<12} {event.description}")
    return 0
