# Tweaq Change Engine
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
#
# This file is part of Tweaq Change Engine.
#
# Tweaq Change Engine is dual-licensed:
#
# 1. Open Source: GNU Affero General Public License v3.0 (AGPL-3.0)
#    You may use, modify, and distribute this file under AGPL-3.0.
#    See LICENSE for the full text.
#
# 2. Commercial: Available from Phoenix Link (Pty) Ltd
#    For proprietary use, SaaS deployment, or enterprise licensing.
#    See LICENSE-ENTERPRISE.md or contact info@phoenixlink.co.za
#
# Contributions require a signed CLA. See COPYRIGHT.md and CLA.md.
"""
Tweaq Change Engine -- Pipeline

ChangeEngine wires the stages together:

    request -> IntentResolver -> ImpactAnalyzer -> ConfidenceAssessor
            -> StrategyExecutor (-> ValidationGate) -> ExecutionResult

USAGE:
    engine = ChangeEngine(provider=ProviderTextGenerator(), accessor=LocalFileAccessor(repo_root))
    result = await engine.process(request, repo_model)
    results = await engine.process_batch([edit_a, edit_b], repo_model)
    preview = await engine.dry_run(request, repo_model)

Each execution owns its content cache, retry counters and log; the repository
model is shared read-only, so batches run concurrently.
"""

import asyncio
import logging
from dataclasses import dataclass, field

from tweaq.core.analysis.impact_analyzer import ImpactAnalyzer
from tweaq.core.analysis.styling import IdiomTable
from tweaq.core.confidence.assessor import ConfidenceAssessor
from tweaq.core.config import EngineSettings, load_engine_settings
from tweaq.core.errors import ChangeExecutionFailed, TweaqError
from tweaq.core.llm.providers import TextGenerationProvider
from tweaq.core.models import (
    ChangeApproach,
    ChangeIntent,
    ChangeRequest,
    ChangeStrategy,
    ConfidenceAssessment,
    ExecutionResult,
    ImpactAnalysis,
    RiskLevel,
)
from tweaq.core.repository import ContentLoader, FileContentAccessor, SymbolicRepoModel
from tweaq.core.strategy.executor import StrategyExecutor
from tweaq.core.understanding.intent_resolver import IntentResolver
from tweaq.core.validation.gate import ValidationGate

logger = logging.getLogger("tweaq.core.engine")


@dataclass
class BatchItem:
    """Outcome of one request within a batch."""

    request: ChangeRequest
    result: ExecutionResult | None = None
    error: TweaqError | None = None

    @property
    def ok(self) -> bool:
        return self.result is not None


@dataclass
class DryRunReport:
    """What the engine would do, without calling the provider."""

    intent: ChangeIntent
    impact: ImpactAnalysis
    assessment: ConfidenceAssessment
    strategy: ChangeStrategy
    expected_changes: list[str] = field(default_factory=list)
    risks: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


class ChangeEngine:
    """The adaptive, confidence-driven change pipeline."""

    def __init__(
        self,
        provider: TextGenerationProvider | None,
        accessor: FileContentAccessor | None = None,
        settings: EngineSettings | None = None,
        idioms: IdiomTable | None = None,
    ):
        self.settings = settings or load_engine_settings()
        self.accessor = accessor
        self.resolver = IntentResolver(candidate_limit=self.settings.candidate_limit)
        self.analyzer = ImpactAnalyzer(idioms)
        self.assessor = ConfidenceAssessor(
            direct_threshold=self.settings.direct_threshold,
            guided_threshold=self.settings.guided_threshold,
            conservative_threshold=self.settings.conservative_threshold,
        )
        self.gate = ValidationGate(
            idioms=self.analyzer.idioms,
            scope_multiplier=self.settings.scope_multiplier,
            minimal_line_cap=self.settings.minimal_line_cap,
            max_deletion_ratio=self.settings.max_deletion_ratio,
        )
        self.executor = StrategyExecutor(provider, self.analyzer, self.gate, self.settings)

    async def prepare(
        self, request: ChangeRequest, repo: SymbolicRepoModel, loader: ContentLoader
    ) -> tuple[ChangeIntent, ImpactAnalysis, ConfidenceAssessment]:
        """Resolve, analyze and assess one request."""
        intent = self.resolver.resolve(request, repo)
        content = None
        if intent.target_component is not None:
            content = await loader.load(intent.target_component)
        impact = self.analyzer.analyze(intent, intent.target_component, repo, content=content)
        assessment = self.assessor.assess(request, intent, impact, repo)
        return intent, impact, assessment

    async def process(self, request: ChangeRequest, repo: SymbolicRepoModel) -> ExecutionResult:
        """Run one request end to end.

        Raises:
            ChangeExecutionFailed: no change passed validation within the attempt budget
        """
        loader = ContentLoader(self.accessor)
        intent, impact, assessment = await self.prepare(request, repo, loader)
        logger.info(
            "Processing %s: %s (confidence %.2f, %s)",
            request.id,
            intent.description[:80],
            assessment.confidence,
            assessment.recommended_approach.value,
        )
        return await self.executor.execute(intent, assessment, impact, repo, loader)

    async def process_batch(self, requests: list[ChangeRequest], repo: SymbolicRepoModel) -> list[BatchItem]:
        """Run independent requests concurrently; one failure never cancels the others."""

        async def _one(request: ChangeRequest) -> BatchItem:
            try:
                return BatchItem(request=request, result=await self.process(request, repo))
            except TweaqError as e:
                logger.warning("Batch item %s failed: %s", request.id, e)
                return BatchItem(request=request, error=e)

        return list(await asyncio.gather(*(_one(r) for r in requests)))

    async def dry_run(self, request: ChangeRequest, repo: SymbolicRepoModel) -> DryRunReport:
        """Analysis and a preview of the plan; the provider is never called."""
        loader = ContentLoader(self.accessor)
        intent, impact, assessment = await self.prepare(request, repo, loader)
        strategy = self.executor.plan(assessment)
        report = DryRunReport(intent=intent, impact=impact, assessment=assessment, strategy=strategy)

        for change in impact.direct_changes:
            old = f"{change.old_value} → " if change.old_value else ""
            report.expected_changes.append(f"{change.target}: {old}{change.new_value}")
        for cascade in impact.cascade_changes:
            marker = "required" if cascade.required else "optional"
            report.expected_changes.append(f"{cascade.target} ({marker}): {cascade.reason}")

        if not intent.is_resolved:
            report.risks.append("No target component; the engine will search the repository")
        if assessment.risk_level in (RiskLevel.HIGH, RiskLevel.CRITICAL):
            report.risks.append(f"{assessment.risk_level.value.capitalize()} risk change")
        if impact.required_cascades:
            report.risks.append("Design tokens may need matching updates")
        if assessment.recommended_approach == ChangeApproach.HUMAN_REVIEW:
            report.risks.append("Confidence too low to apply automatically")

        factors = assessment.factors
        if factors.visual_clarity < 0.5:
            report.recommendations.append("Describe the change more specifically (values, element)")
        if factors.component_understanding < 0.5:
            report.recommendations.append("Select the element directly so the component can be located")
        if assessment.recommended_approach == ChangeApproach.HUMAN_REVIEW:
            report.recommendations.append("Review the proposal before applying it")
        elif assessment.recommended_approach == ChangeApproach.DIRECT:
            report.recommendations.append("Safe to apply directly")
        return report


# =============================================================================
# SUMMARY
# =============================================================================


def render_summary(outcome: ExecutionResult | ChangeExecutionFailed) -> str:
    """Human-readable summary for the result consumer."""
    if isinstance(outcome, ChangeExecutionFailed):
        lines = [
            "Change failed",
            "-------------",
            f"Reason: {outcome.reason}",
            f"Failure: {outcome.kind.value}",
            f"Attempts: {outcome.attempts}",
        ]
        if outcome.issues:
            lines.append("Issues:")
            lines.extend(f"  - {issue.message}" for issue in outcome.issues)
        return "\n".join(lines)

    title = "Change proposal (requires approval)" if outcome.requires_approval else "Change applied"
    validation = outcome.validation
    lines = [
        title,
        "-" * len(title),
        f"Strategy: {outcome.strategy.approach.value}",
        f"Confidence: {validation.confidence * 100:.1f}%",
        f"Attempts: {outcome.attempts}",
        f"Files: {', '.join(c.file_path for c in outcome.file_changes) or 'none'}",
        f"Lines changed: {validation.metrics.lines_changed}",
    ]
    if validation.warnings:
        lines.append("Warnings:")
        lines.extend(f"  - {w.message}" for w in validation.warnings)
    return "\n".join(lines)
