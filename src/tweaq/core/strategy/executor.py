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
Tweaq Change Engine -- Strategy Executor

Drives a ChangeStrategy to one of three terminal states:

    APPLY    -- a FileChange set that passed the Validation Gate
    PROPOSE  -- a human-review proposal (original content, annotated)
    FAIL     -- the attempt budget ran out (ChangeExecutionFailed)

STATE MACHINE:
    ANALYZE -> GENERATE -> (VERIFY) -> VALIDATE -> APPLY | PROPOSE
                                           |
                       gate failure / timeout -> FALLBACK (next tier, discounted)
              over-deletion / provider error -> RETRY    (same tier)
                        attempts exhausted   -> FAIL

Over-deletion guard: a generated file shorter than 80% of the original gets
one feedback retry inside the attempt; if it is still short the attempt is
abandoned as over-deletion. Short output is never accepted.

Broad scope: with no target component, the guided and direct tiers rank
every component for relevance and run the top five through independent
generate -> validate cycles, returning every one that passes and actually
changes its file. Lower tiers anchor on the single best candidate.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum

from tweaq.core.analysis.impact_analyzer import ImpactAnalyzer
from tweaq.core.config import EngineSettings
from tweaq.core.errors import ChangeExecutionFailed, FailureKind, ProviderError
from tweaq.core.llm.providers import TextGenerationProvider
from tweaq.core.logging import get_logger
from tweaq.core.models import (
    ChangeApproach,
    ChangeIntent,
    ChangeStep,
    ChangeStrategy,
    ConfidenceAssessment,
    ExecutionOutcome,
    ExecutionResult,
    FileAction,
    FileChange,
    ImpactAnalysis,
    IssueType,
    Severity,
    StepType,
    TargetComponent,
    ValidationIssue,
    ValidationMetrics,
    ValidationResult,
)
from tweaq.core.repository import ContentLoader, SymbolicRepoModel
from tweaq.core.strategy.planner import build_strategy
from tweaq.core.strategy.prompts import build_generation_prompt, build_over_deletion_prompt, render_proposal
from tweaq.core.strategy.relevance import rank_components
from tweaq.core.strategy.response import extract_code
from tweaq.core.validation.gate import ValidationGate, diff_metrics

logger = logging.getLogger("tweaq.strategy.executor")

LARGE_CHANGE_RATIO = 0.5

BROAD_SCOPE_APPROACHES = (ChangeApproach.DIRECT, ChangeApproach.GUIDED)

_ISSUE_FAILURE = {
    IssueType.SCOPE: FailureKind.SCOPE_EXCEEDED,
    IssueType.DELETION: FailureKind.EXCESSIVE_DELETION,
    IssueType.PRESERVATION: FailureKind.PRESERVATION_VIOLATED,
    IssueType.INTENT: FailureKind.INTENT_NOT_REFLECTED,
}

# Failures that swap in the fallback tier; the rest retry the same tier
_FALLBACK_FAILURES = {
    FailureKind.SCOPE_EXCEEDED,
    FailureKind.EXCESSIVE_DELETION,
    FailureKind.PRESERVATION_VIOLATED,
    FailureKind.INTENT_NOT_REFLECTED,
    FailureKind.TIMEOUT,
}


class ExecutorState(str, Enum):
    ANALYZE = "analyze"
    GENERATE = "generate"
    VERIFY = "verify"
    VALIDATE = "validate"
    APPLY = "apply"
    RETRY = "retry"
    FALLBACK = "fallback"
    PROPOSE = "propose"
    FAIL = "fail"


TERMINAL_STATES = (ExecutorState.APPLY, ExecutorState.PROPOSE, ExecutorState.FAIL)


@dataclass
class _Workspace:
    """Working state for one file within one attempt."""

    component: TargetComponent
    impact: ImpactAnalysis
    original: str = ""
    generated: str | None = None
    validation: ValidationResult | None = None
    verify_warnings: list[ValidationIssue] = field(default_factory=list)
    failure: FailureKind | None = None
    reason: str = ""

    @property
    def alive(self) -> bool:
        return self.failure is None


@dataclass
class _AttemptOutcome:
    next_state: ExecutorState
    workspaces: list[_Workspace] = field(default_factory=list)
    failure: FailureKind | None = None
    reason: str = ""
    validation: ValidationResult | None = None


class _StepTimeout(Exception):
    pass


@dataclass
class _Run:
    """Per-execution bookkeeping. Never shared between executions."""

    intent: ChangeIntent
    impact: ImpactAnalysis
    assessment: ConfidenceAssessment
    repo: SymbolicRepoModel
    loader: ContentLoader
    log: list[str] = field(default_factory=list)
    feedback: list[ValidationIssue] = field(default_factory=list)
    last_validation: ValidationResult | None = None
    last_failure: FailureKind | None = None
    last_reason: str = ""

    def note(self, attempt: int, message: str):
        self.log.append(f"[attempt {attempt}] {message}")
        logger.debug("%s: %s", self.intent.id, message)


class StrategyExecutor:
    """Runs strategies against a text-generation provider."""

    def __init__(
        self,
        provider: TextGenerationProvider | None,
        analyzer: ImpactAnalyzer | None = None,
        gate: ValidationGate | None = None,
        settings: EngineSettings | None = None,
    ):
        self.provider = provider
        self.settings = settings or EngineSettings()
        self.analyzer = analyzer or ImpactAnalyzer()
        self.gate = gate or ValidationGate(
            idioms=self.analyzer.idioms,
            scope_multiplier=self.settings.scope_multiplier,
            minimal_line_cap=self.settings.minimal_line_cap,
            max_deletion_ratio=self.settings.max_deletion_ratio,
        )

    def plan(self, assessment: ConfidenceAssessment) -> ChangeStrategy:
        return build_strategy(
            assessment,
            fallback_discount=self.settings.fallback_discount,
            analyze_timeout=self.settings.analyze_timeout,
        )

    # =========================================================================
    # OUTER LOOP
    # =========================================================================

    async def execute(
        self,
        intent: ChangeIntent,
        assessment: ConfidenceAssessment,
        impact: ImpactAnalysis,
        repo: SymbolicRepoModel,
        loader: ContentLoader | None = None,
    ) -> ExecutionResult:
        run = _Run(
            intent=intent,
            impact=impact,
            assessment=assessment,
            repo=repo,
            loader=loader or ContentLoader(),
        )
        live = get_logger()
        strategy = self.plan(assessment)
        attempt = 0
        outcome: _AttemptOutcome | None = None
        state = ExecutorState.ANALYZE

        while state not in TERMINAL_STATES:
            if state == ExecutorState.ANALYZE:
                attempt += 1
                run.note(attempt, f"start {strategy.approach.value} (confidence {strategy.confidence:.2f})")
                outcome = await self._run_attempt(strategy, attempt, run)
                state = outcome.next_state
                if state in (ExecutorState.RETRY, ExecutorState.FALLBACK, ExecutorState.FAIL):
                    run.last_failure = outcome.failure
                    run.last_reason = outcome.reason
                    if outcome.validation is not None:
                        run.last_validation = outcome.validation
                        run.feedback = list(outcome.validation.issues)
                    run.note(attempt, f"failed: {outcome.reason}")

            elif state == ExecutorState.RETRY:
                if attempt >= self.settings.max_attempts:
                    state = ExecutorState.FAIL
                else:
                    run.note(attempt, f"retry at {strategy.approach.value}")
                    live.attempt(attempt, "retry", reason=run.last_reason[:120])
                    state = ExecutorState.ANALYZE

            elif state == ExecutorState.FALLBACK:
                if attempt >= self.settings.max_attempts:
                    state = ExecutorState.FAIL
                elif strategy.fallback_strategy is None:
                    run.note(attempt, f"no fallback below {strategy.approach.value}; retry")
                    state = ExecutorState.RETRY
                else:
                    strategy = strategy.fallback_strategy
                    run.note(attempt, f"fallback to {strategy.approach.value}")
                    live.attempt(attempt, "fallback", approach=strategy.approach.value)
                    state = ExecutorState.ANALYZE

        if state == ExecutorState.FAIL:
            live.attempt(attempt, "fail", kind=(run.last_failure or FailureKind.PROVIDER_FAILURE).value)
            raise ChangeExecutionFailed(
                run.last_reason or "No change passed validation",
                kind=run.last_failure or FailureKind.PROVIDER_FAILURE,
                last_validation=run.last_validation,
                execution_log=run.log,
                attempts=attempt,
            )

        passed = [ws for ws in outcome.workspaces if ws.alive]
        proposal = state == ExecutorState.PROPOSE
        changes = [self._file_change(ws, strategy, proposal) for ws in passed]
        run.note(attempt, f"{'proposed' if proposal else 'applied'} {len(changes)} file(s)")
        live.attempt(attempt, state.value, files=len(changes))
        return ExecutionResult(
            file_changes=changes,
            validation=_merge_validations([ws.validation for ws in passed]),
            strategy=strategy,
            outcome=ExecutionOutcome.PROPOSAL if proposal else ExecutionOutcome.APPLIED,
            execution_log=run.log,
            attempts=attempt,
        )

    # =========================================================================
    # ONE ATTEMPT
    # =========================================================================

    async def _run_attempt(self, strategy: ChangeStrategy, attempt: int, run: _Run) -> _AttemptOutcome:
        workspaces: list[_Workspace] = []
        for step in strategy.steps:
            try:
                if step.type == StepType.ANALYZE:
                    workspaces = await self._timed(step, self._analyze(strategy, attempt, run))
                    if not workspaces:
                        return _AttemptOutcome(
                            ExecutorState.FAIL,
                            failure=FailureKind.NO_CANDIDATES,
                            reason="No component is relevant to the request",
                        )
                elif step.type == StepType.GENERATE:
                    for ws in workspaces:
                        await self._timed(step, self._generate(ws, strategy, attempt, run))
                elif step.type == StepType.VERIFY:
                    for ws in _alive(workspaces):
                        self._verify(ws, attempt, run)
                elif step.type == StepType.VALIDATE:
                    for ws in _alive(workspaces):
                        self._validate(ws, strategy, run)
                elif step.type == StepType.APPLY:
                    pass
            except _StepTimeout:
                run.note(attempt, f"{step.type.value} step timed out after {step.timeout}s")
                return _AttemptOutcome(
                    ExecutorState.FALLBACK,
                    workspaces=workspaces,
                    failure=FailureKind.TIMEOUT,
                    reason=f"{step.type.value} step exceeded {step.timeout}s",
                )

            if step.type in (StepType.GENERATE, StepType.VALIDATE) and not _alive(workspaces):
                return self._failed_attempt(workspaces)

        if strategy.approach == ChangeApproach.HUMAN_REVIEW:
            return _AttemptOutcome(ExecutorState.PROPOSE, workspaces=workspaces)
        return _AttemptOutcome(ExecutorState.APPLY, workspaces=workspaces)

    @staticmethod
    def _failed_attempt(workspaces: list[_Workspace]) -> _AttemptOutcome:
        last = workspaces[-1]
        kind = last.failure or FailureKind.PROVIDER_FAILURE
        next_state = ExecutorState.FALLBACK if kind in _FALLBACK_FAILURES else ExecutorState.RETRY
        return _AttemptOutcome(
            next_state,
            workspaces=workspaces,
            failure=kind,
            reason=last.reason,
            validation=last.validation,
        )

    @staticmethod
    async def _timed(step: ChangeStep, coro):
        if step.timeout is None:
            return await coro
        try:
            return await asyncio.wait_for(coro, timeout=step.timeout)
        except asyncio.TimeoutError as e:
            raise _StepTimeout() from e

    # =========================================================================
    # STEPS
    # =========================================================================

    async def _analyze(self, strategy: ChangeStrategy, attempt: int, run: _Run) -> list[_Workspace]:
        intent = run.intent
        if intent.target_component is not None:
            component = intent.target_component
            original = await run.loader.load(component)
            run.note(attempt, f"analyze: {component.name} ({component.file_path})")
            return [_Workspace(component=component, impact=run.impact, original=original)]

        limit = self.settings.broad_scope_top_n if strategy.approach in BROAD_SCOPE_APPROACHES else 1
        ranked = await rank_components(intent, run.repo, run.loader, top_n=limit)
        workspaces = []
        for score, component in ranked:
            original = await run.loader.load(component)
            impact = self.analyzer.analyze(intent, component, run.repo, content=original)
            workspaces.append(_Workspace(component=component, impact=impact, original=original))
        run.note(
            attempt,
            "analyze (broad scope): "
            + (", ".join(f"{c.name}={s}" for s, c in ranked) or "no relevant components"),
        )
        return workspaces

    async def _generate(self, ws: _Workspace, strategy: ChangeStrategy, attempt: int, run: _Run):
        if strategy.approach == ChangeApproach.HUMAN_REVIEW:
            ws.generated = render_proposal(
                ws.original, ws.component, run.intent, ws.impact, risk=run.assessment.risk_level.value
            )
            run.note(attempt, f"generate: proposal for {ws.component.file_path}")
            return

        if self.provider is None:
            ws.failure = FailureKind.PROVIDER_FAILURE
            ws.reason = "No text-generation provider configured"
            return

        prompt = build_generation_prompt(
            strategy.approach, ws.original, ws.component, run.intent, ws.impact, run.feedback
        )
        try:
            generated = extract_code(await self.provider.generate_text(prompt), ws.original)
            if self._too_short(generated, ws.original):
                run.note(
                    attempt,
                    f"over-deletion: {len(generated)} of {len(ws.original)} chars; retrying with feedback",
                )
                retry_prompt = build_over_deletion_prompt(
                    ws.original, generated, ws.component, run.intent, ws.impact
                )
                generated = extract_code(await self.provider.generate_text(retry_prompt), ws.original)
        except ProviderError as e:
            ws.failure = FailureKind.PROVIDER_FAILURE
            ws.reason = f"Provider failed: {e}"
            return
        except Exception as e:
            logger.warning("Provider raised %s for %s: %s", type(e).__name__, ws.component.file_path, e)
            ws.failure = FailureKind.PROVIDER_FAILURE
            ws.reason = f"Provider raised {type(e).__name__}: {e}"
            return

        if self._too_short(generated, ws.original):
            ws.failure = FailureKind.OVER_DELETION
            ws.reason = (
                f"Generated {ws.component.file_path} is {len(generated)} characters; "
                f"original is {len(ws.original)}"
            )
            get_logger().warn("Executor", "Over-deletion rejected", file=ws.component.file_path)
            return

        ws.generated = generated
        run.note(attempt, f"generate: {len(generated)} chars for {ws.component.file_path}")

    def _too_short(self, generated: str, original: str) -> bool:
        return len(generated) < self.settings.min_length_ratio * len(original)

    def _verify(self, ws: _Workspace, attempt: int, run: _Run):
        metrics = diff_metrics(ws.original, ws.generated or "")
        if metrics.lines_changed == 0:
            ws.verify_warnings.append(
                ValidationIssue(IssueType.QUALITY, Severity.WARNING, "Verify: no actual change detected")
            )
        elif metrics.change_ratio > LARGE_CHANGE_RATIO:
            ws.verify_warnings.append(
                ValidationIssue(
                    IssueType.QUALITY,
                    Severity.WARNING,
                    f"Verify: {metrics.change_ratio:.0%} of lines changed",
                )
            )
        run.note(attempt, f"verify: {metrics.lines_changed} line(s) changed in {ws.component.file_path}")

    def _validate(self, ws: _Workspace, strategy: ChangeStrategy, run: _Run):
        if strategy.approach == ChangeApproach.HUMAN_REVIEW:
            ws.validation = self._validate_proposal(ws, strategy)
        else:
            ws.validation = self.gate.validate(
                ws.original,
                ws.generated or "",
                run.intent,
                strategy.confidence,
                ws.impact,
                validation_level=strategy.validation_level,
                component=ws.component,
            )
            ws.validation.warnings.extend(ws.verify_warnings)

        if not ws.validation.passed:
            first = ws.validation.errors[0]
            ws.failure = _ISSUE_FAILURE.get(first.type, FailureKind.INTENT_NOT_REFLECTED)
            ws.reason = f"{ws.component.file_path}: {first.message}"
        elif run.intent.target_component is None and ws.generated == ws.original:
            # broad scope never applies an unchanged candidate
            ws.failure = FailureKind.INTENT_NOT_REFLECTED
            ws.reason = f"{ws.component.file_path}: candidate left unchanged"
        run.log.append(
            f"  validate {ws.component.file_path}: "
            f"{'failed' if not ws.validation.passed else 'passed' if ws.alive else 'unchanged'} "
            f"({len(ws.validation.errors)} error(s), {len(ws.validation.warnings)} warning(s))"
        )

    @staticmethod
    def _validate_proposal(ws: _Workspace, strategy: ChangeStrategy) -> ValidationResult:
        intact = ws.generated is not None and ws.original in ws.generated
        issues = []
        if not intact:
            issues.append(
                ValidationIssue(
                    IssueType.PRESERVATION,
                    Severity.ERROR,
                    "Proposal does not embed the original content",
                )
            )
        return ValidationResult(
            passed=intact,
            confidence=strategy.confidence,
            issues=issues,
            warnings=[
                ValidationIssue(IssueType.QUALITY, Severity.WARNING, "Proposal requires human approval")
            ],
            metrics=ValidationMetrics(),
        )

    @staticmethod
    def _file_change(ws: _Workspace, strategy: ChangeStrategy, proposal: bool) -> FileChange:
        if proposal:
            reasoning = f"Change proposal requiring human review ({strategy.approach.value})"
        else:
            reasoning = (
                f"{strategy.approach.value} change validated "
                f"(confidence {ws.validation.confidence:.2f}, "
                f"{ws.validation.metrics.lines_changed} line(s) changed)"
            )
        return FileChange(
            file_path=ws.component.file_path,
            action=FileAction.MODIFY,
            old_content=ws.original,
            new_content=ws.generated or "",
            reasoning=reasoning,
            proposal=proposal,
        )


def _alive(workspaces: list[_Workspace]) -> list[_Workspace]:
    return [ws for ws in workspaces if ws.alive]


def _merge_validations(results: list[ValidationResult | None]) -> ValidationResult:
    """One ValidationResult covering every accepted file."""
    results = [r for r in results if r is not None]
    if len(results) == 1:
        return results[0]
    metrics = ValidationMetrics(
        lines_changed=sum(r.metrics.lines_changed for r in results),
        lines_added=sum(r.metrics.lines_added for r in results),
        lines_removed=sum(r.metrics.lines_removed for r in results),
        files_modified=sum(r.metrics.files_modified for r in results),
        change_ratio=max((r.metrics.change_ratio for r in results), default=0.0),
        complexity_delta=sum(r.metrics.complexity_delta for r in results),
    )
    return ValidationResult(
        passed=all(r.passed for r in results),
        confidence=min((r.confidence for r in results), default=0.0),
        issues=[i for r in results for i in r.issues],
        warnings=[w for r in results for w in r.warnings],
        metrics=metrics,
    )
