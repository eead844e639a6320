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
Tweaq Change Engine -- Validation Gate

Nothing leaves the engine as an applied change without passing here.

CHECKS (in order; the first critical failure ends validation):
    1. SCOPE         -- changed lines <= 3x the expected lines; a minimal
                        change may touch at most 5 lines
    2. DELETION      -- removed lines <= 50% of the original file
    3. PRESERVATION  -- every critical structural pattern matches exactly as
                        many times after the edit as before
    4. INTENT        -- each requested property change left evidence in the
                        code: its name (or camelCase name) with the new
                        value, or the idiom's token/proxy

Non-critical signals (bracket imbalance, no-op output, large change ratio on
strict/paranoid levels) become warnings and never fail validation.

Line metrics come from a line diff, so a change that was applied and then
reverted measures as zero changed lines. validate_revert() checks such a
restore: the intent check is skipped and the structural checks still run.
"""

import difflib
import logging

from tweaq.core.analysis.structure import brackets_balanced, complexity_score, count_matches
from tweaq.core.analysis.styling import IdiomTable, StyleMapping, default_idiom_table, idiom_for
from tweaq.core.logging import get_logger
from tweaq.core.models import (
    ChangeIntent,
    ChangeMagnitude,
    FileChange,
    ImpactAnalysis,
    IssueType,
    Severity,
    TargetComponent,
    ValidationIssue,
    ValidationLevel,
    ValidationMetrics,
    ValidationResult,
)

logger = logging.getLogger("tweaq.validation.gate")

LARGE_CHANGE_RATIO = 0.5
COMPLEXITY_DRIFT_LIMIT = 5


def diff_metrics(original: str, generated: str) -> ValidationMetrics:
    """Line-level change metrics between two versions of a file.

    A replaced line counts once as changed; only the surplus of a replace
    block counts as added or removed.
    """
    before = original.splitlines()
    after = generated.splitlines()
    matcher = difflib.SequenceMatcher(None, before, after, autojunk=False)

    modified = added = removed = 0
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "replace":
            paired = min(i2 - i1, j2 - j1)
            modified += paired
            added += (j2 - j1) - paired
            removed += (i2 - i1) - paired
        elif tag == "insert":
            added += j2 - j1
        elif tag == "delete":
            removed += i2 - i1

    changed = modified + added + removed
    return ValidationMetrics(
        lines_changed=changed,
        lines_added=added,
        lines_removed=removed,
        files_modified=1 if changed else 0,
        change_ratio=round(changed / max(len(before), 1), 4),
        complexity_delta=complexity_score(generated) - complexity_score(original),
    )


class ValidationGate:
    """Accepts or rejects generated file content."""

    def __init__(
        self,
        idioms: IdiomTable | None = None,
        scope_multiplier: float = 3.0,
        minimal_line_cap: int = 5,
        max_deletion_ratio: float = 0.5,
    ):
        self.idioms = idioms if idioms is not None else default_idiom_table()
        self.scope_multiplier = scope_multiplier
        self.minimal_line_cap = minimal_line_cap
        self.max_deletion_ratio = max_deletion_ratio

    def validate(
        self,
        original: str,
        generated: str,
        intent: ChangeIntent,
        confidence: float,
        impact: ImpactAnalysis,
        validation_level: ValidationLevel = ValidationLevel.STANDARD,
        component: TargetComponent | None = None,
        revert: bool = False,
    ) -> ValidationResult:
        """Run the checks in order.

        With ``revert=True`` the generated content is the original restored after
        an applied change, so the intent check does not apply.
        """
        component = component or intent.target_component
        metrics = diff_metrics(original, generated)
        warnings = self._warnings(original, generated, metrics, impact, validation_level)

        issues: list[ValidationIssue] = []
        for check in (self._check_scope, self._check_deletion, self._check_preservation):
            issues = check(original, generated, metrics, impact)
            if issues:
                break
        else:
            if not revert:
                issues = self._check_intent(generated, intent, impact, component)

        result = ValidationResult(
            passed=not any(i.severity == Severity.ERROR for i in issues),
            confidence=self._confidence(confidence, issues, warnings, metrics),
            issues=issues,
            warnings=warnings,
            metrics=metrics,
        )
        get_logger().validation(
            component.file_path if component else "<unresolved>",
            result.passed,
            errors=len(result.errors),
            warnings=len(warnings),
            lines_changed=metrics.lines_changed,
        )
        return result

    def validate_revert(
        self,
        change: FileChange,
        intent: ChangeIntent,
        confidence: float,
        impact: ImpactAnalysis,
        reverted: str | None = None,
    ) -> ValidationResult:
        """Validate the file restored after undoing an applied change."""
        return self.validate(
            change.old_content,
            change.old_content if reverted is None else reverted,
            intent,
            confidence,
            impact,
            revert=True,
        )

    # =========================================================================
    # CRITICAL CHECKS
    # =========================================================================

    def _check_scope(self, original, generated, metrics: ValidationMetrics, impact: ImpactAnalysis) -> list[ValidationIssue]:
        scope = impact.expected_scope
        limit = self.scope_multiplier * max(scope.expected_lines, 1)
        if metrics.lines_changed > limit:
            return [
                ValidationIssue(
                    type=IssueType.SCOPE,
                    severity=Severity.ERROR,
                    message=(
                        f"Changed {metrics.lines_changed} lines; expected about "
                        f"{scope.expected_lines} (limit {int(limit)})"
                    ),
                    suggestion="Limit the edit to the lines the change actually needs",
                )
            ]
        if scope.change_type == ChangeMagnitude.MINIMAL and metrics.lines_changed > self.minimal_line_cap:
            return [
                ValidationIssue(
                    type=IssueType.SCOPE,
                    severity=Severity.ERROR,
                    message=(
                        f"Minimal change touched {metrics.lines_changed} lines "
                        f"(cap {self.minimal_line_cap})"
                    ),
                    suggestion="A minimal change should edit a handful of lines at most",
                )
            ]
        return []

    def _check_deletion(self, original: str, generated, metrics: ValidationMetrics, impact) -> list[ValidationIssue]:
        original_lines = len(original.splitlines())
        if original_lines and metrics.lines_removed > self.max_deletion_ratio * original_lines:
            return [
                ValidationIssue(
                    type=IssueType.DELETION,
                    severity=Severity.ERROR,
                    message=f"Removed {metrics.lines_removed} of {original_lines} lines",
                    suggestion="Return the complete file, not a fragment",
                )
            ]
        return []

    def _check_preservation(self, original: str, generated: str, metrics, impact: ImpactAnalysis) -> list[ValidationIssue]:
        issues = []
        for rule in impact.critical_rules:
            before = count_matches(rule.pattern, original)
            after = count_matches(rule.pattern, generated)
            if before != after:
                issues.append(
                    ValidationIssue(
                        type=IssueType.PRESERVATION,
                        severity=Severity.ERROR,
                        message=f"{rule.description}: {before} before, {after} after",
                        suggestion=f"Restore the original {rule.type}",
                    )
                )
        return issues

    def _check_intent(
        self,
        generated: str,
        intent: ChangeIntent,
        impact: ImpactAnalysis,
        component: TargetComponent | None,
    ) -> list[ValidationIssue]:
        if not intent.requested_changes:
            return []
        idiom = idiom_for(self.idioms, component.styling.approach if component else None)
        haystack = generated.lower()

        mappings: list[StyleMapping | None] = [None] * len(intent.requested_changes)
        if len(impact.direct_changes) == len(intent.requested_changes):
            mappings = [StyleMapping(target=c.target, value=c.new_value) for c in impact.direct_changes]

        issues = []
        for delta, mapping in zip(intent.requested_changes, mappings):
            alternatives = idiom.evidence(delta.property, delta.after, mapping)
            if not any(all(part.lower() in haystack for part in alt) for alt in alternatives):
                issues.append(
                    ValidationIssue(
                        type=IssueType.INTENT,
                        severity=Severity.ERROR,
                        message=f"No evidence of {delta.property} → {delta.after} in generated code",
                        suggestion=f"Apply the {delta.property} change in the component's styling idiom",
                    )
                )
        return issues

    # =========================================================================
    # WARNINGS & CONFIDENCE
    # =========================================================================

    def _warnings(
        self,
        original: str,
        generated: str,
        metrics: ValidationMetrics,
        impact: ImpactAnalysis,
        level: ValidationLevel,
    ) -> list[ValidationIssue]:
        warnings = []
        if metrics.lines_changed == 0:
            warnings.append(
                ValidationIssue(IssueType.QUALITY, Severity.WARNING, "Generated content is identical to the original")
            )
        wants_syntax = any(c.type == "syntax" for c in impact.validation_checks)
        if wants_syntax and brackets_balanced(original) and not brackets_balanced(generated):
            warnings.append(
                ValidationIssue(
                    IssueType.SYNTAX,
                    Severity.WARNING,
                    "Brackets are unbalanced in generated code",
                    "Check for a truncated or half-edited block",
                )
            )
        if level in (ValidationLevel.STRICT, ValidationLevel.PARANOID) and metrics.change_ratio > LARGE_CHANGE_RATIO:
            warnings.append(
                ValidationIssue(
                    IssueType.QUALITY,
                    Severity.WARNING,
                    f"Large change ratio ({metrics.change_ratio:.0%} of lines)",
                )
            )
        if level == ValidationLevel.PARANOID and abs(metrics.complexity_delta) > COMPLEXITY_DRIFT_LIMIT:
            warnings.append(
                ValidationIssue(
                    IssueType.QUALITY,
                    Severity.WARNING,
                    f"Code complexity shifted by {metrics.complexity_delta}",
                )
            )
        return warnings

    @staticmethod
    def _confidence(
        base: float,
        issues: list[ValidationIssue],
        warnings: list[ValidationIssue],
        metrics: ValidationMetrics,
    ) -> float:
        confidence = base
        confidence -= 0.2 * sum(1 for i in issues if i.severity == Severity.ERROR)
        confidence -= 0.05 * len(warnings)
        if metrics.change_ratio > LARGE_CHANGE_RATIO:
            confidence -= 0.2
        return round(max(confidence, 0.1), 3)


def get_validation_gate(**kwargs) -> ValidationGate:
    """Factory for a gate with the default idiom table."""
    return ValidationGate(**kwargs)
