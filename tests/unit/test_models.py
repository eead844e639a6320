"""Unit tests for the pipeline data model -- request parsing, strategy chains, results."""

from tweaq.core.models import (
    ChangeApproach,
    ChangeStep,
    ChangeStrategy,
    DeltaCategory,
    ExecutionOutcome,
    ExecutionResult,
    NaturalLanguageEdit,
    StepType,
    ValidationIssue,
    ValidationLevel,
    ValidationResult,
    IssueType,
    Severity,
    VisualEdit,
    request_from_dict,
)


class TestRequestFromDict:
    """Capture-shell payloads become typed requests."""

    def test_visual_edit_payload(self):
        request = request_from_dict(
            {
                "id": "edit-1",
                "element": {"tagName": "h1", "selector": "h1.title", "className": "title text-sm"},
                "changes": [{"property": "font-size", "before": "14px", "after": "16px"}],
            }
        )
        assert isinstance(request, VisualEdit)
        assert request.id == "edit-1"
        assert request.element.classes == ["title", "text-sm"]
        assert request.changes[0].category == DeltaCategory.STYLING

    def test_natural_language_payload_with_hint(self):
        request = request_from_dict(
            {"instruction": "Make it bold", "targetElement": {"selector": "#cta", "tagName": "button"}}
        )
        assert isinstance(request, NaturalLanguageEdit)
        assert request.target_hint.selector == "#cta"
        assert request.id.startswith("nl-")

    def test_ids_are_unique(self):
        a = request_from_dict({"instruction": "x"})
        b = request_from_dict({"instruction": "x"})
        assert a.id != b.id


class TestChangeStrategy:
    def test_chain_walks_fallbacks(self):
        leaf = ChangeStrategy(ChangeApproach.HUMAN_REVIEW, 0.5, [], ValidationLevel.PARANOID)
        root = ChangeStrategy(ChangeApproach.GUIDED, 0.7, [], ValidationLevel.STRICT, fallback_strategy=leaf)
        assert [s.approach for s in root.chain()] == [ChangeApproach.GUIDED, ChangeApproach.HUMAN_REVIEW]

    def test_has_step(self):
        strategy = ChangeStrategy(
            ChangeApproach.DIRECT,
            0.9,
            [ChangeStep(StepType.ANALYZE, "a"), ChangeStep(StepType.APPLY, "b")],
            ValidationLevel.STANDARD,
        )
        assert strategy.has_step(StepType.APPLY)
        assert not strategy.has_step(StepType.VERIFY)


class TestResults:
    def test_validation_errors_exclude_warnings(self):
        result = ValidationResult(
            passed=False,
            confidence=0.5,
            issues=[
                ValidationIssue(IssueType.SCOPE, Severity.ERROR, "too big"),
                ValidationIssue(IssueType.QUALITY, Severity.WARNING, "meh"),
            ],
        )
        assert [i.message for i in result.errors] == ["too big"]

    def test_proposal_requires_approval(self):
        strategy = ChangeStrategy(ChangeApproach.HUMAN_REVIEW, 0.3, [], ValidationLevel.PARANOID)
        result = ExecutionResult(
            file_changes=[],
            validation=ValidationResult(passed=True, confidence=0.3),
            strategy=strategy,
            outcome=ExecutionOutcome.PROPOSAL,
        )
        assert result.requires_approval is True
        assert result.to_dict()["requires_approval"] is True
