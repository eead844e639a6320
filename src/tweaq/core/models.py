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
Tweaq Change Engine -- Data Model

Every value that flows between the pipeline stages lives here:

    ChangeRequest  (VisualEdit | NaturalLanguageEdit)
        -> ChangeIntent          (Intent Resolver)
        -> ImpactAnalysis        (Impact Analyzer)
        -> ConfidenceAssessment  (Confidence Assessor)
        -> ChangeStrategy        (Strategy Executor)
        -> ValidationResult      (Validation Gate)
        -> ExecutionResult       (result consumer)

Requests and target components are frozen: the engine reads them, it never
rewrites them. Nothing here outlives a single execution.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Iterator, Union


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


# =============================================================================
# ENUMS
# =============================================================================


class ChangeType(str, Enum):
    """What kind of change the user is asking for."""

    CONTENT = "content"
    STYLING = "styling"
    LAYOUT = "layout"
    STRUCTURE = "structure"
    BEHAVIOR = "behavior"
    GENERAL = "general"


class DeltaCategory(str, Enum):
    STYLING = "styling"
    LAYOUT = "layout"
    STRUCTURE = "structure"
    CONTENT = "content"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ScopeHint(str, Enum):
    NARROW = "narrow"
    MODERATE = "moderate"
    BROAD = "broad"


class StylingApproach(str, Enum):
    TAILWIND = "tailwind"
    CSS_MODULES = "css-modules"
    STYLED_COMPONENTS = "styled-components"
    CSS = "css"
    SCSS = "scss"


class ComponentComplexity(str, Enum):
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


class ChangeMagnitude(str, Enum):
    MINIMAL = "minimal"
    MODERATE = "moderate"
    SIGNIFICANT = "significant"
    MAJOR = "major"


class ChangeApproach(str, Enum):
    """The four execution tiers, highest confidence first."""

    DIRECT = "high-confidence-direct"
    GUIDED = "medium-confidence-guided"
    CONSERVATIVE = "low-confidence-conservative"
    HUMAN_REVIEW = "human-review-required"


# Ordered from most to least autonomous
APPROACH_ORDER = [
    ChangeApproach.DIRECT,
    ChangeApproach.GUIDED,
    ChangeApproach.CONSERVATIVE,
    ChangeApproach.HUMAN_REVIEW,
]


class StepType(str, Enum):
    ANALYZE = "analyze"
    GENERATE = "generate"
    VERIFY = "verify"
    VALIDATE = "validate"
    APPLY = "apply"


class ValidationLevel(str, Enum):
    BASIC = "basic"
    STANDARD = "standard"
    STRICT = "strict"
    PARANOID = "paranoid"


class FileAction(str, Enum):
    MODIFY = "modify"
    CREATE = "create"
    DELETE = "delete"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class IssueType(str, Enum):
    SCOPE = "scope"
    DELETION = "deletion"
    PRESERVATION = "preservation"
    INTENT = "intent"
    SYNTAX = "syntax"
    QUALITY = "quality"


class ExecutionOutcome(str, Enum):
    APPLIED = "applied"
    PROPOSAL = "proposal"


# =============================================================================
# CHANGE REQUESTS (input)
# =============================================================================


@dataclass(frozen=True)
class ElementDescriptor:
    """The DOM element a visual edit was captured on."""

    tag_name: str = ""
    selector: str = ""
    class_name: str = ""

    @property
    def classes(self) -> list[str]:
        return [c for c in self.class_name.split() if c]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ElementDescriptor:
        return cls(
            tag_name=data.get("tag_name", data.get("tagName", "")),
            selector=data.get("selector", ""),
            class_name=data.get("class_name", data.get("className", "")),
        )


@dataclass(frozen=True)
class PropertyDelta:
    """One property change: ``font-size: 14px -> 16px``."""

    property: str
    before: str
    after: str
    category: DeltaCategory = DeltaCategory.STYLING

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PropertyDelta:
        return cls(
            property=data["property"],
            before=str(data.get("before", "")),
            after=str(data.get("after", "")),
            category=DeltaCategory(data.get("category", "styling")),
        )


@dataclass(frozen=True)
class VisualEdit:
    """A DOM-level edit captured from the running application."""

    element: ElementDescriptor
    changes: tuple[PropertyDelta, ...] = ()
    description: str = ""
    id: str = field(default_factory=lambda: _new_id("edit"))


@dataclass(frozen=True)
class NaturalLanguageEdit:
    """A free-text instruction, optionally hinted at a DOM element."""

    instruction: str
    target_hint: ElementDescriptor | None = None
    current_state: str = ""
    user_intent: str = ""
    id: str = field(default_factory=lambda: _new_id("nl"))


ChangeRequest = Union[VisualEdit, NaturalLanguageEdit]


def request_from_dict(data: dict[str, Any]) -> ChangeRequest:
    """Build a ChangeRequest from the capture shell's JSON payload."""
    if "instruction" in data:
        hint = data.get("target_hint") or data.get("targetElement")
        return NaturalLanguageEdit(
            instruction=data["instruction"],
            target_hint=ElementDescriptor.from_dict(hint) if hint else None,
            current_state=data.get("current_state", ""),
            user_intent=data.get("user_intent", ""),
            id=data.get("id") or _new_id("nl"),
        )
    return VisualEdit(
        element=ElementDescriptor.from_dict(data.get("element", {})),
        changes=tuple(PropertyDelta.from_dict(c) for c in data.get("changes", [])),
        description=data.get("description", ""),
        id=data.get("id") or _new_id("edit"),
    )


# =============================================================================
# TARGET COMPONENT
# =============================================================================


@dataclass(frozen=True)
class StylingInfo:
    approach: StylingApproach = StylingApproach.CSS
    classes: tuple[str, ...] = ()


@dataclass(frozen=True)
class TargetComponent:
    """A source unit (usually one file) the engine may rewrite."""

    name: str
    file_path: str
    styling: StylingInfo = field(default_factory=StylingInfo)
    complexity: ComponentComplexity = ComponentComplexity.SIMPLE
    exports: tuple[str, ...] = ()
    imports: tuple[str, ...] = ()
    props: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = ()
    framework: str = "react"
    content: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TargetComponent:
        styling = data.get("styling", {})
        return cls(
            name=data["name"],
            file_path=data.get("file_path", data.get("filePath", "")),
            styling=StylingInfo(
                approach=StylingApproach(styling.get("approach", "css")),
                classes=tuple(styling.get("classes", [])),
            ),
            complexity=ComponentComplexity(data.get("complexity", "simple")),
            exports=tuple(data.get("exports", [])),
            imports=tuple(data.get("imports", [])),
            props=tuple(data.get("props", [])),
            dependencies=tuple(data.get("dependencies", [])),
            framework=data.get("framework", "react"),
            content=data.get("content"),
        )


# =============================================================================
# INTENT & IMPACT
# =============================================================================


@dataclass
class ChangeIntent:
    """What the user wants, bound (or not) to a target component."""

    change_type: ChangeType
    description: str
    request: ChangeRequest
    target_component: TargetComponent | None = None
    confidence: float = 0.5
    risk_level: RiskLevel = RiskLevel.LOW
    priority: Priority = Priority.MEDIUM
    scope_hint: ScopeHint = ScopeHint.NARROW
    requested_changes: list[PropertyDelta] = field(default_factory=list)
    candidates: list[TargetComponent] = field(default_factory=list)
    id: str = field(default_factory=lambda: _new_id("intent"))

    @property
    def is_resolved(self) -> bool:
        return self.target_component is not None


@dataclass
class DirectChange:
    type: str  # style, content, structure, behavior
    target: str
    old_value: str
    new_value: str
    confidence: float


@dataclass
class CascadeChange:
    type: str  # parent-container, design-system
    target: str
    reason: str
    required: bool
    confidence: float


@dataclass
class PreservationRule:
    type: str  # exports, imports, props, functionality, style-references
    description: str
    pattern: str
    critical: bool


@dataclass
class ValidationCheck:
    type: str  # syntax, scope, preservation, intent-alignment, build
    description: str
    required: bool


@dataclass
class ChangeScope:
    expected_lines: int
    expected_files: int
    change_type: ChangeMagnitude
    risk_level: RiskLevel


@dataclass
class ImpactAnalysis:
    direct_changes: list[DirectChange] = field(default_factory=list)
    cascade_changes: list[CascadeChange] = field(default_factory=list)
    preservation_rules: list[PreservationRule] = field(default_factory=list)
    validation_checks: list[ValidationCheck] = field(default_factory=list)
    expected_scope: ChangeScope = field(
        default_factory=lambda: ChangeScope(0, 1, ChangeMagnitude.MINIMAL, RiskLevel.LOW)
    )

    @property
    def required_cascades(self) -> list[CascadeChange]:
        return [c for c in self.cascade_changes if c.required]

    @property
    def critical_rules(self) -> list[PreservationRule]:
        return [r for r in self.preservation_rules if r.critical]


# =============================================================================
# CONFIDENCE & STRATEGY
# =============================================================================


@dataclass
class ConfidenceFactors:
    visual_clarity: float
    component_understanding: float
    change_complexity: float
    context_completeness: float

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass
class ConfidenceAssessment:
    confidence: float
    factors: ConfidenceFactors
    recommended_approach: ChangeApproach
    fallback_strategies: list[ChangeApproach] = field(default_factory=list)
    risk_level: RiskLevel = RiskLevel.MEDIUM


@dataclass
class ChangeStep:
    type: StepType
    description: str
    required: bool = True
    timeout: float | None = None  # seconds


@dataclass
class ChangeStrategy:
    approach: ChangeApproach
    confidence: float
    steps: list[ChangeStep]
    validation_level: ValidationLevel
    fallback_strategy: ChangeStrategy | None = None

    def chain(self) -> Iterator[ChangeStrategy]:
        """Yield this strategy followed by each nested fallback."""
        current: ChangeStrategy | None = self
        while current is not None:
            yield current
            current = current.fallback_strategy

    def has_step(self, step_type: StepType) -> bool:
        return any(s.type == step_type for s in self.steps)


# =============================================================================
# OUTPUT
# =============================================================================


@dataclass
class FileChange:
    file_path: str
    action: FileAction
    old_content: str
    new_content: str
    reasoning: str
    proposal: bool = False


@dataclass
class ValidationIssue:
    type: IssueType
    severity: Severity
    message: str
    suggestion: str = ""


@dataclass
class ValidationMetrics:
    lines_changed: int = 0
    lines_added: int = 0
    lines_removed: int = 0
    files_modified: int = 0
    change_ratio: float = 0.0
    complexity_delta: int = 0


@dataclass
class ValidationResult:
    passed: bool
    confidence: float
    issues: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)
    metrics: ValidationMetrics = field(default_factory=ValidationMetrics)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]


@dataclass
class ExecutionResult:
    """What the result consumer receives for a successful execution."""

    file_changes: list[FileChange]
    validation: ValidationResult
    strategy: ChangeStrategy
    outcome: ExecutionOutcome = ExecutionOutcome.APPLIED
    execution_log: list[str] = field(default_factory=list)
    attempts: int = 1

    @property
    def requires_approval(self) -> bool:
        return self.outcome == ExecutionOutcome.PROPOSAL

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["requires_approval"] = self.requires_approval
        return data
