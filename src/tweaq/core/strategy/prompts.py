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
Tweaq Change Engine -- Generation Prompts

One prompt builder per tier. Every prompt carries the complete current file
and asks for the complete modified file back; higher tiers get progressively
tighter constraints:

    direct        file + the change
    guided        + expected scope + preservation rules
    conservative  + hard limits: no structural, import or export changes,
                    a maximum line budget

Also here: the over-deletion feedback prompt and the human-review proposal.
"""

from pathlib import Path

from tweaq.core.models import (
    ChangeApproach,
    ChangeIntent,
    ImpactAnalysis,
    TargetComponent,
    ValidationIssue,
)

COMPLETE_FILE_RULE = "Return the complete file with only the specific change."

_FENCE_LANG = {
    ".tsx": "tsx",
    ".ts": "typescript",
    ".jsx": "jsx",
    ".js": "javascript",
    ".vue": "vue",
    ".svelte": "svelte",
    ".css": "css",
    ".scss": "scss",
    ".html": "html",
}


def fence_language(file_path: str) -> str:
    return _FENCE_LANG.get(Path(file_path).suffix.lower(), "")


def describe_changes(intent: ChangeIntent, impact: ImpactAnalysis) -> str:
    lines = []
    for change in impact.direct_changes:
        if change.old_value or intent.requested_changes:
            old = change.old_value or "(current value)"
            lines.append(f"- {change.target}: {old} → {change.new_value}")
        else:
            lines.append(f"- {change.new_value}")
    return "\n".join(lines) or f"- {intent.description}"


def _file_block(content: str, file_path: str) -> str:
    return f"```{fence_language(file_path)}\n{content}\n```"


def _feedback_block(feedback: list[ValidationIssue] | None) -> str:
    if not feedback:
        return ""
    issues = "\n".join(f"- {issue.message}" for issue in feedback)
    return f"PREVIOUS ATTEMPT WAS REJECTED:\n{issues}\n\n"


# =============================================================================
# TIER PROMPTS
# =============================================================================


def build_direct_prompt(
    content: str,
    component: TargetComponent,
    intent: ChangeIntent,
    impact: ImpactAnalysis,
    feedback: list[ValidationIssue] | None = None,
) -> str:
    return f"""{_feedback_block(feedback)}TASK: Apply a small change to this file.

CHANGE: {intent.description}
{describe_changes(intent, impact)}

CURRENT FILE ({component.file_path}):
{_file_block(content, component.file_path)}

INSTRUCTIONS:
1. Copy the entire file above exactly
2. Make only the requested change
3. {COMPLETE_FILE_RULE}

Return the complete modified file in a single code block."""


def build_guided_prompt(
    content: str,
    component: TargetComponent,
    intent: ChangeIntent,
    impact: ImpactAnalysis,
    feedback: list[ValidationIssue] | None = None,
) -> str:
    scope = impact.expected_scope
    rules = "\n".join(
        f"- {rule.description} ({'CRITICAL' if rule.critical else 'important'})"
        for rule in impact.preservation_rules
    ) or "- Keep everything not named in the change exactly as it is"
    return f"""{_feedback_block(feedback)}TASK: Apply a visual change to a {component.framework} component.

CHANGE: {intent.description}
{describe_changes(intent, impact)}

CONSTRAINTS:
- Expected changes: about {scope.expected_lines} lines
- Change type: {scope.change_type.value}
- Risk level: {scope.risk_level.value}
- Styling approach: {component.styling.approach.value}

PRESERVATION RULES:
{rules}

TARGET COMPONENT: {component.name}
CURRENT FILE ({component.file_path}):
{_file_block(content, component.file_path)}

INSTRUCTIONS:
1. Apply ONLY the specified change
2. Preserve ALL existing functionality and structure
3. Keep changes minimal and targeted
4. {COMPLETE_FILE_RULE}

Return the complete modified file in a single code block."""


def build_conservative_prompt(
    content: str,
    component: TargetComponent,
    intent: ChangeIntent,
    impact: ImpactAnalysis,
    feedback: list[ValidationIssue] | None = None,
) -> str:
    max_lines = max(impact.expected_scope.expected_lines, 1)
    critical = "\n".join(f"- {rule.description}" for rule in impact.critical_rules) or "- The file's existing structure"
    return f"""{_feedback_block(feedback)}TASK: Make the smallest possible change to this file.

CHANGE: {intent.description}
{describe_changes(intent, impact)}

STRICT CONSTRAINTS:
- Maximum {max_lines} lines changed
- NO structural modifications
- NO import or export changes
- NO functionality changes

CRITICAL PRESERVATION (MUST NOT CHANGE):
{critical}

CURRENT FILE ({component.file_path}):
{_file_block(content, component.file_path)}

INSTRUCTIONS:
1. Make the SMALLEST possible change
2. Change ONLY what is absolutely necessary
3. Preserve EVERYTHING else exactly as is
4. {COMPLETE_FILE_RULE}

Return the complete modified file in a single code block."""


_TIER_BUILDERS = {
    ChangeApproach.DIRECT: build_direct_prompt,
    ChangeApproach.GUIDED: build_guided_prompt,
    ChangeApproach.CONSERVATIVE: build_conservative_prompt,
}


def build_generation_prompt(
    approach: ChangeApproach,
    content: str,
    component: TargetComponent,
    intent: ChangeIntent,
    impact: ImpactAnalysis,
    feedback: list[ValidationIssue] | None = None,
) -> str:
    if approach not in _TIER_BUILDERS:
        raise ValueError(f"No generation prompt for {approach.value}")
    return _TIER_BUILDERS[approach](content, component, intent, impact, feedback)


def build_over_deletion_prompt(
    original: str,
    generated: str,
    component: TargetComponent,
    intent: ChangeIntent,
    impact: ImpactAnalysis,
) -> str:
    """Second chance after a response that came back too short."""
    return f"""PREVIOUS ATTEMPT FAILED: the returned file was {len(generated)} characters but the original is {len(original)} characters. Code was deleted.

CHANGE: {intent.description}
{describe_changes(intent, impact)}

ORIGINAL FILE ({len(original)} characters, {component.file_path}):
{_file_block(original, component.file_path)}

INSTRUCTIONS:
1. Copy the entire file above
2. Make only the requested change
3. {COMPLETE_FILE_RULE} It must be about {len(original)} characters.

Return the complete modified file in a single code block."""


# =============================================================================
# HUMAN-REVIEW PROPOSAL
# =============================================================================


def _comment_style(file_path: str) -> tuple[str, str, str]:
    suffix = Path(file_path).suffix.lower()
    if suffix in (".html", ".vue", ".svelte"):
        return "<!--", "  ", "-->"
    return "/*", " * ", " */"


def render_proposal(
    content: str,
    component: TargetComponent,
    intent: ChangeIntent,
    impact: ImpactAnalysis,
    risk: str = "",
) -> str:
    """The original file, untouched, under a comment describing the intended diff."""
    opener, prefix, closer = _comment_style(component.file_path)
    body = [
        "CHANGE PROPOSAL - REQUIRES HUMAN REVIEW",
        "",
        f"Intent: {intent.description}",
        f"Target: {component.name} ({component.file_path})",
        f"Risk: {risk or intent.risk_level.value}",
        "",
        "Proposed changes:",
    ]
    body.extend(describe_changes(intent, impact).splitlines())
    if impact.critical_rules:
        body.append("")
        body.append("Must preserve:")
        body.extend(f"- {rule.description}" for rule in impact.critical_rules)
    body.append("")
    body.append("Original code preserved below.")

    header = [opener] + [f"{prefix}{line}".rstrip() for line in body] + [closer]
    return "\n".join(header) + "\n" + content
