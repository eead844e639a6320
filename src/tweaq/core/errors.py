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
Tweaq Change Engine -- Error Taxonomy

Only two things ever leave the engine as exceptions:

    ProviderError          -- the text-generation backend could not answer
                              (raised by the LLM layer, caught per attempt)
    ChangeExecutionFailed  -- every attempt was spent without a change that
                              passed validation

An unresolved target is NOT an error; it is a low-confidence ChangeIntent.
"""

from __future__ import annotations

from enum import Enum

from tweaq.core.models import ValidationResult


class FailureKind(str, Enum):
    """Why an attempt (and, when it was the last one, the execution) failed."""

    OVER_DELETION = "over-deletion"
    SCOPE_EXCEEDED = "scope-exceeded"
    EXCESSIVE_DELETION = "excessive-deletion"
    PRESERVATION_VIOLATED = "preservation-violated"
    INTENT_NOT_REFLECTED = "intent-not-reflected"
    PROVIDER_FAILURE = "provider-failure"
    TIMEOUT = "timeout"
    NO_CANDIDATES = "no-candidates"


class TweaqError(Exception):
    """Base class for every error raised by the change engine."""


class ConfigError(TweaqError, ValueError):
    """A configuration value could not be parsed."""


class ProviderError(TweaqError):
    """The text-generation provider failed or returned nothing usable."""

    def __init__(self, message: str, provider: str = "", status: int | None = None):
        super().__init__(message)
        self.provider = provider
        self.status = status


class ChangeExecutionFailed(TweaqError):
    """Terminal failure: the attempt budget ran out.

    Carries the classification of the last failed attempt and the issues of
    the last ValidationResult so the result consumer can show them.
    """

    def __init__(
        self,
        reason: str,
        kind: FailureKind,
        last_validation: ValidationResult | None = None,
        execution_log: list[str] | None = None,
        attempts: int = 0,
    ):
        super().__init__(reason)
        self.reason = reason
        self.kind = kind
        self.last_validation = last_validation
        self.execution_log = execution_log or []
        self.attempts = attempts

    @property
    def issues(self) -> list:
        if self.last_validation is None:
            return []
        return list(self.last_validation.issues)

    def __str__(self) -> str:
        return f"{self.reason} [{self.kind.value}] after {self.attempts} attempt(s)"
