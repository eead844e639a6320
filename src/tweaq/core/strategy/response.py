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
"""Pulling the code out of a model response."""

import re

_FENCED_BLOCK = re.compile(r"(```|~~~)[^\n]*\n(.*?)\n?\1", re.DOTALL)
_LEADING_LABEL = re.compile(r"^\s*(?:modified file|updated file|here is[^\n]*):?\s*\n", re.IGNORECASE)


def extract_code(response: str, original: str = "") -> str:
    """The file content inside a model response.

    Takes the longest fenced block when the response has any, otherwise the
    whole response minus a leading "Here is the updated file:" style label.
    The original's trailing newline is kept.
    """
    blocks = [m.group(2) for m in _FENCED_BLOCK.finditer(response)]
    if blocks:
        code = max(blocks, key=len)
    else:
        code = _LEADING_LABEL.sub("", response, count=1).strip("\n")
        code = code.strip() if not code.startswith((" ", "\t")) else code.rstrip()

    if original.endswith("\n") and not code.endswith("\n"):
        code += "\n"
    return code
