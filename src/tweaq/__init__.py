"""
Tweaq Change Engine -- turns visual DOM edits and plain-language requests
into validated source-code changes.

The engine resolves a request to a component, estimates the change's impact,
picks an execution tier from a confidence score, drives a language model
through that tier and validates the output before it is released.
"""

__version__ = "1.0.0"
__author__ = "Tweaq Team"
