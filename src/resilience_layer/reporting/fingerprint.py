"""
Report fingerprinting.

Two reports are the same error when they share kind, message, the three
innermost traceback frames (where the error was raised) and the
(truncated) context.
"""

import hashlib
import json
import traceback
from typing import Any, Mapping, Optional

from resilience_layer.models.enums import ErrorKind

STACK_FRAMES = 3
CONTEXT_CHARS = 100


def format_stack(exc: BaseException) -> Optional[str]:
    """Traceback of a raised exception, or None if it was never raised."""
    if exc.__traceback__ is None:
        return None
    return "".join(traceback.format_tb(exc.__traceback__))


def raise_site(exc: BaseException) -> Optional[str]:
    """
    Innermost frames of a raised exception as ``filename:lineno:name`` lines.

    Source and caret lines are left out so the result does not depend on
    the interpreter's traceback formatting. A wrapper that was never raised
    itself uses the traceback of its cause.
    """
    tb = exc.__traceback__
    if tb is None and exc.__cause__ is not None:
        tb = exc.__cause__.__traceback__
    if tb is None:
        return None
    frames = traceback.extract_tb(tb)[-STACK_FRAMES:]
    return "\n".join(f"{f.filename}:{f.lineno}:{f.name}" for f in frames)


def compute_fingerprint(
    kind: ErrorKind,
    message: str,
    site: Optional[str] = None,
    context: Optional[Mapping[str, Any]] = None,
) -> str:
    """
    Stable identity of an error report.

    Args:
        kind: Error kind
        message: Error message
        site: Raise site from raise_site()
        context: Report context (serialized with sorted keys, truncated)

    Returns:
        Hex digest (16 chars)
    """
    context_json = json.dumps(context or {}, sort_keys=True, default=str)[:CONTEXT_CHARS]
    raw = f"{kind.value}:{message}:{site or ''}:{context_json}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]
