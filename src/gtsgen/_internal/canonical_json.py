"""Canonical JSON serialization for machine-readable reports.

Artifacts on disk keep declaration order and pretty indentation (see the
emitter); ``--json`` reports use this byte-stable form instead so two runs
over the same input compare equal.
"""

import json
from typing import Any


def canonical_dumps(obj: Any) -> str:
    """Sorted keys, compact separators, UTF-8 (no ASCII escaping)."""
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
