# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Result envelope for best-effort lookups.

Lookups that are allowed to degrade (a transform spec that falls back to a
default, a contradicting fragment that is replaced by a placeholder)
return a ``WisdomResponse`` instead of raising, so the caller can tell
"the entity does not exist" apart from "the gateway failed" and log each
accordingly.

Usage::

    from wisdom.core.response import ok, err, not_found

    return ok(data=fragment)
    return not_found("Fragment 1234 not found")
    return err("Gateway error: 502")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class WisdomResponse:
    """Outcome of a lookup that callers may choose to degrade on.

    Attributes:
        success:   True when the lookup produced ``data``.
        data:      The looked-up value on success.
        error:     Human-readable failure description.
        not_found: True when the failure means the entity does not exist,
                   False for any other failure.
        degraded:  True when ``data`` is a fallback rather than the real value.
    """

    success: bool
    data: Any = None
    error: str | None = None
    not_found: bool = False
    degraded: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Serialise, keeping only keys that carry information."""
        d: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            d["data"] = self.data
        if self.error:
            d["error"] = self.error
        if self.not_found:
            d["not_found"] = True
        if self.degraded:
            d["degraded"] = True
        return d


def ok(data: Any = None, degraded: bool = False) -> WisdomResponse:
    return WisdomResponse(success=True, data=data, degraded=degraded)


def err(error: str) -> WisdomResponse:
    return WisdomResponse(success=False, error=error)


def not_found(error: str) -> WisdomResponse:
    return WisdomResponse(success=False, error=error, not_found=True)
