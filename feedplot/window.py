from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from feedplot.registry import Curve, CurveRegistry


def prune(curve: Curve, lower_bound: float) -> int:
    """Drop every point whose primary domain coordinate is < lower_bound.

    Survivors keep their relative order. Returns the number of dropped points.
    """
    if len(curve) == 0:
        return 0
    survivors = np.flatnonzero(curve.domain_values() >= float(lower_bound))
    return curve.keep(survivors)


def check_monotonic(new_domain: float, last_domain: float | None) -> bool:
    """True when the domain went backward and the registry must be reset."""
    if last_domain is None:
        return False
    return float(new_domain) < float(last_domain)


@dataclass
class WindowManager:
    xlen: float | None = None
    monotonic: bool = False

    def __post_init__(self) -> None:
        if self.xlen is not None and not self.xlen > 0:
            raise ValueError("xlen must be > 0")

    @property
    def enabled(self) -> bool:
        return self.xlen is not None

    def lower_bound(self, latest_domain: float) -> float:
        if self.xlen is None:
            raise RuntimeError("window length is not configured")
        return float(latest_domain) - float(self.xlen)

    def range_hint(self, latest_domain: float | None) -> tuple[float, float] | None:
        if self.xlen is None or latest_domain is None:
            return None
        return (self.lower_bound(latest_domain), float(latest_domain))

    def prune_all(self, registry: CurveRegistry, latest_domain: float) -> int:
        bound = self.lower_bound(latest_domain)
        return sum(prune(curve, bound) for curve in registry)

    def went_backward(self, new_domain: float, last_domain: float | None) -> bool:
        return self.monotonic and check_monotonic(new_domain, last_domain)
