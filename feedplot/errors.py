from __future__ import annotations


class FeedPlotError(RuntimeError):
    pass


class CurveLimitError(FeedPlotError):
    def __init__(self, max_curves: int, curve_id: str) -> None:
        super().__init__(
            f"tried to exceed the max curve count ({max_curves}) with curve {curve_id!r}; "
            "raise --maxcurves if this is intended"
        )
        self.max_curves = max_curves
        self.curve_id = curve_id


class BackendUnavailableError(FeedPlotError):
    pass


class PlotConfigError(ValueError):
    pass
