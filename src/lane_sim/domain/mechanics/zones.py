from collections.abc import Sequence
from dataclasses import dataclass

DEFAULT_ZONE = "main-aisle"


@dataclass(frozen=True)
class Band:
    label: str
    lo: float  # inclusive
    hi: float  # exclusive; math.inf for open-ended


class ZoneClassifier:
    """
    Stateless position -> zone id lookup.

    Rows are bands along y, columns are bands along x. A point inside a row band
    and a column band maps to ``row.label + column.label`` (e.g. "A3"); anything
    else maps to ``default``.
    """

    def __init__(self, rows: Sequence[Band], columns: Sequence[Band], default: str = DEFAULT_ZONE):
        self.rows = tuple(rows)
        self.columns = tuple(columns)
        self.default = default
        _check_disjoint(self.rows, "row")
        _check_disjoint(self.columns, "column")

    @classmethod
    def from_model(cls, cfg) -> "ZoneClassifier":
        return cls(
            rows=[Band(b.label, b.lo, b.hi) for b in cfg.rows],
            columns=[Band(b.label, b.lo, b.hi) for b in cfg.columns],
            default=cfg.default,
        )

    @staticmethod
    def _find(bands: tuple[Band, ...], v: float) -> Band | None:
        for b in bands:
            if b.lo <= v < b.hi:
                return b
        return None

    def classify(self, x: float, y: float) -> str:
        row = self._find(self.rows, y)
        if row is None:
            return self.default
        col = self._find(self.columns, x)
        if col is None:
            return self.default
        return row.label + col.label


def _check_disjoint(bands: tuple[Band, ...], what: str) -> None:
    ordered = sorted(bands, key=lambda b: b.lo)
    for b in ordered:
        if b.hi <= b.lo:
            raise ValueError(f"{what} band {b.label!r} is empty: [{b.lo}, {b.hi})")
    for a, b in zip(ordered, ordered[1:]):
        if b.lo < a.hi:
            raise ValueError(f"{what} bands {a.label!r} and {b.label!r} overlap")
