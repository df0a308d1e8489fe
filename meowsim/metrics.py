from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List
import numpy as np
import pandas as pd

@dataclass
class MetricsStore:
    market_rows: List[Dict[str, Any]] = field(default_factory=list)
    run_rows: List[Dict[str, Any]] = field(default_factory=list)

    def add_market_rows(self, rows: List[Dict[str, Any]]) -> None:
        self.market_rows.extend(rows)

    def add_run(self, row: Dict[str, Any]) -> None:
        self.run_rows.append(row)

    def market_df(self) -> pd.DataFrame:
        return pd.DataFrame(self.market_rows)

    def run_df(self) -> pd.DataFrame:
        return pd.DataFrame(self.run_rows)

    def price_series(self, good_key: str) -> np.ndarray:
        return np.array([r["price"] for r in self.market_rows if r["good_key"] == good_key], dtype=float)

    def price_stats(self) -> pd.DataFrame:
        df = self.market_df()
        if df.empty:
            return pd.DataFrame(columns=["mean", "std", "min", "max"])
        # population stdev, matching np.std
        return df.groupby("good_key")["price"].agg(
            mean="mean", std=lambda s: float(np.std(s.to_numpy())), min="min", max="max"
        )
