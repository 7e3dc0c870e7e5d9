"""Simple logging utilities for model corrections."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List


@dataclass
class IterationLogger:
    name: str
    verbose: bool = True
    history: List[Dict[str, float]] = field(default_factory=list)
    messages: List[str] = field(default_factory=list)

    def log(self, iteration: int, values: Dict[str, float]) -> None:
        entry = {"iter": iteration, **values}
        self.history.append(entry)
        if not self.verbose:
            return
        pieces = [f"{self.name} iter {iteration:3d}"]
        for name, value in values.items():
            pieces.append(f"{name} = {value:.3e}")
        print(" | ".join(pieces), flush=True)

    def message(self, text: str) -> None:
        self.messages.append(text)
        if self.verbose:
            print(f"{self.name}: {text}", flush=True)
