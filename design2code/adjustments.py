"""Tiered CSS adjustments applied between iterations.

Tiers are cumulative: a diff above the layout threshold also triggers the
spacing, styling and responsive tiers. Every appended block opens with a
marker comment naming its type, and a type already present in the
stylesheet is never appended again.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .models import Document
from .settings import adjustment_tiers

MARKER_PREFIX = "design2code:adjust"

_MARKER_RE = re.compile(r"/\*\s*" + re.escape(MARKER_PREFIX) + r"\s+type=([a-z_]+)")

ADJUSTMENT_CSS: Dict[str, str] = {
    "layout": """
* { box-sizing: border-box; }
.container { max-width: 1200px; margin: 0 auto; padding: 0 20px; }
.grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(300px, 1fr)); gap: 2rem; }
.flex { display: flex; align-items: center; justify-content: center; }
""",
    "spacing": """
section { padding: 3rem 0; }
.card { padding: 2rem; margin-bottom: 2rem; }
h1, h2, h3 { margin-bottom: 1rem; }
p { margin-bottom: 1rem; line-height: 1.6; }
""",
    "styling": """
body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; }
.card { background: white; border-radius: 8px; box-shadow: 0 2px 10px rgba(0,0,0,0.1); }
.button { background: #007bff; color: white; border: none; padding: 0.75rem 1.5rem; border-radius: 4px; cursor: pointer; }
.button:hover { background: #0056b3; }
""",
    "responsive": """
@media (max-width: 768px) {
  .container { padding: 0 15px; }
  .grid { grid-template-columns: 1fr; gap: 1rem; }
  section { padding: 2rem 0; }
  h1 { font-size: 2rem; }
  h2 { font-size: 1.5rem; }
}
""",
}


@dataclass(frozen=True)
class Adjustment:
    type: str
    iteration: int
    css: str

    def render(self) -> str:
        return f"/* {MARKER_PREFIX} type={self.type} iteration={self.iteration} */{self.css}"


def applied_types(stylesheet: str) -> List[str]:
    """Adjustment types already present in a stylesheet, in order of appearance."""
    return _MARKER_RE.findall(stylesheet)


def plan_adjustments(
    diff_percentage: float,
    iteration: int,
    tiers: Optional[Sequence[Tuple[str, float]]] = None,
) -> List[Adjustment]:
    """Adjustments warranted by a diff percentage, highest tier first."""
    tiers = adjustment_tiers() if tiers is None else tiers
    return [
        Adjustment(type=kind, iteration=iteration, css=ADJUSTMENT_CSS[kind])
        for kind, threshold in tiers
        if diff_percentage > threshold
    ]


def apply_adjustments(
    document: Document,
    diff_percentage: float,
    iteration: int,
    tiers: Optional[Sequence[Tuple[str, float]]] = None,
) -> Document:
    """Append every warranted, not-yet-applied adjustment block to the stylesheet."""
    present = set(applied_types(document.stylesheet))
    blocks = [
        adj.render()
        for adj in plan_adjustments(diff_percentage, iteration, tiers)
        if adj.type not in present
    ]
    if not blocks:
        return document
    return document.with_stylesheet(document.stylesheet + "\n" + "\n".join(blocks))
