"""Runtime settings: tunable parameters for rendering and iteration.

All values read from environment variables with defaults matching the
behavior the frontend was built against. Import from here instead of
hardcoding.

Infrastructure config (host, port, API keys, temp dir) stays in
design2code/config.py.
"""

from __future__ import annotations

import os
from typing import List, Tuple


def _int(key: str, default: int) -> int:
    return int(os.getenv(key, str(default)))


def _float(key: str, default: float) -> float:
    return float(os.getenv(key, str(default)))


def _list(key: str, default: str) -> List[str]:
    return [v.strip() for v in os.getenv(key, default).split(",") if v.strip()]


# =====================================================================
# Rendering
# =====================================================================

# Ceiling for a single render call (launch + load + capture), seconds
RENDER_TIMEOUT_SECONDS = _float("RENDER_TIMEOUT_SECONDS", 30.0)

# Max browser processes rendering at the same time in this process
RENDER_CONCURRENCY = _int("RENDER_CONCURRENCY", 2)

# Ordered engine names tried before the placeholder: "playwright", "selenium"
RENDER_ENGINES = _list("RENDER_ENGINES", "playwright")

# Screenshots shorter than this are treated as failed captures
MIN_SCREENSHOT_BYTES = _int("MIN_SCREENSHOT_BYTES", 100)

# Placeholder fill (R, G, B)
PLACEHOLDER_GRAY = _int("PLACEHOLDER_GRAY", 240)


# =====================================================================
# Diff + Iteration
# =====================================================================

# Per-pixel color tolerance (0.0 - 1.0), pixelmatch-style threshold
DIFF_TOLERANCE = _float("DIFF_TOLERANCE", 0.1)

# Stop iterating once the diff percentage drops below this value
CONVERGENCE_THRESHOLD = _float("CONVERGENCE_THRESHOLD", 5.0)

DEFAULT_MAX_ITERATIONS = _int("DEFAULT_MAX_ITERATIONS", 5)
MAX_ITERATIONS_LIMIT = _int("MAX_ITERATIONS_LIMIT", 20)

# Adjustment tiers: diff percentage strictly above the value enables the tier
ADJUST_LAYOUT_ABOVE = _float("ADJUST_LAYOUT_ABOVE", 50.0)
ADJUST_SPACING_ABOVE = _float("ADJUST_SPACING_ABOVE", 30.0)
ADJUST_STYLING_ABOVE = _float("ADJUST_STYLING_ABOVE", 20.0)
ADJUST_RESPONSIVE_ABOVE = _float("ADJUST_RESPONSIVE_ABOVE", 10.0)


def adjustment_tiers() -> List[Tuple[str, float]]:
    """(type, threshold) pairs, highest threshold first."""
    return [
        ("layout", ADJUST_LAYOUT_ABOVE),
        ("spacing", ADJUST_SPACING_ABOVE),
        ("styling", ADJUST_STYLING_ABOVE),
        ("responsive", ADJUST_RESPONSIVE_ABOVE),
    ]


# Overall budget for one /iterate request; completed iterations are
# returned when it runs out
ITERATE_REQUEST_TIMEOUT_SECONDS = _float("ITERATE_REQUEST_TIMEOUT_SECONDS", 240.0)


# =====================================================================
# Temp files
# =====================================================================

TEMP_SWEEP_INTERVAL_SECONDS = _float("TEMP_SWEEP_INTERVAL_SECONDS", 3600.0)
TEMP_MAX_AGE_SECONDS = _float("TEMP_MAX_AGE_SECONDS", 3600.0)


# =====================================================================
# Vision providers / PDF
# =====================================================================

VISION_HTTP_TIMEOUT = _float("VISION_HTTP_TIMEOUT", 120.0)
VISION_MAX_OUTPUT_TOKENS = _int("VISION_MAX_OUTPUT_TOKENS", 6000)
VISION_TEMPERATURE = _float("VISION_TEMPERATURE", 0.1)

# Uploaded designs are downscaled to these widths before analysis
PC_DESIGN_WIDTH = _int("PC_DESIGN_WIDTH", 1200)
SP_DESIGN_WIDTH = _int("SP_DESIGN_WIDTH", 600)

PDF_RENDER_WIDTH = _int("PDF_RENDER_WIDTH", 1920)
