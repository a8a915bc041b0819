"""Design-to-code refinement engine.

Subpackages:
- rendering: Headless browser engines, placeholder generator, fallback chain
- vision: Vision LLM clients (Gemini, OpenAI) and response parsing

Modules:
- diff: Padded per-pixel image comparison
- adjustments: Tiered CSS adjustment blocks
- iteration: Render → Diff → Adjust controller
"""
