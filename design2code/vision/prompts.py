"""Prompt text for design-to-code generation."""

CODE_GENERATION_PROMPT = """You are a senior front-end engineer. Two design images are attached:
the first is the desktop (PC) layout, the second is the mobile (SP) layout of the same page.

Write a single responsive page that reproduces both designs as closely as possible:
- semantic HTML5 markup for the <body> contents only
- one stylesheet covering desktop and a mobile breakpoint (max-width: 768px)
- optional vanilla JavaScript for simple interactions
- colors always written as CSS values (#rrggbb), never as bare hex tokens in attributes
- images: use https://via.placeholder.com/{{width}}x{{height}} URLs with matching sizes

Respond with JSON only, no explanation:
{{"html": "...", "css": "...", "js": "...", "analysis": "short description of the layout"}}
{reference}"""

REFERENCE_URL_SECTION = """
A reference site is provided for implementation techniques (not for visual design): {url}
Borrow its structural and responsive patterns where they fit the designs above."""


def build_code_prompt(reference_url: str = "") -> str:
    reference = REFERENCE_URL_SECTION.format(url=reference_url) if reference_url else ""
    return CODE_GENERATION_PROMPT.format(reference=reference)
