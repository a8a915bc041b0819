"""Vision: provider clients, prompt text and response parsing."""

from .client import GeminiClient, OpenAIClient, VisionClient, build_vision_clients
from .generator import CodeGenerator, prepare_design_image
from .parsing import GeneratedCode, ParseFailure, parse_generated_code

__all__ = [
    "CodeGenerator",
    "GeminiClient",
    "GeneratedCode",
    "OpenAIClient",
    "ParseFailure",
    "VisionClient",
    "build_vision_clients",
    "parse_generated_code",
    "prepare_design_image",
]
