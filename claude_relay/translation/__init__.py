from .prompt import build_prompt, content_text
from .response import estimate_tokens, parse_response

__all__ = ["build_prompt", "content_text", "estimate_tokens", "parse_response"]
