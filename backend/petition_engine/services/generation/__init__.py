"""Text generation boundary - collaborator protocol and reply validation"""
from .client import TextGenerator, parse_generated_sections

__all__ = ["TextGenerator", "parse_generated_sections"]
