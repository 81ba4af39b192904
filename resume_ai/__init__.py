"""resume-ai: resilient multi-provider LLM generation for resume features."""

__version__ = "0.1.0"
