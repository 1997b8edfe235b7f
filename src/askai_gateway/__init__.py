"""
AskAI gateway package.

Provides:
- OpenAI-compatible chat completions on top of the askaiquestions summary API
- Pseudo-streaming (SSE) of the single upstream result
"""

__version__ = "2.0.0"
