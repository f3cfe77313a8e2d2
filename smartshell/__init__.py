"""
LLM-powered helper for the zsh command line.

This package turns a natural language request into a zsh command, or explains
an existing command, by asking a remote LLM (OpenAI or Anthropic) for a
structured ``{result, error}`` answer. It is meant to be called from the zsh
widgets in ``smartshell.zsh``, which act on its stdout and exit code.
"""

__version__ = "0.1.0"
