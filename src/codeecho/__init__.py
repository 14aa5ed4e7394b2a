"""codeecho: turn a repository into an AI-ready XML, JSON or Markdown document."""

__version__ = "1.0.0"
