"""ReviewBot: AI pull request reviews for GitHub."""

__version__ = "0.1.0"
