"""webreach: live web and social-mirror retrieval for agent tool calls."""

__version__ = "0.1.0"
