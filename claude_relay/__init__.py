"""Patch the Copilot Chat CLI bundle so Claude model ids go to a relay endpoint."""

__version__ = "0.3.0"
