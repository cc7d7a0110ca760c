"""
Convenience entry point for running slotpilot directly.

Usage: python -m slotpilot [command] [options]
"""

from .cli.app import app

if __name__ == "__main__":
    app()
