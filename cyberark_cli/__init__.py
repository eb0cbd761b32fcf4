"""Command harness for the CyberArk Password Vault REST API.

The command surface is implemented with Typer and Rich: one global entry
point that loads a JSON config file and dispatches to a named workflow.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
