"""Command line front end for the logger merge pipeline; the Typer app lives in ``cli.app``."""
