"""
Main entry point for the playlistsmith application.

This file allows the package to be executed as a script, e.g., by running `python -m playlistsmith`.
It imports the Typer application object from the `cli` module and invokes it.
"""

from .cli import app

if __name__ == "__main__":
    app()
