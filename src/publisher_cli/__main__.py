"""Module entrypoint for ``python -m publisher_cli``."""

from .main import app

if __name__ == "__main__":
    app()
