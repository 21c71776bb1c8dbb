"""Module entrypoint for ``python -m publisher_api``."""

from publisher_cli.main import app as cli_app


def main() -> None:
    cli_app()


if __name__ == "__main__":
    main()
