"""Allow ``python -m delta_append``."""

from delta_append.adapters.inbound.cli import cli

if __name__ == "__main__":
    cli()
