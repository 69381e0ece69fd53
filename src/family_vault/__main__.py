"""Entry point for ``python -m family_vault``."""

from family_vault.cli import run

if __name__ == "__main__":
    run()
