"""Allow running as ``python -m proctor``."""

from proctor.cli.app import app

if __name__ == "__main__":
    app()
