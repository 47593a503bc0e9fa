"""Allow ``python -m slack_hitl``."""

from slack_hitl.api.cli.main import app

if __name__ == "__main__":
    app()
