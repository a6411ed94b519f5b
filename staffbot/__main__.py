import os

from dotenv import load_dotenv

from staffbot.cli.commands import app

# Load .env file from ~/.staffbot/ if it exists
# Precedence: existing env vars > .env file (override=False)
load_dotenv(os.path.expanduser("~/.staffbot/.env"), override=False)

if __name__ == "__main__":
    app()
