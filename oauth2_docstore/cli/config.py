# oauth2_docstore/cli/config.py
import os
from dotenv import load_dotenv
from pathlib import Path

# This cli/config.py file is at <project>/oauth2_docstore/cli/config.py
# Three .parent calls navigate to the project root directory
project_root = Path(__file__).parent.parent.parent.resolve()

# Load environment variables from .env file, overriding system environment variables
load_dotenv(dotenv_path=project_root / '.env', override=True)

# Default SQLite file for CLI operations when --db-path is not given
OAUTH2_DOCSTORE_CLI_DB_PATH = os.getenv("OAUTH2_DOCSTORE_CLI_DB_PATH")
