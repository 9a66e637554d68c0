import os

from sitegen.config import apply_env_file

# Tests configure Settings directly; never pick up a developer's .env there
if not os.getenv("PYTEST_CURRENT_TEST"):
	apply_env_file(os.getenv("SITEGEN_ENV_FILE", ".env"))
