import os
import tempfile

# Settings are read once at import time, so the environment must be ready
# before anything under pairchat is imported.
_TMP_DIR = tempfile.mkdtemp(prefix="pairchat-tests-")

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ENVIRONMENT"] = "test"
os.environ["MESSAGE_CIPHER"] = "shift"
os.environ["REDIS_URL"] = ""
os.environ["LOG_LEVEL"] = "WARNING"
