import os
import tempfile

# settings are read at import time; point logs and the DB at a scratch dir
_TMP = tempfile.mkdtemp(prefix="localscope-tests-")
os.environ.setdefault("LOG_DIR", os.path.join(_TMP, "logs"))
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TMP}/test.db")
os.environ.setdefault("GEMINI_API_KEY", "")
os.environ.setdefault("CENSUS_API_KEY", "")
