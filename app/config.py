import os
from dotenv import load_dotenv

load_dotenv()

BRAND_NAME = "WHPCodes"
SITE_URL = "https://whpcodes.com"

ENV = os.getenv("ENV", "dev")
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./whpcodes.db")

DEFAULT_GRAPH_PATH = "/data/graph/neighbors.json"


def _flag(*names: str) -> bool:
    for name in names:
        value = os.getenv(name)
        if value is not None:
            return value.strip().lower() == "true"
    return False


def _first(*names: str, default: str = "") -> str:
    for name in names:
        value = os.getenv(name)
        if value and value.strip():
            return value.strip()
    return default


# Read on every call so tests (and a running process) can flip them via env.
def use_graph_links() -> bool:
    return _flag("USE_GRAPH_LINKS", "NEXT_PUBLIC_USE_GRAPH_LINKS")


def debug_enabled() -> bool:
    return _flag("DEBUG", "NEXT_PUBLIC_DEBUG")


def graph_source() -> str:
    return _first("GRAPH_URL", "NEXT_PUBLIC_GRAPH_URL", default=DEFAULT_GRAPH_PATH)


def graph_version() -> str:
    return _first("GRAPH_VERSION", "NEXT_PUBLIC_GRAPH_VERSION")


def data_dir() -> str:
    """Root directory holding the static data/ tree (graph + verification pages)."""
    return _first("DATA_DIR", default=os.path.join(os.getcwd(), "public"))


def site_origin() -> str:
    from_env = os.getenv("SITE_ORIGIN", "").rstrip("/")
    if from_env:
        return from_env

    if os.getenv("ENV", ENV) == "prod":
        return SITE_URL

    return f"http://localhost:{os.getenv('PORT', '3000')}"
