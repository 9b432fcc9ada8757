import os

from .constants import DATA_DIR_ENV, DB_FILENAME


def get_data_dir():
    # Explicit override first, then the per-user application data directory.
    base = os.environ.get(DATA_DIR_ENV, "").strip()
    if base:
        data_dir = base
    else:
        xdg = os.environ.get("XDG_DATA_HOME", "").strip()
        root = xdg or os.path.join(os.path.expanduser("~"), ".local", "share")
        data_dir = os.path.join(root, "templatevault")

    os.makedirs(data_dir, exist_ok=True)
    return data_dir


def get_db_path():
    return os.path.join(get_data_dir(), DB_FILENAME)
