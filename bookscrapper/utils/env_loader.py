from __future__ import annotations

import os
from pathlib import Path
from typing import Union

from dotenv import find_dotenv, load_dotenv


PathLike = Union[str, Path]

ENV_FILE_VARIABLE = "SCRAPPER_ENV_FILE"


def load_environment(dotenv_path: PathLike | None = None, *, override: bool = False) -> bool:
    """Load environment variables from a .env file.

    Lookup order: explicit ``dotenv_path``, the file named by
    ``SCRAPPER_ENV_FILE``, then the first .env found walking up from the
    current working directory.

    Returns:
        True if an env file was found and loaded, otherwise False.
    """

    path = dotenv_path or os.getenv(ENV_FILE_VARIABLE)
    if not path:
        path = find_dotenv(usecwd=True)

    if not path or not Path(path).is_file():
        return False

    return load_dotenv(dotenv_path=path, override=override)
