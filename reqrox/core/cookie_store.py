"""
Cookie jar file owned by a single request context.
The file is Netscape cookie format so the transport can load and save it
between requests.
"""

import os
import tempfile
import weakref
from http.cookiejar import MozillaCookieJar
from pathlib import Path
from typing import Optional, Union

from .logger import get_logger

logger = get_logger("cookies")


def _remove_cookie_file(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        return
    logger.debug(f"Removed cookie jar {path}")


class CookieStore:
    """
    A uniquely named cookie file that lives exactly as long as its owner.

    The file is created on construction and removed once, by `close()` or,
    failing that, when the store is garbage collected or the interpreter
    exits.
    """

    def __init__(
        self,
        directory: Optional[Union[str, Path]] = None,
        prefix: str = "reqrox",
    ):
        directory = str(directory) if directory is not None else tempfile.gettempdir()
        fd, path = tempfile.mkstemp(prefix=prefix, suffix=".cookies", dir=directory)
        os.close(fd)

        self._path = Path(path)
        self._finalizer = weakref.finalize(self, _remove_cookie_file, path)

        # An empty file is not a loadable Netscape jar; write the header
        MozillaCookieJar(path).save(ignore_discard=True, ignore_expires=True)
        logger.debug(f"Created cookie jar {path}")

    @property
    def path(self) -> Path:
        """Filesystem path of the jar."""
        return self._path

    @property
    def exists(self) -> bool:
        return self._path.exists()

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    def load(self) -> MozillaCookieJar:
        """Read the jar, session cookies included."""
        jar = MozillaCookieJar(str(self._path))
        jar.load(ignore_discard=True, ignore_expires=True)
        return jar

    def close(self) -> None:
        """Delete the cookie file. Safe to call more than once."""
        self._finalizer()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"CookieStore(path={str(self._path)!r}, closed={self.closed})"
