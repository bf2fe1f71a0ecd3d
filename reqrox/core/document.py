"""HTML parsing for response callbacks."""

from typing import Optional, Union

from bs4 import BeautifulSoup

from .exceptions import ParseError

PARSER = "html.parser"


def parse_html(
    markup: Optional[Union[str, bytes]],
    encoding: Optional[str] = None,
) -> BeautifulSoup:
    """
    Parse `markup` into a document supporting `select`/`find` lookups.

    Bytes are decoded with `encoding` when given, otherwise bs4 detects it.
    """
    if not markup:
        markup = ""
    try:
        if isinstance(markup, bytes) and encoding:
            return BeautifulSoup(markup, PARSER, from_encoding=encoding)
        return BeautifulSoup(markup, PARSER)
    except Exception as e:
        raise ParseError(f"Cannot parse response as HTML: {e}", content_format="html", cause=e)
