"""Query string parameters.

Forms on ``GET``/``HEAD``/``DELETE`` routes bind against these when the
request has no body.
"""

from urllib.parse import parse_qs

from roost.http._multivalue import MultiValueMap


class QueryParams(MultiValueMap):
    """Parsed query string. Blank values (``?title=``) are kept."""

    __slots__ = ("raw",)

    def __init__(self, query_string: bytes = b"") -> None:
        super().__init__(parse_qs(query_string.decode("latin-1"), keep_blank_values=True))
        self.raw = query_string
