"""Request headers, decoded once from the ASGI scope."""

from collections.abc import Iterable

from roost.http._multivalue import MultiValueMap


class Headers(MultiValueMap):
    """Case-insensitive request headers.

    Names are lower-cased latin-1 strings; repeated headers keep every
    value (``get_list("accept")``).
    """

    __slots__ = ()

    def __init__(self, raw: Iterable[tuple[bytes, bytes]] = ()) -> None:
        grouped: dict[str, list[str]] = {}
        for name, value in raw:
            grouped.setdefault(name.decode("latin-1").lower(), []).append(value.decode("latin-1"))
        super().__init__(grouped)

    def _key(self, key: str) -> str:
        return key.lower()
