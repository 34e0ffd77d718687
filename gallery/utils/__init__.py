from gallery.utils.helpers import (
    DEFAULT_MIME_TYPE,
    MIME_TYPES,
    host,
    join_path,
    mime_type_for,
    today_str,
)

__all__ = [
    "DEFAULT_MIME_TYPE",
    "MIME_TYPES",
    "host",
    "join_path",
    "mime_type_for",
    "today_str",
]
