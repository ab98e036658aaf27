"""
MIME type parsing and matching.

Used by message converters to negotiate payload content types.
"""

from typing import Dict, Optional

from .exceptions import InvalidMimeTypeError

WILDCARD = "*"


class MimeType:
    """
    A parsed ``type/subtype;param=value`` content type.

    Equality and hashing ignore parameters (e.g. charset).
    """

    def __init__(self, type_: str, subtype: str, parameters: Optional[Dict[str, str]] = None):
        self.type = type_.lower()
        self.subtype = subtype.lower()
        self.parameters = dict(parameters or {})

    @classmethod
    def parse(cls, value: "str | MimeType") -> "MimeType":
        """
        Parse a content type string.

        Example: "application/json; charset=utf-8"
            → MimeType("application", "json", {"charset": "utf-8"})

        Raises:
            InvalidMimeTypeError: value has no "type/subtype" part
        """
        if isinstance(value, MimeType):
            return value

        parts = [p.strip() for p in str(value).split(";")]
        full_type = parts[0] or "*/*"
        if full_type == WILDCARD:
            full_type = "*/*"
        if "/" not in full_type:
            raise InvalidMimeTypeError(str(value), "does not contain '/'")

        type_, subtype = full_type.split("/", 1)
        if not type_ or not subtype:
            raise InvalidMimeTypeError(str(value))

        parameters = {}
        for param in parts[1:]:
            if "=" in param:
                key, val = param.split("=", 1)
                parameters[key.strip().lower()] = val.strip().strip('"')
        return cls(type_, subtype, parameters)

    @property
    def is_wildcard_type(self) -> bool:
        return self.type == WILDCARD

    @property
    def is_wildcard_subtype(self) -> bool:
        return self.subtype == WILDCARD or self.subtype.startswith("*+")

    @property
    def is_concrete(self) -> bool:
        return not self.is_wildcard_type and not self.is_wildcard_subtype

    @property
    def subtype_suffix(self) -> Optional[str]:
        if "+" in self.subtype:
            return self.subtype.rsplit("+", 1)[1]
        return None

    @property
    def charset(self) -> Optional[str]:
        return self.parameters.get("charset")

    def includes(self, other: "MimeType") -> bool:
        """
        Whether this type covers ``other``.

        "*/*" includes everything, "text/*" includes "text/plain" and
        "application/*+json" includes "application/problem+json".
        """
        if self.is_wildcard_type:
            return True
        if self.type != other.type:
            return False
        if self.subtype == other.subtype:
            return True
        if self.subtype == WILDCARD:
            return True
        if self.subtype.startswith("*+"):
            return other.subtype_suffix == self.subtype[2:] or other.subtype == self.subtype[2:]
        return False

    def is_compatible_with(self, other: "MimeType") -> bool:
        return self.includes(other) or other.includes(self)

    def equals_type_and_subtype(self, other: "MimeType") -> bool:
        return self.type == other.type and self.subtype == other.subtype

    def __eq__(self, other):
        if not isinstance(other, MimeType):
            return NotImplemented
        return self.equals_type_and_subtype(other)

    def __hash__(self):
        return hash((self.type, self.subtype))

    def __str__(self):
        value = f"{self.type}/{self.subtype}"
        for key, val in self.parameters.items():
            value += f";{key}={val}"
        return value

    def __repr__(self):
        return f"MimeType({str(self)!r})"


ALL = MimeType("*", "*")
APPLICATION_JSON = MimeType("application", "json")
APPLICATION_ANY_JSON = MimeType("application", "*+json")
APPLICATION_OCTET_STREAM = MimeType("application", "octet-stream")
TEXT_PLAIN = MimeType("text", "plain")
