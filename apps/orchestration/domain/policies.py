from __future__ import annotations

import re

_CAMEL_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_SEPARATOR_RE = re.compile(r"[\s_\-.]+")


def headline(identifier) -> str:
    raw = _CAMEL_RE.sub(" ", str(identifier if identifier is not None else "")).strip()
    words = [word for word in _SEPARATOR_RE.split(raw) if word]
    return " ".join(word[:1].upper() + word[1:] for word in words)


def same_identifier(left, right) -> bool:
    if left is None or right is None:
        return False
    return str(left) == str(right)
