"""Ordered, attribute-keyed collection of validation failures.

Invariants:
    - Entries keep insertion order; attribute order is order of first insertion
    - Duplicate (attribute, kind) entries are all retained
    - Nothing is ever removed from an ErrorSet
    - messages() is recomputed on every call, never cached

An entry's message is a template rendered with the entry's options, so
``ErrorDetail(attribute="name", kind="too_short", options={"count": 3})``
renders as ``"is too short (minimum is 3 characters)"``. The object-level
attribute ``base`` renders its message without an attribute prefix.
"""

import re
from collections.abc import Iterator
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

BASE = "base"

DEFAULT_MESSAGES: dict[str, str] = {
    "invalid": "is invalid",
    "blank": "can't be blank",
    "present": "must be blank",
    "too_short": "is too short (minimum is {count} characters)",
    "too_long": "is too long (maximum is {count} characters)",
    "wrong_length": "is the wrong length (should be {count} characters)",
    "inclusion": "is not included in the list",
    "exclusion": "is reserved",
    "wrong_type": "{detail}",
    "not_a_number": "is not a number",
    "greater_than": "must be greater than {count}",
    "greater_than_or_equal_to": "must be greater than or equal to {count}",
    "less_than": "must be less than {count}",
    "less_than_or_equal_to": "must be less than or equal to {count}",
    "equal_to": "must be equal to {count}",
    "other_than": "must be other than {count}",
}


def humanize(attribute: str) -> str:
    """Turn ``"first_name"`` into ``"First name"`` and ``"author_id"`` into ``"Author"``."""
    text = attribute.removesuffix("_id").replace("_", " ").strip()
    return text[:1].upper() + text[1:]


def to_sentence(words: list[str]) -> str:
    """Join words into a natural-language list: ``a``, ``a and b``, ``a, b, and c``."""
    if not words:
        return ""
    if len(words) == 1:
        return words[0]
    if len(words) == 2:
        return f"{words[0]} and {words[1]}"
    return f"{', '.join(words[:-1])}, and {words[-1]}"


# ``{name}`` placeholders; anything else in braces is left as written
_PLACEHOLDER = re.compile(r"\{(\w+)\}")


class ErrorDetail(BaseModel):
    """A single validation failure.

    Attributes:
        attribute: Attribute name the failure belongs to, or "base"
        kind: Symbolic error code (e.g., "blank", "too_short")
        options: Values interpolated into the message template
        message: Message template, formatted with ``options``
    """

    model_config = ConfigDict(frozen=True)

    attribute: str
    kind: str
    options: dict[str, Any] = Field(default_factory=dict)
    message: str

    @property
    def rendered(self) -> str:
        if not self.options:
            return self.message
        return _PLACEHOLDER.sub(
            lambda m: str(self.options[m[1]]) if m[1] in self.options else m[0],
            self.message,
        )

    @property
    def full_message(self) -> str:
        if self.attribute == BASE:
            return self.rendered
        return f"{humanize(self.attribute)} {self.rendered}"


class ErrorSet:
    """Validation failures collected over one service invocation."""

    def __init__(self) -> None:
        self._details: list[ErrorDetail] = []

    def add(
        self,
        attribute: str,
        kind: str = "invalid",
        message: str | None = None,
        **options: Any,
    ) -> ErrorDetail:
        """Append a failure and return it.

        ``kind`` is normally a symbolic code from DEFAULT_MESSAGES. A kind with
        no default template and no explicit ``message`` is taken to be the
        message itself, so ``errors.add("base", "Payment declined")`` works.
        """
        if message is None:
            message = DEFAULT_MESSAGES.get(kind, kind)
        detail = ErrorDetail(
            attribute=attribute, kind=kind, options=options, message=message
        )
        self._details.append(detail)
        return detail

    def is_empty(self) -> bool:
        return not self._details

    def __len__(self) -> int:
        return len(self._details)

    def __bool__(self) -> bool:
        return bool(self._details)

    def __iter__(self) -> Iterator[ErrorDetail]:
        return iter(list(self._details))

    def __contains__(self, attribute: object) -> bool:
        return any(d.attribute == attribute for d in self._details)

    def __getitem__(self, attribute: str) -> list[str]:
        """Rendered messages for one attribute, in insertion order."""
        return [d.rendered for d in self._details if d.attribute == attribute]

    def __repr__(self) -> str:
        return f"ErrorSet({self.full_messages()!r})"

    @property
    def attributes(self) -> list[str]:
        """Attributes with at least one failure, in order of first insertion."""
        return list(dict.fromkeys(d.attribute for d in self._details))

    def details_for(self, attribute: str) -> list[ErrorDetail]:
        return [d for d in self._details if d.attribute == attribute]

    def kinds_for(self, attribute: str) -> list[str]:
        return [d.kind for d in self._details if d.attribute == attribute]

    def added(self, attribute: str, kind: str) -> bool:
        """Whether a failure of ``kind`` was recorded for ``attribute``."""
        return any(d.attribute == attribute and d.kind == kind for d in self._details)

    def messages(self) -> Iterator[str]:
        """Lazily render every full message. Each call starts a fresh pass."""
        return (d.full_message for d in list(self._details))

    def full_messages(self) -> list[str]:
        return list(self.messages())

    def to_sentence(self) -> str:
        return to_sentence(self.full_messages())

    def to_dict(self) -> dict[str, list[str]]:
        """Rendered messages grouped by attribute."""
        grouped: dict[str, list[str]] = {}
        for detail in self._details:
            grouped.setdefault(detail.attribute, []).append(detail.rendered)
        return grouped
