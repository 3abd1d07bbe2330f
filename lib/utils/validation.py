"""Validation helpers."""


class NumberFormatError(ValueError):
    """Raised when text cannot be parsed as a number."""

    @classmethod
    def for_input(cls, text: str) -> "NumberFormatError":
        return cls(f'For input string: "{text}"')


def ensure(condition: bool, message: str) -> None:
    if not condition:
        raise ValueError(message)
