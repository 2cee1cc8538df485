"""Phone and name normalization helpers."""

SUFFIX_LENGTH = 4


def digits_only(value: str | None) -> str:
    """Strip everything but ASCII digits."""
    if not value:
        return ""
    return "".join(ch for ch in value if "0" <= ch <= "9")


def normalize_phone(phone: str | None) -> str:
    """Normalize a phone number to its digit-only form ("010-9999-8888" -> "01099998888")."""
    return digits_only(phone)


def phone_last4(phone: str | None) -> str:
    """Last 4 digits of the normalized phone ("" when shorter than 4 digits)."""
    digits = normalize_phone(phone)
    if len(digits) < SUFFIX_LENGTH:
        return ""
    return digits[-SUFFIX_LENGTH:]


def normalize_name(name: str | None) -> str:
    """Trim and collapse internal whitespace."""
    if not name:
        return ""
    return " ".join(name.split())


def same_name(a: str | None, b: str | None) -> bool:
    """Case and spacing insensitive name equality."""
    return normalize_name(a).casefold() == normalize_name(b).casefold()
