# app/utils/search.py

LIKE_ESCAPE = "\\"


def contains_pattern(term: str) -> str:
    """ILIKE pattern matching ``term`` as a literal substring."""
    escaped = (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def as_record_id(term: str) -> int | None:
    """The search term as a positive record id, or None when it is not one."""
    term = term.strip()
    if not term.isdecimal():
        return None
    value = int(term)
    # ids are 64-bit signed integers in every supported backend
    if value < 1 or value > 2**63 - 1:
        return None
    return value
