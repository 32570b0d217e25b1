"""
Builds output filenames from an ordered field list.

Each token in the list is one of:

- a known field name (``SERIES``, ``SERIES_EN``, ``SERIES_JP``, ``EP_NUM``,
  ``EP_NAME``, ``FILLER``, ``RES``), replaced by the resolved value;
- a double-quoted literal such as ``"SERIES"``, emitted without its quotes
  (use this to print a keyword verbatim);
- the glue operator ``+``, which drops the separator before the next value;
- anything else, emitted verbatim as a literal.

Empty values are skipped along with their separator, and the extension is
always appended last. Example:

    build_filename(["E", "+", "EP_NUM", "FILLER", "EP_NAME"], " - ", vars, 3)
        -> "E007 - The Title.mkv"      (not a filler)
        -> "E007 - [F] - The Title.mkv" (filler)
"""
from dataclasses import dataclass
from typing import Iterable

from autotitle.errors import GenerationError
from autotitle.utils.constants import DEFAULT_EP_PADDING, FIELD_GLUE


@dataclass
class TemplateVars:
    """Resolved values for one episode file."""

    series: str = ""
    series_en: str = ""
    series_jp: str = ""
    ep_num: str = ""
    ep_name: str = ""
    filler: str = ""
    res: str = ""
    ext: str = ""


_FIELD_ATTRS = {
    "SERIES": "series",
    "SERIES_EN": "series_en",
    "SERIES_JP": "series_jp",
    "EP_NAME": "ep_name",
    "FILLER": "filler",
    "RES": "res",
}


def pad_number(value: str, width: int) -> str:
    """Left-pad a digit string with zeros; empty stays empty."""
    if not value:
        return ""
    return value.zfill(width)


def resolve_field(token: str, tpl_vars: TemplateVars, padding: int) -> str:
    if not isinstance(token, str):
        raise GenerationError(f"output field must be a string, got {token!r}")

    if token == "EP_NUM":
        return pad_number(tpl_vars.ep_num, padding)
    if token in _FIELD_ATTRS:
        return getattr(tpl_vars, _FIELD_ATTRS[token])

    if token.startswith('"'):
        if len(token) < 2 or not token.endswith('"'):
            raise GenerationError(f"unterminated quoted literal in output fields: {token}")
        return token[1:-1]

    return token


def build_filename(fields: Iterable[str], separator: str, tpl_vars: TemplateVars, padding: int = 0) -> str:
    """
    Join resolved field values with ``separator`` and append the extension.

    Parameters:
    - fields: Ordered output tokens.
    - separator: Inserted between two consecutive non-empty values only.
    - tpl_vars: Resolved values for the episode.
    - padding: EP_NUM zero-pad width; values below 1 mean the default width of 3.

    Returns:
    - The filename, ``<joined values>.<ext>``.

    Raises:
    - GenerationError: for a non-string token or an unterminated quoted literal.
    """
    if padding <= 0:
        padding = DEFAULT_EP_PADDING

    parts = []
    glue_next = False
    for token in fields:
        if token == FIELD_GLUE:
            glue_next = True
            continue

        value = resolve_field(token, tpl_vars, padding)
        if not value:
            continue

        if parts and not glue_next:
            parts.append(separator)
        parts.append(value)
        glue_next = False

    return "".join(parts) + "." + tpl_vars.ext
