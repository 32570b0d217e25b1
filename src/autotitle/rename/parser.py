"""
Compiles human-readable filename templates into anchored matchers.

A template is literal text interleaved with placeholders such as ``{{SERIES}}``
or ``{{EP_NUM}}``. Compiling it escapes the literal text and turns each
placeholder into a capture group, so that::

    "[{{ANY}}] {{SERIES}} - {{EP_NUM}}.{{EXT}}"

matches ``"[Subs] [v2] My show - 01.mkv"`` with ``Any="Subs"``,
``Series="[v2] My show"``, ``EpNum="01"`` and ``Ext="mkv"``.

The extension is never part of the body pattern: it is split off the filename
and reported as ``Ext``. When a placeholder occurs more than once, each
occurrence gets its own field name (``Any_1``, ``Any_2``, ...); a placeholder
used once keeps its bare name.

Also provides guess_pattern(), which derives a starting template from an
example filename.
"""

import os
import re
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from autotitle.errors import CompileError
from autotitle.utils.constants import PLACEHOLDER_EXT, PLACEHOLDER_REGEX, PLACEHOLDER_RULES


@dataclass(frozen=True)
class MatchResult:
    """The values the renamer needs from a match."""

    episode_number: int
    resolution: str
    extension: str


def _split_extension(filename: str) -> Tuple[str, str]:
    base, ext = os.path.splitext(filename)
    return base, ext[1:]


class CompiledMatcher:
    """
    A compiled template.

    ``slots`` lists one ``(field, occurrence)`` pair per capture group, in group
    order; ``field_names`` holds the public name of each slot.
    """

    def __init__(self, template: str, regex: re.Pattern, slots: List[Tuple[str, int]]):
        self.template = template
        self.regex = regex
        self.slots = slots

        totals = Counter(f for f, _ in slots)
        self.field_names = [f if totals[f] == 1 else f"{f}_{occ}" for f, occ in slots]
        self._idx_ep_num = self._first_group("EpNum")
        self._idx_res = self._first_group("Res")

    def _first_group(self, field_name: str) -> Optional[int]:
        for i, (f, _) in enumerate(self.slots):
            if f == field_name:
                return i + 1
        return None

    def _match_body(self, filename: str) -> Tuple[Optional[re.Match], str]:
        base, ext = _split_extension(filename)
        if not ext:
            return None, ext
        return self.regex.fullmatch(base), ext

    def match(self, filename: str) -> Optional[Dict[str, str]]:
        """
        Match a filename and return every captured field plus ``Ext``.

        Returns None when the filename has no extension or the body does not
        match in full.
        """
        m, ext = self._match_body(filename)
        if m is None:
            return None
        result = {name: m.group(i + 1) for i, name in enumerate(self.field_names)}
        result["Ext"] = ext
        return result

    def match_typed(self, filename: str) -> Optional[MatchResult]:
        """Like match(), but only reads the episode number and resolution groups."""
        m, ext = self._match_body(filename)
        if m is None:
            return None

        ep_num = 0
        if self._idx_ep_num is not None:
            ep_num = int(m.group(self._idx_ep_num))
        res = m.group(self._idx_res) if self._idx_res is not None else ""
        return MatchResult(episode_number=ep_num, resolution=res or "", extension=ext)

    def __repr__(self):
        return f"CompiledMatcher({self.template!r})"


def compile_template(template: str) -> CompiledMatcher:
    """
    Compile ``template`` into a CompiledMatcher.

    Unknown ``{{NAME}}`` tokens are kept as literal text. ``{{EXT}}`` (and the
    dot before it) is dropped from the body since extensions are matched apart.

    Raises:
        CompileError: when the template is empty or the resulting pattern is invalid.
    """
    if not isinstance(template, str):
        raise CompileError(repr(template), "template must be a string")

    body = template.replace("." + "{{" + PLACEHOLDER_EXT + "}}", "")
    body = body.replace("{{" + PLACEHOLDER_EXT + "}}", "")
    if not body:
        raise CompileError(template, "template has no body to match")

    parts = []
    slots: List[Tuple[str, int]] = []
    seen: Counter = Counter()
    pos = 0
    for token in PLACEHOLDER_REGEX.finditer(body):
        rule = PLACEHOLDER_RULES.get(token.group(1))
        if rule is None:
            continue
        parts.append(re.escape(body[pos:token.start()]))
        field_name, sub_pattern = rule
        seen[field_name] += 1
        slots.append((field_name, seen[field_name]))
        parts.append(f"({sub_pattern})")
        pos = token.end()
    parts.append(re.escape(body[pos:]))

    try:
        regex = re.compile("".join(parts))
    except re.error as e:
        raise CompileError(template, str(e))

    return CompiledMatcher(template, regex, slots)


_CRC_REGEX = re.compile(r"\[[A-Fa-f0-9]{8}\]")
_RES_REGEX = re.compile(r"\b(\d{3,4}p|\d{3,4}x\d{3,4})\b", re.IGNORECASE)
_SXXEXX_REGEX = re.compile(r"(S\d+E)(\d+)", re.IGNORECASE)
_PREFIX_REGEX = re.compile(r"( - | Episode | Ep\.? )(\d+)")
_NUMBER_REGEX = re.compile(r"\d+")


def guess_pattern(filename: str) -> str:
    """
    Guess a template from an example filename.

    Examples:
      "[SubsPlease] Frieren - 05 (1080p) [A1B2C3D4].mkv"
          -> "[SubsPlease] Frieren - {{EP_NUM}} ({{RES}}) [{{ANY}}].{{EXT}}"
      "Show.S01E07.720p.mkv" -> "Show.S01E{{EP_NUM}}.{{RES}}.{{EXT}}"
    """
    base, ext = _split_extension(filename)

    pattern = _CRC_REGEX.sub("[{{ANY}}]", base)

    m = _RES_REGEX.search(pattern)
    if m:
        pattern = pattern[:m.start()] + "{{RES}}" + pattern[m.end():]

    m = _SXXEXX_REGEX.search(pattern) or _PREFIX_REGEX.search(pattern)
    if m:
        pattern = pattern[:m.start(2)] + "{{EP_NUM}}" + pattern[m.end(2):]
    else:
        best = None
        for num in _NUMBER_REGEX.finditer(pattern):
            start, val = num.start(), num.group(0)
            prev = pattern[start - 1] if start > 0 else ""
            # version tags, codecs and years are never episode numbers
            if prev in ("v", "V"):
                continue
            if prev in ("x", "h") and val in ("264", "265"):
                continue
            if len(val) == 4 and val[:2] in ("19", "20"):
                continue
            best = num
        if best:
            pattern = pattern[:best.start()] + "{{EP_NUM}}" + pattern[best.end():]

    return f"{pattern}.{{{{EXT}}}}" if ext else pattern
