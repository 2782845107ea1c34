from __future__ import annotations

import re
from html.parser import HTMLParser
from typing import Any, List


# Anything that opens like a tag, closed or not: "<b>", "</b", "<!--", "<scr"
_TAG_RE = re.compile(r"<[/!?]?[A-Za-z][^<>]*>?|<[!?][^<>]*>?")
_SKIP_CONTENT = {"script", "style"}
_MAX_PASSES = 10


class _TextExtractor(HTMLParser):
    """Collects character data, dropping tags, comments and script/style bodies.

    Entities are re-emitted as written so that sanitizing is not also decoding.
    """

    def __init__(self) -> None:
        super().__init__(convert_charrefs=False)
        self.parts: List[str] = []
        self._skip_depth = 0

    def handle_starttag(self, tag, attrs):
        if tag in _SKIP_CONTENT:
            self._skip_depth += 1

    def handle_endtag(self, tag):
        if tag in _SKIP_CONTENT and self._skip_depth:
            self._skip_depth -= 1

    def handle_data(self, data):
        if not self._skip_depth:
            self.parts.append(data)

    def handle_entityref(self, name):
        if not self._skip_depth:
            self.parts.append(f"&{name};")

    def handle_charref(self, name):
        if not self._skip_depth:
            self.parts.append(f"&#{name};")


def strip_markup(text: str) -> str:
    """One stripping pass: parsed tags, then any leftover tag-like fragments."""
    parser = _TextExtractor()
    try:
        parser.feed(text)
        parser.close()
    except Exception:
        # HTMLParser gave up on malformed input; the regex below still applies
        return _TAG_RE.sub("", text)
    return _TAG_RE.sub("", "".join(parser.parts))


def sanitize(raw: Any) -> str:
    """Strip markup and surrounding whitespace from externally supplied text.

    Stripping repeats until the text is stable, so tags split around other
    tags ("<<b>script>") cannot reassemble. Never raises: None becomes "",
    other non-strings are stringified first.
    """
    if raw is None:
        return ""
    text = raw if isinstance(raw, str) else str(raw)
    for _ in range(_MAX_PASSES):
        stripped = strip_markup(text)
        if stripped == text:
            break
        text = stripped
    else:
        # still changing after every pass; drop angle brackets outright
        text = text.replace("<", "").replace(">", "")
    return text.strip()
