"""Functions available to templates: formatting, escaping, maps, arrays and maths."""

from __future__ import annotations

import html as _html
import re
from datetime import datetime, timedelta, timezone
from html.parser import HTMLParser
from typing import Any, Iterable
from urllib.parse import quote

from markupsafe import Markup

# ARRAYS AND MAPS


def array(*args: Any) -> list[Any]:
    """Return a list holding the arguments as its single element."""
    return [list(args)]


def comma_separated_array(args: Iterable[str]) -> str:
    """Return the values joined with commas."""
    return ",".join(args)


def empty() -> dict[str, Any]:
    """Return a new empty map for use as a context."""
    return {}


def map_with(m: dict[str, Any], key: str, value: Any) -> dict[str, Any]:
    """Set key in m and return m."""
    m[key] = value
    return m


def set_key(m: dict[str, Any], key: str, value: Any) -> str:
    """Set key in m and render nothing."""
    m[key] = value
    return ""


def set_if(m: dict[str, Any], key: str, value: Any, condition: bool) -> str:
    """Set key to value if condition holds, otherwise to "", and render nothing."""
    m[key] = value if condition else ""
    return ""


def append(items: Iterable[Any], *args: Any) -> list[Any]:
    """Return a list of items followed by args."""
    return [*items, *args]


def create_map(*args: Any) -> dict[str, Any]:
    """Build a map whose key is the first argument and value the last of the rest."""
    result: dict[str, Any] = {}
    key = ""
    for value in args:
        if not key:
            if not isinstance(value, str):
                raise TypeError(f"map key must be a string, got {type(value).__name__}")
            key = value
        else:
            result[key] = value
    return result


def contains(items: Iterable[int], item: int) -> bool:
    """Return True if item is among items."""
    return item in items


def blank(s: str) -> bool:
    """Return True if s is empty."""
    return len(s) == 0


def exists(s: str) -> bool:
    """Return True if s is not empty."""
    return len(s) > 0


# TIME FORMATTING

_LONG_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
_LONG_DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
_ZONE_BODIES = ("070000", "07:00:00", "0700", "07:00", "07")
_DIGITS = "0123456789"

_DEFAULT_TIME_LAYOUT = "Jan 2, 2006 at 15:04"
_DEFAULT_DATE_LAYOUT = "Jan 2, 2006"


def _starts_lower(s: str) -> bool:
    return bool(s) and "a" <= s[0] <= "z"


def _next_token(rest: str) -> str | None:
    c = rest[0]
    if c == "J":
        if rest.startswith("January"):
            return "January"
        if rest.startswith("Jan") and not _starts_lower(rest[3:]):
            return "Jan"
    elif c == "M":
        if rest.startswith("Monday"):
            return "Monday"
        if rest.startswith("Mon") and not _starts_lower(rest[3:]):
            return "Mon"
        if rest.startswith("MST"):
            return "MST"
    elif c == "0":
        if len(rest) > 1 and rest[1] in "123456":
            return rest[:2]
        if rest.startswith("002"):
            return "002"
    elif c == "1":
        return "15" if rest.startswith("15") else "1"
    elif c == "2":
        return "2006" if rest.startswith("2006") else "2"
    elif c == "_":
        if rest.startswith("_2") and not rest.startswith("_2006"):
            return "_2"
        if rest.startswith("__2"):
            return "__2"
    elif c in "345":
        return c
    elif c == "P":
        if rest.startswith("PM"):
            return "PM"
    elif c == "p":
        if rest.startswith("pm"):
            return "pm"
    elif c in "-Z":
        for body in _ZONE_BODIES:
            if rest.startswith(c + body):
                return c + body
    elif c in ".,":
        if len(rest) > 1 and rest[1] in "09":
            j = 1
            while j < len(rest) and rest[j] == rest[1]:
                j += 1
            if not (j < len(rest) and rest[j] in _DIGITS):
                return rest[:j]
    return None


def _zone(token: str, t: datetime) -> str:
    offset = t.utcoffset() if t.tzinfo is not None else None
    secs = int(offset.total_seconds()) if offset is not None else 0
    if token[0] == "Z" and secs == 0:
        return "Z"
    sign = "-" if secs < 0 else "+"
    secs = abs(secs)
    hh, mm, ss = secs // 3600, secs // 60 % 60, secs % 60
    body = token[1:]
    if body == "070000":
        return f"{sign}{hh:02d}{mm:02d}{ss:02d}"
    if body == "07:00:00":
        return f"{sign}{hh:02d}:{mm:02d}:{ss:02d}"
    if body == "0700":
        return f"{sign}{hh:02d}{mm:02d}"
    if body == "07:00":
        return f"{sign}{hh:02d}:{mm:02d}"
    return f"{sign}{hh:02d}"


def _render_token(token: str, t: datetime) -> str:
    hour12 = t.hour % 12 or 12
    simple = {
        "January": lambda: _LONG_MONTHS[t.month - 1],
        "Jan": lambda: _LONG_MONTHS[t.month - 1][:3],
        "Monday": lambda: _LONG_DAYS[t.weekday()],
        "Mon": lambda: _LONG_DAYS[t.weekday()][:3],
        "2006": lambda: f"{t.year:04d}",
        "06": lambda: f"{t.year % 100:02d}",
        "01": lambda: f"{t.month:02d}",
        "1": lambda: str(t.month),
        "02": lambda: f"{t.day:02d}",
        "_2": lambda: f"{t.day:>2}",
        "2": lambda: str(t.day),
        "002": lambda: f"{t.timetuple().tm_yday:03d}",
        "__2": lambda: f"{t.timetuple().tm_yday:>3}",
        "15": lambda: f"{t.hour:02d}",
        "03": lambda: f"{hour12:02d}",
        "3": lambda: str(hour12),
        "04": lambda: f"{t.minute:02d}",
        "4": lambda: str(t.minute),
        "05": lambda: f"{t.second:02d}",
        "5": lambda: str(t.second),
        "PM": lambda: "PM" if t.hour >= 12 else "AM",
        "pm": lambda: "pm" if t.hour >= 12 else "am",
    }
    if token in simple:
        return simple[token]()
    if token == "MST":
        if t.tzinfo is None:
            return "UTC"
        name = t.tzname()
        if name:
            return name
        return _zone("-0700", t)
    if token[0] in "-Z":
        return _zone(token, t)
    # Fractional seconds
    digits = f"{t.microsecond * 1000:09d}"[: min(len(token) - 1, 9)]
    if token[1] == "9":
        digits = digits.rstrip("0")
        return token[0] + digits if digits else ""
    return token[0] + digits


def _go_format(t: datetime, layout: str) -> str:
    out: list[str] = []
    i = 0
    while i < len(layout):
        token = _next_token(layout[i:])
        if token is None:
            out.append(layout[i])
            i += 1
        else:
            out.append(_render_token(token, t))
            i += len(token)
    return "".join(out)


def _to_utc(value: datetime) -> datetime:
    return value.astimezone(timezone.utc) if value.tzinfo is not None else value


def format_time(value: datetime, *args: str) -> Markup:
    """Format value with an optional reference layout, escaped as HTML."""
    layout = args[0] if args else _DEFAULT_TIME_LAYOUT
    return Markup(escape(_go_format(value, layout)))


def format_date(value: datetime, *args: str) -> Markup:
    """Format the date of value with an optional reference layout, escaped as HTML."""
    layout = args[0] if args else _DEFAULT_DATE_LAYOUT
    return Markup(escape(_go_format(value, layout)))


def _trunc_div(a: int, b: int) -> int:
    q = abs(a) // b
    return -q if a < 0 else q


_US_SECOND = 1_000_000
_US_MINUTE = 60 * _US_SECOND
_US_HOUR = 60 * _US_MINUTE


def ago(value: datetime) -> str:
    """Describe the distance from now to value, e.g. "5 hours ago"."""
    now = datetime.now(timezone.utc) if value.tzinfo is not None else datetime.now()
    duration = (now - value) // timedelta(microseconds=1)
    absolute = abs(duration)
    hours = absolute // _US_HOUR
    suffix = "" if duration < 0 else " ago"

    if absolute < _US_MINUTE:
        return f"{_trunc_div(duration, _US_SECOND)} seconds{suffix}"
    if absolute < _US_HOUR:
        return f"{_trunc_div(duration, _US_MINUTE)} minutes{suffix}"
    if absolute < 24 * _US_HOUR:
        unit = "hours" if hours > 1 else "hour"
        return f"{hours} {unit}{suffix}"
    unit = "days" if hours > 48 else "day"
    return f"{hours // 24} {unit}{suffix}"


def utc_date(value: datetime) -> Markup:
    """Format value in UTC as 2006-01-02."""
    return format_date(_to_utc(value), "2006-01-02")


def utc_time(value: datetime) -> Markup:
    """Format value in UTC with date, hour, minute and milliseconds."""
    return format_time(_to_utc(value), "2006-01-02T15:04:00:00.000Z")


def json_time(value: datetime) -> Markup:
    """Format value in UTC in RFC 3339 form for JSON output."""
    return format_time(_to_utc(value), "2006-01-02T15:04:05Z07:00")


def utc_now() -> Markup:
    """Return today's UTC date as 2006-01-02."""
    return format_date(datetime.now(timezone.utc), "2006-01-02")


def year_now() -> Markup:
    """Return the current UTC year."""
    return format_date(datetime.now(timezone.utc), "2006")


# STRINGS


def truncate(s: str, length: int) -> str:
    """Return s unchanged."""
    return s


def csv(s: str) -> str:
    """Escape commas for CSV output by doubling them."""
    return str(s).replace(",", ",,")


def json_escape(s: str) -> Markup:
    """Escape s for use inside a JSON string in a template."""
    for old, new in (("\r", " "), ("\n", " "), ("\t", " "), ("\\", "\\\\"), ('"', '\\"')):
        s = s.replace(old, new)
    return Markup(s)


# HTML

_ESCAPES = str.maketrans(
    {"\0": "\ufffd", '"': "&#34;", "'": "&#39;", "&": "&amp;", "<": "&lt;", ">": "&gt;"}
)


def escape(s: str) -> str:
    """Escape the HTML special characters in s."""
    return s.translate(_ESCAPES)


def escape_url(s: str) -> str:
    """Percent-encode everything in s except unreserved characters."""
    return quote(str(s), safe="")


def style(name: str) -> Markup:
    """Return a stylesheet link tag for the named asset."""
    return Markup(
        f'<link href="/assets/styles/{escape_url(name)}.css" media="all" '
        f'rel="stylesheet" type="text/css" />'
    )


def script(name: str) -> Markup:
    """Return a script tag for the named asset."""
    return Markup(
        f'<script src="/assets/scripts/{escape_url(name)}.js" type="text/javascript"></script>'
    )


def link(text: str, url: str, *args: str) -> Markup:
    """Return an anchor tag; attributes must not hold user input."""
    attributes = " ".join(args)
    return Markup(f'<a href="{escape(url)}" {escape(attributes)}>{escape(text)}</a>')


def html(s: str) -> Markup:
    """Mark a trusted string as HTML."""
    return Markup(s)


def html_attribute(s: str) -> Markup:
    """Mark a trusted string as an HTML attribute."""
    return Markup(s)


def url(s: str) -> Markup:
    """Mark a trusted string as a URL."""
    return Markup(s)


def strip(s: str) -> Markup:
    """Remove all HTML tags from s, leaving plain text."""
    if "<" not in s and ">" not in s:
        output = s
    else:
        s = s.replace("\n", "")
        for tag in ("</p>", "<br>", "</br>", "<br/>", "<br />"):
            s = s.replace(tag, "\n")
        kept: list[str] = []
        in_tag = False
        for ch in s:
            if ch == "<":
                in_tag = True
            elif ch == ">":
                in_tag = False
            elif not in_tag:
                kept.append(ch)
        output = "".join(kept)

    for old, new in (
        ("&#8216;", "'"), ("&#8217;", "'"), ("&#8220;", '"'), ("&#8221;", '"'),
        ("&nbsp;", " "), ("&quot;", '"'), ("&apos;", "'"),
    ):
        output = output.replace(old, new)
    output = escape(_html.unescape(output))
    for old, new in (("&#34;", '"'), ("&#39;", "'"), ("&amp; ", "& "), ("&amp;amp; ", "& ")):
        output = output.replace(old, new)
    return Markup(output)


_ALLOWED_TAGS = frozenset({
    "h1", "h2", "h3", "h4", "h5", "h6", "div", "span", "hr", "p", "br", "b", "i",
    "strong", "em", "ol", "ul", "li", "a", "img", "pre", "code", "blockquote",
    "article", "section",
})
_ALLOWED_ATTRIBUTES = frozenset({"id", "class", "src", "href", "title", "alt", "name", "rel"})
_IGNORED_TAGS = frozenset({
    "title", "script", "style", "iframe", "frame", "frameset", "noframes", "noembed",
    "embed", "applet", "object", "base",
})
_VOID_TAGS = frozenset({"br", "hr", "img", "embed", "base", "frame"})
_UNSAFE_SCHEME = re.compile(r"^(javascript|vbscript|data):", re.IGNORECASE)
_URL_ATTRIBUTES = frozenset({"href", "src"})


class _Sanitizer(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.parts: list[str] = []
        self._ignore_depth = 0

    def _open_tag(self, tag: str, attrs: list[tuple[str, str | None]], close: str) -> str:
        rendered = [f"<{tag}"]
        for name, value in attrs:
            if name not in _ALLOWED_ATTRIBUTES:
                continue
            if value is None:
                rendered.append(f" {name}")
                continue
            if name in _URL_ATTRIBUTES:
                compact = "".join(ch for ch in value if ch > " ")
                if _UNSAFE_SCHEME.match(compact):
                    continue
            rendered.append(f' {name}="{escape(value)}"')
        rendered.append(close)
        return "".join(rendered)

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag in _IGNORED_TAGS:
            if tag not in _VOID_TAGS:
                self._ignore_depth += 1
            return
        if self._ignore_depth or tag not in _ALLOWED_TAGS:
            return
        self.parts.append(self._open_tag(tag, attrs, ">"))

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if self._ignore_depth or tag not in _ALLOWED_TAGS:
            return
        self.parts.append(self._open_tag(tag, attrs, " />"))

    def handle_endtag(self, tag: str) -> None:
        if tag in _IGNORED_TAGS:
            if tag not in _VOID_TAGS:
                self._ignore_depth = max(0, self._ignore_depth - 1)
            return
        if self._ignore_depth or tag not in _ALLOWED_TAGS or tag in _VOID_TAGS:
            return
        self.parts.append(f"</{tag}>")

    def handle_data(self, data: str) -> None:
        if not self._ignore_depth:
            self.parts.append(escape(data))


def sanitize(s: str) -> Markup:
    """Keep only safe tags and attributes in the HTML s."""
    parser = _Sanitizer()
    parser.feed(s)
    parser.close()
    return Markup("".join(parser.parts))


def xml_preamble() -> Markup:
    """Return the XML declaration."""
    return Markup('<?xml version="1.0" encoding="UTF-8"?>')


# PRICES AND NUMBERS

_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def _atoi(s: str) -> int:
    if not _INT_RE.fullmatch(s):
        raise ValueError(f"invalid integer {s!r}")
    number = int(s)
    if not _INT64_MIN <= number <= _INT64_MAX:
        raise ValueError(f"integer out of range {s!r}")
    return number


def price_to_cents_string(price: str) -> str:
    """Return the price in cents as a string, "0" for a blank price."""
    if price == "":
        return "0"
    return str(price_to_cents(price))


def price_to_cents(price: str) -> int:
    """Convert a price such as "£34.40" to pence; invalid prices give 0."""
    cleaned = price.replace("£", "").replace(",", "").replace(" ", "")
    try:
        if "." in cleaned:
            parts = cleaned.split(".")
            pence = parts[1]
            if len(pence) == 0:
                pence = "00"
            elif len(pence) == 1:
                pence += "0"
            return _atoi(parts[0] + pence)
        return _atoi(cleaned) * 100
    except ValueError:
        return 0


def cents_to_price(cents: int) -> str:
    """Format pence as pounds, dropping a trailing ".00"."""
    price = f"£{cents / 100.0:.2f}"
    return price[:-3] if price.endswith(".00") else price


def cents_to_price_short(cents: int) -> str:
    """Format pence as an abbreviated price with a k, m or b suffix."""
    if cents >= 100_000_000_000:
        return f"£{cents / 100_000_000_000.0:.2f}b"
    if cents >= 100_000_000:
        return f"£{cents / 100_000_000.0:.2f}m"
    if cents >= 100_000:
        return f"£{cents / 100_000.0:.1f}k"
    return cents_to_price(cents)


def number_to_human(n: int) -> str:
    """Format a number with a k, m or b suffix, losing some precision."""
    if n >= 100_000_000_000:
        return f"{n / 100_000_000_000.0:.2f}b"
    if n >= 100_000_000:
        return f"{n / 100_000_000.0:.2f}m"
    if n >= 1000:
        return f"{n / 1000.0:.2f}k"
    return str(n)


def number_to_commas(n: int) -> str:
    """Format a number with commas between every three numerals."""
    s = str(n)
    if len(s) < 4:
        return s
    out: list[str] = []
    for pos, ch in enumerate(reversed(s)):
        if pos and pos % 3 == 0:
            out.append(",")
        out.append(ch)
    return "".join(reversed(out))


def cents_to_base(cents: int) -> str:
    """Format pence in the base unit with two decimals and no symbol."""
    return f"{cents / 100.0:.2f}"


def mod(a: int, b: int) -> int:
    """Return a modulo b, with the sign of a."""
    remainder = abs(a) % abs(b)
    return -remainder if a < 0 else remainder


def add(a: int, b: int) -> int:
    """Return a + b."""
    return a + b


def subtract(a: int, b: int) -> int:
    """Return a - b."""
    return a - b


def odd(a: int) -> bool:
    """Return True when a is divisible by two."""
    return a % 2 == 0


def int64(i: int) -> int:
    """Return i as an integer."""
    return int(i)