from datetime import datetime, timedelta, timezone

import pytest

from payhost import helpers


# Prices, as in the source's own tests

@pytest.mark.parametrize(
    "price, pence, back",
    [
        ("£10.00", 1000, "£10"),
        ("10", 1000, "£10"),
        ("45", 4500, "£45"),
        ("45.35", 4535, "£45.35"),
        ("45.30", 4530, "£45.30"),
    ],
)
def test_prices_round_trip(price, pence, back):
    assert helpers.price_to_cents(price) == pence
    assert helpers.cents_to_price(pence) == back


COMMA_NUMBERS = {
    100: "100",
    1000: "1,000",
    102001: "102,001",
    31300002: "31,300,002",
    12001: "12,001",
    300002: "300,002",
    74002: "74,002",
    450000003: "450,000,003",
}


@pytest.mark.parametrize("number, expected", sorted(COMMA_NUMBERS.items()))
def test_number_to_commas(number, expected):
    assert helpers.number_to_commas(number) == expected


def test_price_to_cents_edge_cases():
    assert helpers.price_to_cents("£1,234.5") == 123450
    assert helpers.price_to_cents("£10.") == 1000
    assert helpers.price_to_cents("abc") == 0
    assert helpers.price_to_cents("") == 0


def test_price_to_cents_string():
    assert helpers.price_to_cents_string("") == "0"
    assert helpers.price_to_cents_string("12.34") == "1234"


def test_cents_to_price_short():
    assert helpers.cents_to_price_short(150000) == "£1.5k"
    assert helpers.cents_to_price_short(250000000) == "£2.50m"
    assert helpers.cents_to_price_short(99999) == "£999.99"


def test_number_to_human():
    assert helpers.number_to_human(999) == "999"
    assert helpers.number_to_human(1500) == "1.50k"
    assert helpers.number_to_human(200000000) == "2.00m"


def test_cents_to_base():
    assert helpers.cents_to_base(1234) == "12.34"
    assert helpers.cents_to_base(5) == "0.05"


def test_maths():
    assert helpers.mod(7, 3) == 1
    assert helpers.mod(-7, 3) == -1
    assert helpers.add(2, 3) == 5
    assert helpers.subtract(2, 3) == -1
    assert helpers.odd(4) is True
    assert helpers.odd(3) is False
    assert helpers.int64(7) == 7


def test_mod_by_zero_raises():
    with pytest.raises(ZeroDivisionError):
        helpers.mod(1, 0)


# Arrays and maps

def test_array_wraps_arguments():
    assert helpers.array(1, 2) == [[1, 2]]


def test_comma_separated_array():
    assert helpers.comma_separated_array(["a", "b", "c"]) == "a,b,c"
    assert helpers.comma_separated_array([]) == ""


def test_map_functions():
    m = helpers.empty()
    assert m == {}
    assert helpers.map_with(m, "a", 1) == {"a": 1}
    assert helpers.set_key(m, "b", 2) == ""
    assert m == {"a": 1, "b": 2}
    assert helpers.set_if(m, "c", 3, True) == ""
    assert helpers.set_if(m, "d", 4, False) == ""
    assert m["c"] == 3
    assert m["d"] == ""


def test_append():
    assert helpers.append([1], 2, 3) == [1, 2, 3]


def test_create_map_uses_first_key():
    assert helpers.create_map("a", 1, 2) == {"a": 2}


def test_create_map_rejects_non_string_key():
    with pytest.raises(TypeError):
        helpers.create_map(1, 2)


def test_contains_blank_exists():
    assert helpers.contains([1, 2, 3], 2) is True
    assert helpers.contains([1, 2, 3], 5) is False
    assert helpers.blank("") is True
    assert helpers.blank("x") is False
    assert helpers.exists("x") is True
    assert helpers.exists("") is False


# Time formatting

MOMENT = datetime(2024, 3, 5, 14, 7, 9, 123456, tzinfo=timezone.utc)


def test_format_date_default_and_custom():
    assert helpers.format_date(MOMENT) == "Mar 5, 2024"
    assert helpers.format_date(MOMENT, "Monday 02/01/06") == "Tuesday 05/03/24"
    assert helpers.format_date(MOMENT, "<2006>") == "&lt;2024&gt;"


def test_format_time_default():
    assert helpers.format_time(MOMENT) == "Mar 5, 2024 at 14:07"
    assert helpers.format_time(MOMENT, "3:04PM") == "2:07PM"


def test_utc_formats():
    assert helpers.utc_date(MOMENT) == "2024-03-05"
    assert helpers.utc_time(MOMENT) == "2024-03-05T14:07:00:00.123Z"
    assert helpers.json_time(MOMENT) == "2024-03-05T14:07:09Z"


def test_json_time_converts_to_utc():
    local = datetime(2024, 3, 5, 16, 7, 9, tzinfo=timezone(timedelta(hours=2)))
    assert helpers.json_time(local) == "2024-03-05T14:07:09Z"


def test_utc_now_and_year_now():
    before = datetime.now(timezone.utc)
    today = helpers.utc_now()
    year = helpers.year_now()
    after = datetime.now(timezone.utc)
    assert today in {before.strftime("%Y-%m-%d"), after.strftime("%Y-%m-%d")}
    assert year in {str(before.year), str(after.year)}


@pytest.mark.parametrize(
    "delta, expected",
    [
        (timedelta(seconds=30), "30 seconds ago"),
        (timedelta(minutes=5, seconds=2), "5 minutes ago"),
        (timedelta(hours=1, minutes=30), "1 hour ago"),
        (timedelta(hours=3, minutes=1), "3 hours ago"),
        (timedelta(hours=30), "1 day ago"),
        (timedelta(days=5, minutes=1), "5 days ago"),
    ],
)
def test_ago_past(delta, expected):
    assert helpers.ago(datetime.now(timezone.utc) - delta) == expected


def test_ago_future_has_no_suffix():
    future = datetime.now(timezone.utc) + timedelta(minutes=10, seconds=30)
    assert helpers.ago(future) == "-10 minutes"


# Strings and HTML

def test_truncate_and_csv():
    assert helpers.truncate("hello", 2) == "hello"
    assert helpers.csv("a,b") == "a,,b"


def test_json_escape():
    assert helpers.json_escape('say "hi"\n') == 'say \\"hi\\" '
    assert helpers.json_escape("a\\b\tc") == "a\\\\b c"


def test_escape():
    assert helpers.escape("<a href='x'>&\"") == "&lt;a href=&#39;x&#39;&gt;&amp;&#34;"


def test_escape_url():
    assert helpers.escape_url("a b/c") == "a%20b%2Fc"
    assert helpers.escape_url("é") == "%C3%A9"


def test_style_and_script():
    assert helpers.style("main") == (
        '<link href="/assets/styles/main.css" media="all" rel="stylesheet" type="text/css" />'
    )
    assert helpers.script("app") == (
        '<script src="/assets/scripts/app.js" type="text/javascript"></script>'
    )


def test_link_escapes_everything():
    assert helpers.link("Home", "/?a=1&b=2", 'class="x"') == (
        '<a href="/?a=1&amp;b=2" class=&#34;x&#34;>Home</a>'
    )


def test_trusted_markup_passthrough():
    assert helpers.html("<b>x</b>") == "<b>x</b>"
    assert helpers.html_attribute('id="a"') == 'id="a"'
    assert helpers.url("/x?y=1") == "/x?y=1"
    assert helpers.xml_preamble() == '<?xml version="1.0" encoding="UTF-8"?>'


def test_strip_removes_tags():
    assert helpers.strip("<p>Hello <b>world</b></p>") == "Hello world\n"
    assert helpers.strip("a & b") == "a & b"


def test_sanitize_drops_unsafe_content():
    assert helpers.sanitize('<p onclick="x()">Hi<script>alert(1)</script></p>') == "<p>Hi</p>"
    assert helpers.sanitize('<a href="/x" class="c" style="s">t</a>') == (
        '<a href="/x" class="c">t</a>'
    )
    assert helpers.sanitize('<a href="javascript:alert(1)">t</a>') == "<a>t</a>"
    assert helpers.sanitize("<u>x</u>") == "x"