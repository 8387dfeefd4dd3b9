# payhost

Building blocks for a small payment-hosting web application. The package
collects pieces that such an application uses around its request handlers:

- **`payhost.config`** – JSON configuration with separate development,
  production and test sections (`Config`, `Mode`, and the module-level
  `get`, `get_int`, `get_bool`, `production` once `set_current` has been
  called).
- **`payhost.log`** – structured, levelled logging of key/value maps to
  any number of outputs (`DefaultLogger`, `FileLogger`, `new_stderr`,
  `new_file`, `add`, `reset`, `debug`, `info`, `error`, `fatal`, `timed`).
- **`payhost.helpers`** – template helpers for HTML, dates, prices and
  numbers (`cents_to_price`, `price_to_cents`, `number_to_commas`,
  `sanitize`, `strip`, `format_date`, `ago`, ...).
- **`payhost.text`** – turns newlines into paragraphs and bare links,
  `@names` and `/projects/` paths into anchors.
- **`payhost.templates`** – Jinja-backed templates kept in shared sets per
  kind: `HTMLTemplate` (`.html.got`, `.xml.got`), `JSONTemplate`
  (`.json.got`), `TextTemplate` (`.text.got`, `.csv.got`), plus
  `BaseTemplate`, which renders its source unchanged.
- **`payhost.responses`** – safe internal redirects and cache headers.
- **`payhost.schedule`** – run an action at a time and then at an
  interval until stopped.
- **`payhost.stats`** – an anonymised count of recent visitors.
- **`payhost.events`** – parsing of Stripe, Square and PayPal webhook
  payloads into dataclasses.

## Configuration

The configuration file is a JSON object with a section per mode:

```json
{
  "development": {"port": "3000", "assets_compiled": "no"},
  "production":  {"port": "443",  "assets_compiled": "yes"},
  "test":        {"port": "3000"}
}
```

```python
from payhost import config

cfg = config.Config(config.Mode.DEVELOPMENT)
cfg.load("secrets/fragmenta.json")
cfg.get_int("port")              # 3000
cfg.get_bool("assets_compiled")  # False – only "yes" is true

config.set_current(cfg)
config.get("port")               # "3000"
```

Loading a file that is not valid JSON, or that has fewer than two
sections, raises `ValueError`; a file that cannot be opened raises
`OSError`. Missing keys read as `""`, `0` or `False`.

## Logging

```python
from payhost import log

log.add(log.new_stderr(""))
log.info({"msg": "user signed in", "user_id": 42})
log.error({"msg": "payment failed", "error": "card declined"})
```

Each logger drops values below its level (info by default); the message
comes first, then the other keys in alphabetical order as `key:value`,
then the level tag such as `#error`. `new_file(path)` appends to a file
without colours and with a date-time prefix; `reset()` removes all
registered outputs.

## Templates

```python
from payhost import helpers
from payhost.templates import HTMLTemplate

template = HTMLTemplate()
template.setup({"cents_to_price": helpers.cents_to_price})
template.parse_string("<p>{{ cents_to_price(total) }}</p>")
template.render({"total": 4530})   # '<p>£45.30</p>'
```

`setup` starts a fresh shared set for the template kind, with the helpers
available both as functions and as filters. A template read from a file is
made with `new_template(fullpath, path)` and `parse()`; adding a second
template under the same path raises `ValueError`. After parsing,
`finalize(templates)` records the templates a source includes, and
`cache_key()` combines the path, a hash of the source and the keys of
those dependencies.

## Text helpers

```python
from payhost.text import convert_links, convert_newlines

convert_links("see https://example.com")
# 'see <a href="https://example.com">https://example.com</a>'

convert_newlines("first\nsecond")
# '<p>first</p><p>second</p>'
```

`get_links(s)` fetches the first URL in `s` over the network and returns
whether it answered with a 2xx status.

## Prices and numbers

```python
from payhost import helpers

helpers.price_to_cents("£45.30")   # 4530
helpers.cents_to_price(1000)       # '£10'
helpers.number_to_commas(102001)   # '102,001'
```

## Redirects and cache headers

```python
from payhost.responses import add_cache_headers, redirect

response = redirect("/payment/success")   # a 302 werkzeug Response
add_cache_headers(response.headers, 7, "abc123")
```

`redirect` and `redirect_status` accept only paths that start with `/` and
contain no `:`; anything else raises `ValueError`. `redirect_external`
does no check.

## Scheduling

```python
from datetime import datetime, timedelta, timezone
import logging

from payhost import config
from payhost.schedule import ActionContext, at

context = ActionContext(logging.getLogger("jobs"), config.Config())
task = at(lambda ctx: ctx.log("tick"), context,
          datetime.now(timezone.utc), timedelta(minutes=5))
task.stop()
```

A start in the past is moved forward by whole intervals; a zero interval
runs the action once. Each run happens on its own daemon thread.

## Visitor stats

`register_hit(request)` takes a werkzeug request, skips user agents
containing `bot` and paths ending in `.xml`, records an anonymised hash
of the client, and posts a page view to the `analytics_URL` from the
current config on a background thread. `user_count()` returns the number
of visitors seen in the last five minutes, and `handle_user_count()`
returns that as a JSON response such as `{"users":3}`. Importing the
module starts a timer that purges old entries every minute.

## Webhook events

```python
from payhost.events import parse_stripe_event

event = parse_stripe_event(request_body)
event.data_object.customer_details.email
event.created   # datetime in UTC
```

Square and PayPal subscription notifications are read the same way with
`parse_square_event` and `parse_paypal_event`. Fields of the wrong JSON
type raise `ValueError`; missing fields take empty values.

## What this package does not do

It does not run a web server, route requests or handle sessions. It has
no directory scanner or view renderer on top of the template classes,
no translation loading, no request-tracing middleware, and no
`StatusError` type: an application wires these parts together itself.
Webhook events are only parsed; signatures are not verified and nothing
is stored.