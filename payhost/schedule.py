"""Running actions at a given time and repeatedly at an interval thereafter."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Protocol


class Logger(Protocol):
    """Anything with a logging-style info method, such as logging.Logger."""

    def info(self, msg: str, *args: Any) -> Any: ...


class ConfigSource(Protocol):
    """Configuration the scheduled actions may read."""

    def production(self) -> bool: ...

    def get(self, key: str) -> str: ...


class ActionContext:
    """What a scheduled action receives: a logger, the config and a data store."""

    def __init__(self, logger: Logger, config: ConfigSource) -> None:
        self._logger = logger
        self._config = config
        self._data: dict[str, Any] = {}

    def logf(self, fmt: str, *args: Any) -> None:
        """Log a %-style format with its arguments."""
        self._logger.info(fmt, *args)

    def log(self, message: str) -> None:
        """Log a plain message."""
        self.logf(message)

    def config_value(self, key: str) -> str:
        """Return a value from the config."""
        return self._config.get(key)

    def production(self) -> bool:
        """Return True if the config is in production mode."""
        return self._config.production()

    def set(self, key: str, data: Any) -> None:
        """Store arbitrary data under key."""
        self._data[key] = data

    def get(self, key: str) -> Any:
        """Return the data stored under key, or None."""
        return self._data.get(key)


ScheduledAction = Callable[[ActionContext], Any]


class ScheduledTask:
    """A pending or repeating action; call stop() to end it."""

    def __init__(
        self,
        action: ScheduledAction,
        context: ActionContext,
        delay: float,
        interval: float,
    ) -> None:
        self._action = action
        self._context = context
        self._interval = interval
        self._stopped = threading.Event()
        self._timer = threading.Timer(max(delay, 0.0), self._fire)
        self._timer.daemon = True

    def _start(self) -> None:
        self._timer.start()

    def _spawn(self) -> None:
        threading.Thread(target=self._action, args=(self._context,), daemon=True).start()

    def _fire(self) -> None:
        if self._stopped.is_set():
            return
        self._spawn()
        if self._interval > 0:
            while not self._stopped.wait(self._interval):
                self._spawn()

    @property
    def stopped(self) -> bool:
        """True once stop() has been called."""
        return self._stopped.is_set()

    def stop(self) -> None:
        """Stop the task: no further calls of the action are started."""
        self._stopped.set()
        self._timer.cancel()


def at(
    action: ScheduledAction,
    context: ActionContext,
    start: datetime,
    interval: timedelta | float = timedelta(0),
) -> ScheduledTask:
    """Run action at start and then every interval until the task is stopped.

    A start in the past is moved forward by whole intervals until it is not.
    A zero interval runs the action once. Naive datetimes are taken as UTC.
    """
    if not isinstance(interval, timedelta):
        interval = timedelta(seconds=interval)
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)

    now = datetime.now(timezone.utc)
    if start < now:
        if interval <= timedelta(0):
            raise ValueError("schedule: start is in the past and there is no interval")
        steps = -((start - now) // interval)
        start = start + steps * interval

    if not context.production():
        context.logf("schedule: action registered for:%s", start)

    delay = (start - now).total_seconds()
    task = ScheduledTask(action, context, delay, interval.total_seconds())
    task._start()
    return task