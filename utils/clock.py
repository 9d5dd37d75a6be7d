from datetime import datetime, timedelta


class SystemClock:
    """Wall clock (naive UTC, like every timestamp column)."""

    def now(self):
        return datetime.utcnow()


class FixedClock:
    """Clock pinned to a given instant; advance() moves it forward."""

    def __init__(self, at):
        self._at = at

    def now(self):
        return self._at

    def advance(self, **delta):
        self._at = self._at + timedelta(**delta)
        return self._at


def start_of_day(moment):
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)
