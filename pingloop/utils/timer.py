import time

import pingloop.constants as const


class IntervalTimer:
    """Repeating deadline on a monotonic clock.

    The first deadline is due as soon as the timer is armed, later ones every
    `interval` seconds. Intervals missed while the loop was busy are folded
    into a single firing.
    """

    def __init__(self, interval=const.INTERVAL, clock=time.monotonic):
        if interval <= 0:
            raise ValueError('interval must be positive')
        self.interval = interval
        self._clock = clock
        self._deadline = None

    def arm(self):
        self._deadline = self._clock()

    @property
    def armed(self):
        return self._deadline is not None

    def time_left(self):
        """Seconds until the timer is due, None while disarmed."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def due(self):
        return self._deadline is not None and self._clock() >= self._deadline

    def acknowledge(self):
        """Consume the pending firing; returns how many intervals elapsed."""
        if not self.due():
            raise RuntimeError('timer acknowledged before it fired')
        now = self._clock()
        expirations = int((now - self._deadline) // self.interval) + 1
        self._deadline += expirations * self.interval
        return expirations
