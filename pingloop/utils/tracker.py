import enum
import logging
from collections import namedtuple

import pingloop.constants as const


LOG = logging.getLogger(__name__)


class Outcome(enum.Enum):
    PENDING = 'pending'
    MATCHED = 'matched'
    TIMED_OUT = 'timed-out'


PendingExchange = namedtuple('PendingExchange', ['seq_num', 'sent_at', 'outcome'])


def seq_distance(newer, older):
    """How many sends `older` lies behind `newer`, modulo the 16-bit wrap."""
    return (newer - older) % const.SEQUENCE_MODULUS


class ExchangeTracker:
    """Ring of the last `window` echo requests still waiting for a reply.

    Slots are indexed by send ordinal modulo `window`. Before the sequence
    counter first wraps that is the same as ``seq_num % window``; after it,
    the ordinal keeps consecutive sequences in distinct slots even though
    65536 is not a multiple of the window.
    """

    def __init__(self, window=const.WINDOW):
        if window < 1:
            raise ValueError('window must be positive')
        self.window = window
        self._slots = [None] * window
        self._sent = 0
        self.current_sequence = None
        self.last_evicted = None

    def _slot_index(self, ordinal):
        return ordinal % self.window

    def _locate(self, seq_num):
        if self.current_sequence is None:
            return None
        distance = seq_distance(self.current_sequence, seq_num)
        if distance >= self.window or distance >= self._sent:
            return None
        return self._slot_index(self._sent - 1 - distance)

    def record_send(self, seq_num, now):
        """Remember that `seq_num` went out at `now`.

        Returns ``(evicted, evicted_seq)``. When the slot still held an
        unanswered request, that request is declared timed out and its
        sequence number is returned so the caller can report it.
        """
        index = self._slot_index(self._sent)
        previous = self._slots[index]
        evicted, evicted_seq = False, None
        if previous is not None and previous.outcome is Outcome.PENDING:
            self.last_evicted = previous._replace(outcome=Outcome.TIMED_OUT)
            evicted, evicted_seq = True, previous.seq_num
            LOG.debug('Evicted seq=%d for seq=%d', evicted_seq, seq_num)

        self._slots[index] = PendingExchange(seq_num, now, Outcome.PENDING)
        self._sent += 1
        self.current_sequence = seq_num
        return evicted, evicted_seq

    def record_reply(self, seq_num, now):
        """Match a reply; returns the round trip in `now` units or None.

        Too old, not yet sent and already answered sequences are all rejected
        the same way.
        """
        index = self._locate(seq_num)
        if index is None:
            return None
        slot = self._slots[index]
        if slot is None or slot.seq_num != seq_num or slot.outcome is not Outcome.PENDING:
            return None

        self._slots[index] = slot._replace(outcome=Outcome.MATCHED)
        return now - slot.sent_at

    def get(self, seq_num):
        """Bookkeeping for `seq_num` inside the window, or its timed-out record
        if it was the most recent eviction.
        """
        index = self._locate(seq_num)
        if index is not None:
            return self._slots[index]
        if self.last_evicted is not None and self.last_evicted.seq_num == seq_num:
            return self.last_evicted
        return None
