import os

import pingloop.constants as const


class Session:
    """Identity of this ping run: the ICMP identifier and sequence counter."""

    def __init__(self, identifier=None):
        if identifier is None:
            identifier = os.getpid() & 0xFFFF
        self.identifier = identifier
        self.next_sequence = 0

    def advance(self):
        """Sequence number for the next request; wraps at 65536."""
        seq_num = self.next_sequence
        self.next_sequence = (seq_num + 1) % const.SEQUENCE_MODULUS
        return seq_num
