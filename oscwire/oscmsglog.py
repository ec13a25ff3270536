#!/usr/bin/env python3
# -*- encoding: utf-8 -*-
# File: oscwire/oscmsglog.py
# <pep8 compliant>
"""Keep track of recently received and sent OSC messages.

The log is in memory only, with a maximum size: oldest messages are
forgotten when new ones are added. It can be shared among threads.
"""

import collections
import threading
import time

from .oscbuildparse import OSC_IMMEDIATELY, unbundle

__all__ = [
    "MessageLog",
    "LoggedMessage",
    "INBOUND",
    "OUTBOUND",
    ]

INBOUND = "inbound"
OUTBOUND = "outbound"

# Maximum count of messages kept by default.
MSGLOG_MAXLEN = 1000

LoggedMessage = collections.namedtuple("LoggedMessage",
                            "message direction source readtime timetag")


class MessageLog(object):
    """Bounded log of OSC messages.

    :ivar maxlen: maximum count of messages kept.
    :type maxlen: int
    :ivar logger: Python logger to trace activity.
        Default to None
    :type logger: logging.Logger
    """
    def __init__(self, maxlen=MSGLOG_MAXLEN, logger=None):
        self.maxlen = maxlen
        self.logger = logger
        self._messages = collections.deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def __len__(self):
        return len(self._messages)

    def add(self, message, direction=INBOUND, source=None, readtime=None,
            timetag=OSC_IMMEDIATELY):
        """Store a message.

        :param message: the message to store.
        :type message: OSCMessage
        :param direction: INBOUND or OUTBOUND
        :type direction: str
        :param source: identification of the peer (generally an
            (address, port) tuple).
        :param readtime: time() when the message has been read or sent,
            default to now.
        :type readtime: float
        :param timetag: time tag of the bundle containing the message.
        :type timetag: OSCtimetag
        :return: the stored log entry
        :rtype: LoggedMessage
        """
        if direction not in (INBOUND, OUTBOUND):
            raise ValueError("OSC message log direction must be {!r} or "
                             "{!r}".format(INBOUND, OUTBOUND))
        if readtime is None:
            readtime = time.time()
        entry = LoggedMessage(message, direction, source, readtime, timetag)
        with self._lock:
            self._messages.append(entry)
        if self.logger is not None:
            self.logger.debug("OSC log %s message %s from/to %s",
                              direction, message.addrpattern, source)
        return entry

    def add_packet(self, packet, direction=INBOUND, source=None,
                   readtime=None):
        """Store all messages of a packet, bundles are flattened.

        :return: count of stored messages
        :rtype: int
        """
        if readtime is None:
            readtime = time.time()
        count = 0
        for timetag, message in unbundle(packet):
            self.add(message, direction, source, readtime, timetag)
            count += 1
        return count

    def get_messages(self, limit=10, since=None, addrfilter=None,
                     direction=None):
        """Return stored messages, oldest first.

        :param limit: maximum count of messages returned (the most recent
            ones), None for all.
        :type limit: int
        :param since: only messages with readtime >= since.
        :type since: float
        :param addrfilter: only messages whose address pattern contains
            this string.
        :type addrfilter: str
        :param direction: only messages with this direction.
        :type direction: str
        :rtype: [ LoggedMessage ]
        """
        with self._lock:
            entries = list(self._messages)
        if since is not None:
            entries = [e for e in entries if e.readtime >= since]
        if addrfilter:
            entries = [e for e in entries
                       if addrfilter in e.message.addrpattern]
        if direction is not None:
            entries = [e for e in entries if e.direction == direction]
        if limit is not None:
            entries = entries[-limit:] if limit > 0 else []
        return entries

    def clear(self):
        with self._lock:
            self._messages.clear()
