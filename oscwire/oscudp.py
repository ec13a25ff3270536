#!/usr/bin/env python3
# -*- encoding: utf-8 -*-
# File: oscwire/oscudp.py
# <pep8 compliant>
"""UDP transmission of OSC packets.

One UDP datagram transports exactly one OSC packet, no retry nor
acknowledgment is done.

Sending sockets are kept in a :class:`UdpSocketPool` created and closed
by the caller, and shared among :class:`UdpSender` objects.
Reading is done by a :class:`UdpReader` bound to a local port, polled by
the caller with its :meth:`UdpReader.receive` method.
"""

import collections
import socket
import threading
import time

from .oscbuildparse import (OSCMessage, OSCError, encode_packet,
                            decode_packet, wrap_arguments)
from .oscmsglog import INBOUND, OUTBOUND

__all__ = [
    "UdpSocketPool",
    "UdpSender",
    "UdpReader",
    "ReceivedPacket",
    "resolve_address",
    ]

# Maximum packet read in one call (maximum UDP datagram payload).
UDPREAD_BUFSIZE = 65535

ReceivedPacket = collections.namedtuple("ReceivedPacket",
                                        "packet source readtime")


def resolve_address(host, port, family=0):
    """Find socket family and address for a host/port, IPV4 preferred.

    :param host: DNS name or IPV4 or IPV6 address.
    :type host: str
    :param port: port number.
    :type port: int
    :param family: protocol family to restrict addresses (AF_INET or
        AF_INET6), default to 0 for all families.
    :type family: int
    :return: socket family and socket address
    :rtype: (int, tuple)
    """
    infos = socket.getaddrinfo(host, port, family, socket.SOCK_DGRAM,
                               socket.IPPROTO_UDP)
    for info in infos:
        if info[0] == socket.AF_INET:
            return info[0], info[4]
    return infos[0][0], infos[0][4]


class UdpSocketPool(object):
    """Sending sockets, one by protocol family.

    :ivar udpwrite_reuseaddr: flag to enable ioctl settings for reuse of
        socket address.
        Default to False.
    :type udpwrite_reuseaddr: bool
    :ivar udpwrite_ttl: time to leave counter for packets.
        Default to None (use OS socket default).
    :type udpwrite_ttl: int
    :ivar udpwrite_outport: number of port to bind the sockets locally.
        Default to 0 (auto-select).
    :type udpwrite_outport: int
    :ivar logger: Python logger to trace activity.
        Default to None
    :type logger: logging.Logger
    """
    def __init__(self, options=None, logger=None):
        if options is None:
            options = {}
        self.udpwrite_reuseaddr = options.get('udpwrite_reuseaddr', False)
        self.udpwrite_ttl = options.get('udpwrite_ttl', None)
        self.udpwrite_outport = options.get('udpwrite_outport', 0)
        self.logger = logger
        self._sockets = {}
        self._lock = threading.Lock()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def get_socket(self, family):
        """Return the sending socket for a protocol family, create it if
        necessary.

        :param family: AF_INET or AF_INET6
        :type family: int
        :rtype: socket.socket
        """
        with self._lock:
            sock = self._sockets.get(family, None)
            if sock is not None:
                return sock
            sock = socket.socket(family, socket.SOCK_DGRAM)
            try:
                if self.udpwrite_reuseaddr:
                    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                if self.udpwrite_ttl is not None:
                    if family == socket.AF_INET6:
                        sock.setsockopt(socket.IPPROTO_IPV6,
                                socket.IPV6_UNICAST_HOPS, self.udpwrite_ttl)
                    else:
                        sock.setsockopt(socket.IPPROTO_IP, socket.IP_TTL,
                                        self.udpwrite_ttl)
                if self.udpwrite_outport:
                    anyaddr = "::" if family == socket.AF_INET6 else "0.0.0.0"
                    sock.bind((anyaddr, self.udpwrite_outport))
            except OSError:
                sock.close()
                raise
            self._sockets[family] = sock
        if self.logger is not None:
            self.logger.info("OSC UDP pool opened socket for family %r.",
                             family)
        return sock

    def close(self):
        """Close all sockets of the pool.
        """
        with self._lock:
            sockets = list(self._sockets.values())
            self._sockets.clear()
        for sock in sockets:
            try:
                sock.close()
            except OSError:
                if self.logger is not None:
                    self.logger.exception("OSC UDP pool failure during "
                                          "socket close")
        if sockets and self.logger is not None:
            self.logger.info("OSC UDP pool closed %d socket(s).",
                             len(sockets))


class UdpSender(object):
    """Send OSC packets to one host/port.

    :ivar pool: sockets pool used to send datagrams.
    :type pool: UdpSocketPool
    :ivar oob: out of band options for packets encoding.
    :type oob: dict
    :ivar msglog: log where sent messages are stored, or None.
    :type msglog: MessageLog
    """
    def __init__(self, host, port, pool, oob=None, logger=None, msglog=None):
        self.udpwrite_host = host
        self.udpwrite_port = port
        self.pool = pool
        self.oob = oob if oob is not None else {}
        self.logger = logger
        self.msglog = msglog
        self.family, self.sockaddr = resolve_address(host, port)

    def send_raw(self, rawoscdata):
        """Send already encoded packet data.

        :return: count of bytes sent.
        :rtype: int
        """
        sock = self.pool.get_socket(self.family)
        count = sock.sendto(rawoscdata, self.sockaddr)
        if self.logger is not None:
            self.logger.debug("OSC UDP sent %d bytes to %s", count,
                              self.sockaddr)
        return count

    def send_packet(self, packet):
        """Encode and send a packet.

        :param packet: message or bundle to send.
        :type packet: OSCMessage or OSCBundle
        :return: count of bytes sent.
        :rtype: int
        """
        count = self.send_raw(encode_packet(packet, self.oob))
        if self.msglog is not None:
            self.msglog.add_packet(packet, OUTBOUND, self.sockaddr[:2])
        return count

    def send_message(self, addrpattern, *values):
        """Build a message from Python values and send it.

        :param addrpattern: address of the message.
        :type addrpattern: str
        :param values: arguments, OSC values or Python values converted with
            :func:`wrap_arguments`.
        :return: count of bytes sent.
        :rtype: int
        """
        return self.send_packet(OSCMessage(addrpattern,
                                           wrap_arguments(values)))


class UdpReader(object):
    """Receive OSC packets on a local UDP port.

    :ivar udpread_host: address of host to bind. Can be a DNS name or an IPV4
        or IPV6 address.
    :type udpread_host: str
    :ivar udpread_port: number of port to bind, 0 to let the system choose
        one (see :attr:`address` once opened).
    :type udpread_port: int
    :ivar udpread_buffersize: maximum bytes size in one read call.
        Default 65535 to read any datagram.
    :type udpread_buffersize: int
    :ivar udpread_reuseaddr: flag to enable ioctl settings for reuse of
        socket address
        Default to True.
    :type udpread_reuseaddr: bool
    :ivar oob: out of band options for packets decoding.
    :type oob: dict
    :ivar msglog: log where received messages are stored, or None.
    :type msglog: MessageLog
    """
    def __init__(self, host, port, options=None, oob=None, logger=None,
                 msglog=None):
        if options is None:
            options = {}
        self.udpread_host = host
        self.udpread_port = port
        self.udpread_buffersize = options.get('udpread_buffersize',
                                              UDPREAD_BUFSIZE)
        self.udpread_reuseaddr = options.get('udpread_reuseaddr', True)
        self.oob = oob if oob is not None else {}
        self.logger = logger
        self.msglog = msglog
        self.udpsock = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    @property
    def address(self):
        """Local address the reader is bound to, None if not opened."""
        if self.udpsock is None:
            return None
        return self.udpsock.getsockname()

    def open(self):
        if self.udpsock is not None:
            if self.logger is not None:
                self.logger.debug("OSC UDP reader already opened.")
            return
        family, sockaddr = resolve_address(self.udpread_host,
                                           self.udpread_port)
        sock = socket.socket(family, socket.SOCK_DGRAM)
        try:
            if self.udpread_reuseaddr:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind(sockaddr)
        except OSError:
            sock.close()
            raise
        self.udpsock = sock
        if self.logger is not None:
            self.logger.info("OSC UDP reader bound to %s.", self.address)

    def close(self):
        if self.udpsock is None:
            return
        sock, self.udpsock = self.udpsock, None
        try:
            sock.close()
        except OSError:
            if self.logger is not None:
                self.logger.exception("OSC UDP reader failure during close")
            return
        if self.logger is not None:
            self.logger.info("OSC UDP reader closed.")

    def receive(self, timeout=None):
        """Wait for one datagram and decode it.

        :param timeout: maximum time to wait in seconds, None to wait
            forever, 0 to just poll.
        :type timeout: float
        :return: the decoded packet with its source and reception time, or
            None if nothing was received or the packet was refused.
        :rtype: ReceivedPacket
        """
        if self.udpsock is None:
            raise RuntimeError("OSC UDP reader must be opened before "
                               "receiving")
        self.udpsock.settimeout(timeout)
        try:
            rawoscdata, source = self.udpsock.recvfrom(
                                                self.udpread_buffersize)
        except (socket.timeout, BlockingIOError):
            return None
        readtime = time.time()
        # Keep (hostname, port) even with IPV6.
        source = source[:2]
        if self.logger is not None:
            self.logger.debug("OSC UDP reader received %d bytes from %s",
                              len(rawoscdata), source)
        try:
            packet = decode_packet(rawoscdata, self.oob)
        except OSCError:
            if self.logger is not None:
                self.logger.exception("OSC UDP reader refused packet from "
                                      "%s", source)
            return None
        if self.msglog is not None:
            self.msglog.add_packet(packet, INBOUND, source, readtime)
        return ReceivedPacket(packet, source, readtime)
