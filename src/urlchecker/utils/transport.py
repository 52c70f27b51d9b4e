"""Socket-level reachability probes.

A probe is one timed connection attempt to ``host:port``:

* **tcp** -- ``socket.create_connection`` followed by an immediate close.
  Success means the handshake completed within the timeout.
* **udp** -- resolve the endpoint and ``connect()`` a datagram socket.
  UDP is connectionless, so success only means the name resolved and the
  kernel has a route; no packet is exchanged.

Transport errors (``OSError``, which covers ``TimeoutError`` and
``socket.gaierror``, plus the ``UnicodeError`` the IDNA codec raises for
hostnames such as ``a..b``) are the normal negative result of a probe and are
returned as a failed [CheckOutcome][urlchecker.models.results.CheckOutcome],
never raised.

Examples:
    ```python
    from urlchecker.utils.transport import Dialer

    outcome = Dialer().attempt("example.com", "443", "tcp", timeout=3.0)
    outcome.success   # True
    outcome.elapsed   # 0.042
    ```
"""

from __future__ import annotations

import contextlib
import logging
import socket
import time
from typing import Final

from urlchecker.models.constants import Protocol
from urlchecker.models.results import CheckOutcome


DEFAULT_TIMEOUT: Final[float] = 5.0


logger = logging.getLogger(__name__)


def dial(host: str, port: str, protocol: Protocol | str, timeout: float = DEFAULT_TIMEOUT) -> None:
    """Open and immediately close a connection to ``host:port``.

    Raises:
        OSError: On resolution failure, refusal, unreachable network or
            timeout (``TimeoutError`` is an ``OSError`` subclass).
        UnicodeError: If ``host`` cannot be IDNA-encoded (empty label or a
            label longer than 63 characters).
        ValueError: If ``protocol`` is not a supported protocol.
    """
    protocol = Protocol(protocol)

    if protocol == Protocol.TCP:
        with socket.create_connection((host, port), timeout=timeout):
            return

    last_error: OSError | None = None
    for family, socktype, proto, _canonname, sockaddr in socket.getaddrinfo(
        host, port, type=socket.SOCK_DGRAM
    ):
        sock = socket.socket(family, socktype, proto)
        try:
            sock.settimeout(timeout)
            sock.connect(sockaddr)
            return
        except OSError as e:
            last_error = e
        finally:
            with contextlib.suppress(OSError):
                sock.close()

    raise last_error or OSError(f"no addresses found for {host}:{port}")


class Dialer:
    """Performs single timed connection attempts.

    Stateless and safe to share between worker threads. Tests substitute
    any object with a compatible ``attempt`` method.
    """

    def attempt(
        self,
        host: str,
        port: str,
        protocol: Protocol | str,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> CheckOutcome:
        """Dial once and report the outcome with the elapsed time."""
        start = time.monotonic()
        try:
            dial(host, port, protocol, timeout)
        except (OSError, UnicodeError) as e:
            elapsed = time.monotonic() - start
            logger.debug("dial_failed host=%s port=%s protocol=%s error=%s", host, port, protocol, e)
            return CheckOutcome(success=False, elapsed=elapsed, error=str(e) or type(e).__name__)
        return CheckOutcome(success=True, elapsed=time.monotonic() - start)
