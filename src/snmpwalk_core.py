# Copyright 2026 Albedo Telecom
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0
#!/usr/bin/env python3

"""
SNMP Table Walk Engine

Walks multi-column tables by sending bounded GETNEXT/GETBULK batches and
feeding the answers to a tracker until every column is exhausted.
Built on asyncio; responses may be delivered from any thread.

Example:
    >>> import asyncio
    >>> from snmpwalk_config import AgentConfig
    >>> from snmpwalk_core import walk_columns
    >>>
    >>> async def main():
    ...     agent = AgentConfig('192.168.1.100', version=2)
    ...     tracker = await walk_columns(agent, ['.1.3.6.1.2.1.2.2.1.2'])
    ...     for instance, row in tracker.rows().items():
    ...         print(instance, row)
    >>>
    >>> asyncio.run(main())
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from enum import Enum

from snmpwalk_config import WalkPolicy
from snmpwalk_errors import AuthError, FatalError, ProtocolError, WalkTimeoutError
from snmpwalk_mib_core import MibResolver
from snmpwalk_pdu import Verdict, classify_response
from snmpwalk_tracker import TableTracker
from snmpwalk_transport import PySnmpTransport
from snmpwalk_types import ErrorStatus


class WalkState(Enum):
    INIT              = 'init'
    BUILDING          = 'building'
    AWAITING_RESPONSE = 'awaiting-response'
    PROCESSING        = 'processing'
    RETRY_WAIT        = 'retry-wait'
    DONE              = 'done'
    ERROR_AUTH        = 'error-auth'
    ERROR_PROTOCOL    = 'error-protocol'
    ERROR_FATAL       = 'error-fatal'
    ERROR_TIMEOUT     = 'error-timeout'

    @property
    def is_terminal(self):
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset({
    WalkState.DONE,
    WalkState.ERROR_AUTH,
    WalkState.ERROR_PROTOCOL,
    WalkState.ERROR_FATAL,
    WalkState.ERROR_TIMEOUT,
})


class WalkListener:
    """
    Terminal notifications for a walk.

    Exactly one of these methods is called per walk. Override the ones
    you care about; the defaults do nothing.
    """

    def on_done(self, walker):
        pass

    def on_auth_error(self, walker, error):
        pass

    def on_protocol_error(self, walker, error):
        pass

    def on_fatal_error(self, walker, error):
        pass

    def on_timeout(self, walker, error):
        pass


@dataclass
class WalkResult:
    """Outcome of a finished walk."""
    name: str
    state: WalkState
    error: Exception = None
    dispatch_count: int = 0

    @property
    def succeeded(self):
        return self.state is WalkState.DONE

    @property
    def failed(self):
        return not self.succeeded

    @property
    def timed_out(self):
        return self.state is WalkState.ERROR_TIMEOUT

    @property
    def error_message(self):
        return str(self.error) if self.error is not None else None

    def raise_for_error(self):
        if self.error is not None:
            raise self.error


class ResponseChannel:
    """
    Reply handle for one dispatched batch.

    Transports call exactly one of response(), auth_error(), error(),
    fatal() or timeout(). Every method is thread-safe; only the first call
    (including the engine's own timeout timer) is delivered, the rest are
    dropped. Delivery happens on the walker's event loop.
    """

    def __init__(self, walker, dispatch_id, batch):
        self._walker = walker
        self.dispatch_id = dispatch_id
        self.batch = batch
        self._lock = threading.Lock()
        self._resolved = False

    @property
    def resolved(self):
        with self._lock:
            return self._resolved

    def _claim(self):
        with self._lock:
            if self._resolved:
                return False
            self._resolved = True
            return True

    def _deliver(self, handler, *args):
        if not self._claim():
            self._walker.logger.debug(
                f"Dispatch {self.dispatch_id} already resolved; dropping {handler.__name__}"
            )
            return False
        self._walker._post(self, handler, *args)
        return True

    def response(self, varbinds, error_status=ErrorStatus.NO_ERROR, error_index=0):
        """
        Deliver an agent response.

        Args:
            varbinds (list): (oid, SnmpValue) pairs in response order
            error_status (ErrorStatus|int): PDU error-status
            error_index (int): 1-based index of the offending varbind
        """
        return self._deliver(self._walker._on_response, list(varbinds), error_status, error_index)

    def auth_error(self, message):
        return self._deliver(self._walker._on_auth_error, message)

    def error(self, message):
        """Deliver a protocol failure reported by the SNMP stack."""
        return self._deliver(self._walker._on_error, message)

    def fatal(self, exc):
        return self._deliver(self._walker._on_fatal, exc)

    def timeout(self, message):
        return self._deliver(self._walker._on_timeout, message)


class TableWalker:
    """
    Walk engine for one agent.

    Holds at most one batch in flight. Timeouts and tooBig responses are
    retried up to agent.retries times per batch; every other failure ends
    the walk. The listener hears about the end exactly once.

    Example:
        >>> tracker = TableTracker(['.1.3.6.1.2.1.2.2.1.2'])
        >>> async with TableWalker(agent, tracker, PySnmpTransport(agent)) as walker:
        ...     result = await walker.walk()
        >>> result.succeeded
        True
    """

    def __init__(self, agent, tracker, transport, name='walk', logger=None,
                 listener=None, policy=None):
        """
        Args:
            agent (AgentConfig): target agent; timeout, retries, batch limit
                and version are read from it
            tracker (CollectionTracker): column progress strategy
            transport (WalkTransport): sends batches and reports on their channels
            name (str): walk name used in logs and results
            logger (logging.Logger): logger to use; defaults to 'snmpwalk.<name>'
            listener (WalkListener): terminal notifications
            policy (WalkPolicy): retry delay and tooBig shrink tunables
        """
        self.agent = agent
        self.tracker = tracker
        self.transport = transport
        self.name = name
        self.logger = logger or logging.getLogger(f'snmpwalk.{name}')
        self.listener = listener or WalkListener()
        self.policy = policy or WalkPolicy()

        self._state = WalkState.INIT
        self._loop = None
        self._builder = None
        self._limit = agent.max_vars_per_pdu
        self._batch = None
        self._retries = 0
        self._channel = None
        self._timer = None
        self._retry_handle = None
        self._dispatch_count = 0
        self._result_future = None
        self._result = None

    @property
    def state(self):
        return self._state

    @property
    def finished(self):
        return self._state.is_terminal

    @property
    def dispatch_count(self):
        return self._dispatch_count

    @property
    def limit(self):
        """Current batch size limit (shrinks after tooBig)."""
        return self._limit

    @property
    def result(self):
        return self._result

    async def start(self):
        """Send the first batch. Must be awaited inside the loop that will run the walk."""
        if self._state is not WalkState.INIT:
            raise RuntimeError(f"Walk '{self.name}' has already been started")
        self._loop = asyncio.get_running_loop()
        self._result_future = self._loop.create_future()
        self.logger.info(f"Walking {self.name} on {self.agent.address} ({self.agent.version_as_string})")
        try:
            self._builder = self.transport.create_batch_builder(self._limit)
            if self.tracker.is_finished():
                self._finish(WalkState.DONE)
                return
            self._build_and_send()
        except Exception as e:
            self._fatal(e)

    async def wait(self, timeout=None):
        """
        Wait for the walk to reach a terminal state.

        Args:
            timeout (float): seconds to wait; None waits forever

        Returns:
            WalkResult
        """
        if self._result is not None:
            return self._result
        if self._result_future is None:
            raise RuntimeError(f"Walk '{self.name}' has not been started")
        return await asyncio.wait_for(asyncio.shield(self._result_future), timeout)

    async def walk(self):
        """Start the walk and wait for it to finish."""
        await self.start()
        return await self.wait()

    async def close(self):
        """
        Abort the walk if it is still running and release its resources.

        Closing a finished walk does nothing.
        """
        if self._state.is_terminal:
            return
        self._finish(WalkState.ERROR_FATAL, FatalError(f"Walk '{self.name}' aborted"))

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    # -- batch assembly and dispatch (event loop only) --

    def _assemble(self, oids):
        self._builder.reset()
        for oid in oids:
            self._builder.add_oid(oid)
        if self.agent.supports_bulk:
            self._builder.set_non_repeaters(0)
            self._builder.set_max_repetitions(self.agent.max_repetitions)
        return self._builder.build()

    def _build_and_send(self):
        self._state = WalkState.BUILDING
        oids = self.tracker.next_batch(self._limit)
        if not oids:
            if self.tracker.is_finished():
                self._finish(WalkState.DONE)
            else:
                self._fatal(FatalError(
                    f"Tracker for '{self.name}' has no OIDs to request but is not finished"
                ))
            return
        self._batch = self._assemble(oids)
        self._retries = 0
        self._dispatch()

    def _dispatch(self):
        self._dispatch_count += 1
        channel = ResponseChannel(self, self._dispatch_count, self._batch)
        self._channel = channel
        self._state = WalkState.AWAITING_RESPONSE
        self._timer = self._loop.call_later(
            self.agent.timeout / 1000.0,
            channel.timeout,
            f"No response from {self.agent.address} within {self.agent.timeout} ms",
        )
        self.logger.debug(
            f"Dispatch {channel.dispatch_id}: {len(self._batch)} OIDs "
            f"(limit {self._limit}, attempt {self._retries + 1})"
        )
        self.transport.dispatch(self._batch, channel)

    def _post(self, channel, handler, *args):
        try:
            self._loop.call_soon_threadsafe(self._run_handler, channel, handler, *args)
        except RuntimeError:
            # loop already closed: the walk is long over
            self.logger.debug(f"Dropped {handler.__name__} for dispatch {channel.dispatch_id}: loop closed")

    def _run_handler(self, channel, handler, *args):
        if self._state.is_terminal or channel is not self._channel:
            self.logger.debug(f"Ignoring stale {handler.__name__} for dispatch {channel.dispatch_id}")
            return
        self._cancel_timer()
        self._channel = None
        try:
            handler(*args)
        except Exception as e:
            self._fatal(e)

    def _retry(self):
        self._retry_handle = None
        if self._state.is_terminal:
            return
        try:
            self._dispatch()
        except Exception as e:
            self._fatal(e)

    # -- event handlers (event loop only, one at a time) --

    def _on_response(self, varbinds, error_status, error_index):
        self._state = WalkState.PROCESSING
        self.logger.debug(f"Response with {len(varbinds)} varbinds for batch {self._batch}")
        classification = classify_response(
            self.agent.version, error_status, error_index, self._batch, varbinds
        )

        if classification.verdict is Verdict.SHRINK_AND_RETRY:
            if self._retries >= self.agent.retries:
                self._finish(WalkState.ERROR_PROTOCOL, ProtocolError(
                    f"{classification.message}; no retries left",
                    classification.error_status, classification.error_index,
                ))
                return
            self._retries += 1
            self._limit = self.policy.shrink(self._limit)
            self.logger.warning(
                f"{classification.message} from {self.agent.address}; "
                f"retrying with limit {self._limit} ({self._retries}/{self.agent.retries})"
            )
            self._builder = self.transport.create_batch_builder(self._limit)
            oids = self.tracker.next_batch(self._limit)
            if not oids:
                self._fatal(FatalError(f"Tracker for '{self.name}' returned no OIDs to retry"))
                return
            self._batch = self._assemble(oids)
            self._dispatch()
            return

        if classification.verdict is Verdict.PROTOCOL_ERROR:
            self._finish(WalkState.ERROR_PROTOCOL, ProtocolError(
                classification.message, classification.error_status, classification.error_index,
            ))
            return

        for result in classification.results:
            self.tracker.record_result(result.oid, result.value, result.exhausted)

        if self.tracker.is_finished():
            self._finish(WalkState.DONE)
        else:
            self._build_and_send()

    def _on_timeout(self, message):
        if self._retries < self.agent.retries:
            self._retries += 1
            self.logger.warning(f"{message}; retry {self._retries}/{self.agent.retries}")
            if self.policy.retry_delay > 0:
                self._state = WalkState.RETRY_WAIT
                self._retry_handle = self._loop.call_later(self.policy.retry_delay, self._retry)
            else:
                self._dispatch()
            return
        self._finish(WalkState.ERROR_TIMEOUT, WalkTimeoutError(
            f"{message} after {self._retries + 1} attempts"
        ))

    def _on_auth_error(self, message):
        self._finish(WalkState.ERROR_AUTH, AuthError(message))

    def _on_error(self, message):
        self._finish(WalkState.ERROR_PROTOCOL, ProtocolError(message))

    def _on_fatal(self, exc):
        self._fatal(exc)

    def _fatal(self, exc):
        if not isinstance(exc, FatalError):
            exc = FatalError(f"Unexpected error in walk '{self.name}': {exc!r}", cause=exc)
        self._finish(WalkState.ERROR_FATAL, exc)

    # -- termination --

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _finish(self, state, error=None):
        if self._state.is_terminal:
            return
        self._state = state
        self._cancel_timer()
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None
        self._channel = None

        if error is None:
            self.logger.info(f"Walk {self.name} of {self.agent.address} complete after {self._dispatch_count} batches")
        else:
            self.logger.error(f"Walk {self.name} of {self.agent.address} ended in {state.value}: {error}")

        try:
            self.transport.close()
        except Exception:
            self.logger.exception(f"Error closing transport for walk {self.name}")

        self._result = WalkResult(self.name, state, error, self._dispatch_count)
        self._notify(state, error)
        if self._result_future is not None and not self._result_future.done():
            self._result_future.set_result(self._result)

    def _notify(self, state, error):
        try:
            if state is WalkState.DONE:
                self.listener.on_done(self)
            elif state is WalkState.ERROR_AUTH:
                self.listener.on_auth_error(self, error)
            elif state is WalkState.ERROR_PROTOCOL:
                self.listener.on_protocol_error(self, error)
            elif state is WalkState.ERROR_TIMEOUT:
                self.listener.on_timeout(self, error)
            else:
                self.listener.on_fatal_error(self, error)
        except Exception:
            self.logger.exception(f"Listener for walk {self.name} raised on {state.value}")


# Convenience functions for quick walks
async def walk_columns(agent, columns, transport=None, name=None, max_rows=None,
                       logger=None, listener=None, policy=None):
    """
    Walk a set of table columns and return the filled tracker.

    Uses a PySnmpTransport for the agent unless a transport is given.

    Raises:
        WalkError: the walk's terminal error, if it did not complete

    Example:
        >>> tracker = await walk_columns(agent, ['.1.3.6.1.2.1.2.2.1.2', '.1.3.6.1.2.1.2.2.1.8'])
        >>> tracker.rows()
    """
    tracker = TableTracker(columns, max_rows=max_rows)
    if transport is None:
        transport = PySnmpTransport(agent, logger=logger)
    walker = TableWalker(agent, tracker, transport, name=name or 'columns',
                         logger=logger, listener=listener, policy=policy)
    async with walker:
        result = await walker.walk()
    result.raise_for_error()
    return tracker


async def walk_table(agent, mib_name, table_name, transport=None, resolver=None, **kwargs):
    """
    Walk every accessible column of a MIB table by name.

    Example:
        >>> tracker = await walk_table(agent, 'SNMPv2-MIB', 'sysORTable')
    """
    resolver = resolver or MibResolver(logger=kwargs.get('logger'))
    columns = resolver.table_columns(mib_name, table_name)
    kwargs.setdefault('name', f"{mib_name}::{table_name}")
    return await walk_columns(agent, columns, transport, **kwargs)


# Test script
if __name__ == "__main__":
    import sys
    from snmpwalk_config import AgentConfig, VERSION2C

    async def run_walk(ip, columns):
        agent = AgentConfig(ip, version=VERSION2C)
        tracker = await walk_columns(agent, columns)
        for instance, row in tracker.rows().items():
            print(f"{instance}: " + ", ".join(f"{col}={val}" for col, val in row.items()))

    if len(sys.argv) < 3:
        print("Usage: python snmpwalk_core.py <device_ip> <column_oid> [<column_oid> ...]")
        print("Example: python snmpwalk_core.py 192.168.1.100 .1.3.6.1.2.1.2.2.1.2 .1.3.6.1.2.1.2.2.1.8")
        sys.exit(1)

    logging.basicConfig(level=logging.INFO, format='%(levelname)s - %(message)s')
    asyncio.run(run_walk(sys.argv[1], sys.argv[2:]))
