"""
Shared fixtures and test doubles for the walk engine tests.

ScriptedTransport records every dispatched batch and hands it to a
handler function, so tests decide per batch whether the "agent" answers,
fails or stays silent. agent_handler() builds a handler that answers
GETNEXT from a MockAgentData view on the event loop thread.
"""

from __future__ import annotations

import pytest

from snmpwalk_config import AgentConfig, VERSION1, VERSION2C
from snmpwalk_core import WalkListener
from snmpwalk_mock import MockAgentData
from snmpwalk_pdu import BatchBuilder
from snmpwalk_transport import WalkTransport
from snmpwalk_types import ErrorStatus, SnmpValue


class ScriptedTransport(WalkTransport):
    def __init__(self, handler=None):
        self.handler = handler
        self.batches = []
        self.channels = []
        self.builder_limits = []
        self.close_calls = 0

    def create_batch_builder(self, limit):
        self.builder_limits.append(limit)
        return BatchBuilder(limit)

    def dispatch(self, batch, channel):
        self.batches.append(batch)
        self.channels.append(channel)
        if self.handler is not None:
            self.handler(batch, channel)

    def close(self):
        self.close_calls += 1

    def batch_oids(self):
        return [[str(oid) for oid in batch.oids] for batch in self.batches]


class RecordingListener(WalkListener):
    def __init__(self):
        self.calls = []

    def on_done(self, walker):
        self.calls.append(('done', None))

    def on_auth_error(self, walker, error):
        self.calls.append(('auth', error))

    def on_protocol_error(self, walker, error):
        self.calls.append(('protocol', error))

    def on_fatal_error(self, walker, error):
        self.calls.append(('fatal', error))

    def on_timeout(self, walker, error):
        self.calls.append(('timeout', error))


def agent_handler(data, version=VERSION2C):
    """Answer each batch from `data` like an SNMP agent would."""

    def handle(batch, channel):
        responses = []
        status, index = ErrorStatus.NO_ERROR, 0
        for position, oid in enumerate(batch.oids, start=1):
            next_oid = data.find_next_oid(oid)
            if next_oid is None:
                if version == VERSION1 and status is ErrorStatus.NO_ERROR:
                    status, index = ErrorStatus.NO_SUCH_NAME, position
                responses.append((oid, SnmpValue.END_OF_MIB))
            else:
                responses.append((next_oid, data.find_value(next_oid)))
        channel.response(responses, status, index)

    return handle


def silent(batch, channel):
    """An agent that never answers."""


@pytest.fixture
def agent():
    return AgentConfig('192.0.2.10', version=VERSION2C, timeout=50, retries=2, max_vars_per_pdu=10)


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def if_table_data():
    """ifDescr/ifType/ifOperStatus for three interfaces, followed by ifMtu."""
    return MockAgentData.from_snmpwalk([
        '.1.3.6.1.2.1.2.2.1.2.1 = STRING: "lo"',
        '.1.3.6.1.2.1.2.2.1.2.2 = STRING: "eth0"',
        '.1.3.6.1.2.1.2.2.1.2.3 = STRING: "eth1"',
        '.1.3.6.1.2.1.2.2.1.3.1 = INTEGER: softwareLoopback(24)',
        '.1.3.6.1.2.1.2.2.1.3.2 = INTEGER: ethernetCsmacd(6)',
        '.1.3.6.1.2.1.2.2.1.3.3 = INTEGER: ethernetCsmacd(6)',
        '.1.3.6.1.2.1.2.2.1.4.1 = INTEGER: 65536',
        '.1.3.6.1.2.1.2.2.1.4.2 = INTEGER: 1500',
        '.1.3.6.1.2.1.2.2.1.4.3 = INTEGER: 1500',
        '.1.3.6.1.2.1.2.2.1.8.1 = INTEGER: up(1)',
        '.1.3.6.1.2.1.2.2.1.8.2 = INTEGER: up(1)',
        '.1.3.6.1.2.1.2.2.1.8.3 = INTEGER: down(2)',
    ])


IF_DESCR = '.1.3.6.1.2.1.2.2.1.2'
IF_TYPE = '.1.3.6.1.2.1.2.2.1.3'
IF_OPER_STATUS = '.1.3.6.1.2.1.2.2.1.8'
