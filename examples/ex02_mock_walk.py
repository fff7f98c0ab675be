#!/usr/bin/env python3
"""
Example 02: Offline Walk with a Mock Agent
==========================================
Demonstrates TableWalker driven by MockTransport, which answers from a
saved `snmpwalk -On` dump instead of the network.

The walker is used directly here so the listener and the WalkResult can
be shown:
  - WalkListener.on_done / on_timeout / ... fire exactly once per walk
  - WalkResult carries the terminal state, the error and the number of
    requests sent

The second walk lowers max-vars-per-pdu and makes the mock agent reject
batches above 2 OIDs with tooBig, so the walker halves its batch size
and carries on.

Usage:
    python ex02_mock_walk.py [snmpwalk_dump_file]
"""

import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))
from snmpwalk_config import AgentConfig, VERSION2C
from snmpwalk_core import TableWalker, WalkListener
from snmpwalk_mock import MockAgentData, MockTransport
from snmpwalk_tracker import TableTracker


DUMP_FILE = sys.argv[1] if len(sys.argv) > 1 else None

IF_TABLE_DUMP = [
    '.1.3.6.1.2.1.2.2.1.2.1 = STRING: "lo"',
    '.1.3.6.1.2.1.2.2.1.2.2 = STRING: "eth0"',
    '.1.3.6.1.2.1.2.2.1.2.3 = STRING: "eth1"',
    '.1.3.6.1.2.1.2.2.1.3.1 = INTEGER: softwareLoopback(24)',
    '.1.3.6.1.2.1.2.2.1.3.2 = INTEGER: ethernetCsmacd(6)',
    '.1.3.6.1.2.1.2.2.1.3.3 = INTEGER: ethernetCsmacd(6)',
    '.1.3.6.1.2.1.2.2.1.5.1 = Gauge32: 10000000',
    '.1.3.6.1.2.1.2.2.1.5.2 = Gauge32: 1000000000',
    '.1.3.6.1.2.1.2.2.1.5.3 = Gauge32: 1000000000',
    '.1.3.6.1.2.1.2.2.1.8.1 = INTEGER: up(1)',
    '.1.3.6.1.2.1.2.2.1.8.2 = INTEGER: up(1)',
    '.1.3.6.1.2.1.2.2.1.8.3 = INTEGER: down(2)',
]

COLUMNS = {
    'ifDescr':      '.1.3.6.1.2.1.2.2.1.2',
    'ifType':       '.1.3.6.1.2.1.2.2.1.3',
    'ifSpeed':      '.1.3.6.1.2.1.2.2.1.5',
    'ifOperStatus': '.1.3.6.1.2.1.2.2.1.8',
}


class PrintingListener(WalkListener):
    def on_done(self, walker):
        print(f"  -> {walker.name}: done after {walker.dispatch_count} requests")

    def on_timeout(self, walker, error):
        print(f"  -> {walker.name}: timed out ({error})")

    def on_protocol_error(self, walker, error):
        print(f"  -> {walker.name}: protocol error ({error})")


async def run_walk(name, agent, data, too_big_above=None):
    tracker = TableTracker(COLUMNS.values())
    transport = MockTransport(agent, data, too_big_above=too_big_above)

    async with TableWalker(agent, tracker, transport, name=name, listener=PrintingListener()) as walker:
        result = await walker.walk()

    print(f"  State: {result.state.value}, requests: {result.dispatch_count}, final batch limit: {walker.limit}")
    for batch in transport.batches:
        print(f"    sent {batch}")
    print()

    header = "  " + "".join(f"{column:<16}" for column in COLUMNS)
    print(header)
    for row in tracker.rows().values():
        print("  " + "".join(f"{str(row.get(oid, '-')):<16}" for oid in tracker.columns))


async def main():
    data = MockAgentData.load(DUMP_FILE) if DUMP_FILE else MockAgentData.from_snmpwalk(IF_TABLE_DUMP)
    print(f"Mock agent holds {len(data)} values")
    print()

    # ------------------------------------------------------------------
    # Walk 1: all four columns fit in one request.
    # ------------------------------------------------------------------
    print("=== Walk: ifTable, 10 OIDs per request ===")
    agent = AgentConfig('192.0.2.1', version=VERSION2C, timeout=1000, max_vars_per_pdu=10)
    await run_walk('ifTable', agent, data)

    print()

    # ------------------------------------------------------------------
    # Walk 2: the agent answers tooBig above 2 OIDs.
    # ------------------------------------------------------------------
    print("=== Walk: ifTable, agent limited to 2 OIDs per request ===")
    agent = AgentConfig('192.0.2.1', version=VERSION2C, timeout=1000, retries=2, max_vars_per_pdu=4)
    await run_walk('ifTable-small', agent, data, too_big_above=2)


if __name__ == '__main__':
    logging.basicConfig(level=logging.WARNING, format='%(levelname)s - %(name)s - %(message)s')
    asyncio.run(main())
