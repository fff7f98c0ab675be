#!/usr/bin/env python3
"""
Example 01: Table Walk
======================
Demonstrates walk_table() and walk_columns() against a real agent.

Both walk every requested column side by side: each request carries the
next OID of several columns at once, up to the agent's max-vars-per-pdu,
and a column drops out of the batches as soon as the agent moves past it.

Two walks are shown:
  - SNMPv2-MIB::sysORTable : resolved by name through the bundled MIBs.
  - IF-MIB ifDescr / ifOperStatus : given as raw column OIDs.

Usage:
    python ex01_walk_table.py <device_ip> [community]
"""

import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))
from snmpwalk_config import AgentConfig, VERSION2C
from snmpwalk_core import walk_columns, walk_table
from snmpwalk_errors import WalkError
from snmpwalk_mib_core import MibResolver


DEVICE_IP = sys.argv[1] if len(sys.argv) > 1 else '192.168.1.100'
COMMUNITY = sys.argv[2] if len(sys.argv) > 2 else 'public'

IF_DESCR       = '.1.3.6.1.2.1.2.2.1.2'
IF_OPER_STATUS = '.1.3.6.1.2.1.2.2.1.8'


def print_rows(tracker, resolver: MibResolver, max_rows: int = 20):
    """Pretty-print walked rows, truncating if large."""
    rows = tracker.rows()
    if not rows:
        print("  (empty)")
        return
    for instance, row in list(rows.items())[:max_rows]:
        cells = ", ".join(f"{resolver.oid_to_name(column)}={value}" for column, value in row.items())
        print(f"  [{instance}] {cells}")
    if len(rows) > max_rows:
        print(f"  ... and {len(rows) - max_rows} more rows")


async def main():
    agent = AgentConfig(DEVICE_IP, version=VERSION2C, read_community=COMMUNITY,
                        timeout=2000, retries=2, max_vars_per_pdu=10)
    resolver = MibResolver()
    print(f"Agent: {agent}")
    print()

    # ------------------------------------------------------------------
    # Walk 1: sysORTable by name.
    # Every SNMPv2 agent lists the MIB modules it implements here.
    # ------------------------------------------------------------------
    print("=== Walk: SNMPv2-MIB::sysORTable ===")
    try:
        tracker = await walk_table(agent, 'SNMPv2-MIB', 'sysORTable', resolver=resolver)
        print(f"Rows found: {len(tracker.rows())}")
        print_rows(tracker, resolver)
    except WalkError as e:
        print(f"  Walk failed: {e}")

    print()

    # ------------------------------------------------------------------
    # Walk 2: two ifTable columns by OID, capped at 50 rows.
    # ------------------------------------------------------------------
    print("=== Walk: ifDescr / ifOperStatus ===")
    try:
        tracker = await walk_columns(agent, [IF_DESCR, IF_OPER_STATUS], name='interfaces', max_rows=50)
        print(f"Rows found: {len(tracker.rows())}")
        print_rows(tracker, resolver)
    except WalkError as e:
        print(f"  Walk failed: {e}")


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(levelname)s - %(name)s - %(message)s')
    asyncio.run(main())
