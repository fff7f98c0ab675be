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

"""
Mock SNMP agent for offline walks.

MockAgentData holds a sorted OID -> value view, usually loaded from
`snmpwalk -On` output. MockTransport answers the walk engine's batches
from that view on a worker thread, the way a real stack delivers
responses from its I/O thread.

Example:
    >>> data = MockAgentData.from_snmpwalk([
    ...     '.1.3.6.1.2.1.2.2.1.2.1 = STRING: "lo"',
    ...     '.1.3.6.1.2.1.2.2.1.2.2 = STRING: "eth0"',
    ... ])
    >>> agent = AgentConfig('10.0.0.1', version=2)
    >>> walker = TableWalker(agent, tracker, MockTransport(agent, data))
"""

import bisect
import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from snmpwalk_config import VERSION1
from snmpwalk_pdu import BatchBuilder
from snmpwalk_transport import WalkTransport
from snmpwalk_types import ErrorStatus, SnmpObjId, SnmpValue, ValueType


# ".1.3.6.1.2.1.1.1.0 = STRING: "foo""  /  "... = INTEGER: up(1)"  /  '... = ""'
_LINE_RE = re.compile(r'^\s*(?P<oid>\.?\d+(?:\.\d+)*)\s*=\s*(?:(?P<type>[\w-]+):\s*)?(?P<value>.*?)\s*$')

_NUMBER_RE = re.compile(r'-?\d+')
_PAREN_NUMBER_RE = re.compile(r'\((-?\d+)\)')


def _parse_value(type_name, text):
    """Convert one snmpwalk value (type + text) into an SnmpValue."""
    type_name = (type_name or 'STRING').upper()

    if type_name in ('STRING', 'OCTET STRING'):
        if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
            text = text[1:-1]
        return SnmpValue.octets(text)
    if type_name == 'HEX-STRING':
        return SnmpValue.octets(bytes.fromhex(text.replace(' ', '')))
    if type_name in ('OID', 'OBJECT IDENTIFIER'):
        return SnmpValue.oid(text)
    if type_name == 'IPADDRESS':
        return SnmpValue.ip_address(text)
    if type_name == 'NULL':
        return SnmpValue.NULL

    numeric = {
        'INTEGER': ValueType.INTEGER,
        'COUNTER32': ValueType.COUNTER32,
        'GAUGE32': ValueType.GAUGE32,
        'UNSIGNED32': ValueType.GAUGE32,
        'TIMETICKS': ValueType.TIMETICKS,
        'COUNTER64': ValueType.COUNTER64,
    }
    if type_name in numeric:
        # "up(1)", "(12345) 0:02:03.45", "42 octets"
        match = _PAREN_NUMBER_RE.search(text)
        if match is not None:
            number = match.group(1)
        else:
            match = _NUMBER_RE.search(text)
            if match is None:
                raise ValueError(f"No number in {type_name} value {text!r}")
            number = match.group(0)
        return SnmpValue(numeric[type_name], int(number))

    raise ValueError(f"Unsupported snmpwalk value type {type_name!r}")


class MockAgentData:
    """
    Sorted OID -> value store answering GETNEXT lookups.

    Example:
        >>> data = MockAgentData({'.1.3.6.1.2.1.1.5.0': SnmpValue.octets('router1')})
        >>> data.find_next_oid('.1.3.6.1.2.1.1')
        SnmpObjId('.1.3.6.1.2.1.1.5.0')
    """

    def __init__(self, values=None):
        self._oids = []
        self._values = {}
        for oid, value in (values or {}).items():
            self.add(oid, value)

    def add(self, oid, value):
        oid = SnmpObjId.get(oid)
        if oid not in self._values:
            bisect.insort(self._oids, oid)
        self._values[oid] = value

    def find_next_oid(self, oid):
        """Return the first OID strictly after `oid`, or None at the end of the view."""
        position = bisect.bisect_right(self._oids, SnmpObjId.get(oid))
        if position >= len(self._oids):
            return None
        return self._oids[position]

    def find_value(self, oid):
        return self._values.get(SnmpObjId.get(oid))

    def __len__(self):
        return len(self._oids)

    @classmethod
    def from_snmpwalk(cls, lines):
        """
        Build from `snmpwalk -On` output lines.

        Blank lines and '#' comments are skipped.

        Raises:
            ValueError: on a line that is not `OID = [TYPE: ]value`
        """
        data = cls()
        for number, line in enumerate(lines, start=1):
            line = line.rstrip('\n')
            if not line.strip() or line.lstrip().startswith('#'):
                continue
            match = _LINE_RE.match(line)
            if match is None:
                raise ValueError(f"Line {number}: cannot parse {line!r}")
            try:
                value = _parse_value(match.group('type'), match.group('value'))
            except ValueError as e:
                raise ValueError(f"Line {number}: {e}") from e
            data.add(match.group('oid'), value)
        return data

    @classmethod
    def load(cls, path):
        """Load a saved `snmpwalk -On` dump from a file."""
        with Path(path).open(encoding='utf-8') as f:
            return cls.from_snmpwalk(f)


class MockBatchBuilder(BatchBuilder):
    """Mock agents answer GETNEXT only; GETBULK parameters are ignored."""

    def set_non_repeaters(self, n):
        pass

    def set_max_repetitions(self, n):
        pass


class MockTransport(WalkTransport):
    """
    Answers batches from MockAgentData on a single worker thread.

    Args:
        agent (AgentConfig): agent being simulated; its version selects
            SNMPv1 (noSuchName) or SNMPv2 (endOfMibView) end-of-view reporting
        data (MockAgentData): agent view; None simulates an unresponsive agent
        logger (logging.Logger): optional logger
        too_big_above (int): if set, batches larger than this get tooBig
    """

    def __init__(self, agent, data, logger=None, too_big_above=None):
        self.agent = agent
        self.data = data
        self.logger = logger or logging.getLogger('snmpwalk.mock')
        self.too_big_above = too_big_above
        self.batches = []
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='MockSnmpAgent')
        self._closed = False

    def create_batch_builder(self, limit):
        return MockBatchBuilder(limit)

    def dispatch(self, batch, channel):
        self.logger.debug(f"'Sending' batch of size {len(batch)}")
        self.batches.append(batch)
        self._executor.submit(self._respond, batch, channel)

    def _respond(self, batch, channel):
        self.logger.debug(f"Handling batch {batch}")
        try:
            if self.data is None:
                self.logger.info(f"No mock data configured for {self.agent.address}; pretending we've timed out.")
                time.sleep(0.1)
                channel.timeout(f"No mock agent data configured for '{self.agent.address}'")
                return

            if self.too_big_above is not None and len(batch) > self.too_big_above:
                channel.response([], ErrorStatus.TOO_BIG, 0)
                return

            responses = []
            error_status = ErrorStatus.NO_ERROR
            error_index = 0
            for index, oid in enumerate(batch.oids, start=1):
                next_oid = self.data.find_next_oid(oid)
                if next_oid is None:
                    self.logger.debug(f"No OID following {oid}")
                    # v1 reports only the first failing varbind
                    if self.agent.version == VERSION1 and error_status is ErrorStatus.NO_ERROR:
                        error_status = ErrorStatus.NO_SUCH_NAME
                        error_index = index
                    responses.append((oid, SnmpValue.END_OF_MIB))
                else:
                    responses.append((next_oid, self.data.find_value(next_oid)))

            self.logger.debug(f"Responding with {len(responses)} varbinds")
            channel.response(responses, error_status, error_index)

        except Exception as e:
            channel.fatal(e)

    def close(self):
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=False)
