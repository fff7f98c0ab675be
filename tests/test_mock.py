"""Tests for the mock agent data store and end-to-end walks over MockTransport."""

from __future__ import annotations

import pytest

from conftest import IF_DESCR, IF_OPER_STATUS, IF_TYPE
from snmpwalk_config import VERSION1, VERSION2C, AgentConfig
from snmpwalk_core import TableWalker, WalkState, walk_columns
from snmpwalk_errors import WalkTimeoutError
from snmpwalk_mock import MockAgentData, MockTransport
from snmpwalk_tracker import TableTracker
from snmpwalk_types import SnmpObjId, SnmpValue, ValueType


class TestMockAgentData:

    def test_parses_snmpwalk_output(self):
        data = MockAgentData.from_snmpwalk([
            '# saved from a lab switch',
            '.1.3.6.1.2.1.1.1.0 = STRING: "Linux switch 5.15"',
            '.1.3.6.1.2.1.1.2.0 = OID: .1.3.6.1.4.1.8072.3.2.10',
            '.1.3.6.1.2.1.1.3.0 = Timeticks: (8812345) 1 day, 0:28:43.45',
            '',
            '.1.3.6.1.2.1.2.2.1.6.2 = Hex-STRING: 00 1B 21 3C 4D 5E',
            '.1.3.6.1.2.1.2.2.1.10.2 = Counter32: 123456',
            '.1.3.6.1.2.1.4.20.1.1.10.0.0.1 = IpAddress: 10.0.0.1',
            '.1.3.6.1.2.1.31.1.1.1.6.2 = Counter64: 98765432109',
            '.1.3.6.1.2.1.2.2.1.8.2 = INTEGER: up(1)',
            '.1.3.6.1.2.1.1.9.1.3.1 = ""',
        ])

        assert len(data) == 9
        assert data.find_value('.1.3.6.1.2.1.1.1.0') == SnmpValue.octets('Linux switch 5.15')
        assert data.find_value('.1.3.6.1.2.1.1.2.0') == SnmpValue.oid('.1.3.6.1.4.1.8072.3.2.10')
        assert data.find_value('.1.3.6.1.2.1.1.3.0') == SnmpValue.timeticks(8812345)
        assert data.find_value('.1.3.6.1.2.1.2.2.1.6.2').value == bytes.fromhex('001b213c4d5e')
        assert data.find_value('.1.3.6.1.2.1.4.20.1.1.10.0.0.1') == SnmpValue.ip_address('10.0.0.1')
        assert data.find_value('.1.3.6.1.2.1.31.1.1.1.6.2').type is ValueType.COUNTER64
        assert data.find_value('.1.3.6.1.2.1.2.2.1.8.2').to_int() == 1
        assert data.find_value('.1.3.6.1.2.1.1.9.1.3.1') == SnmpValue.octets('')

    @pytest.mark.parametrize('line', [
        'this is not a walk line',
        '.1.3.6.1.2.1.1.3.0 = Timeticks: forever',
        '.1.3.6.1.2.1.1.3.0 = BITS: 80',
    ])
    def test_bad_line_reports_line_number(self, line):
        with pytest.raises(ValueError, match='Line 2'):
            MockAgentData.from_snmpwalk(['.1.3.6.1.2.1.1.1.0 = STRING: "ok"', line])

    @pytest.mark.parametrize('value, expected', [
        ('INTEGER: up(1)', SnmpValue(ValueType.INTEGER, 1)),
        ('INTEGER: -17', SnmpValue(ValueType.INTEGER, -17)),
        ('INTEGER: invalid(-1)', SnmpValue(ValueType.INTEGER, -1)),
        ('Timeticks: (12345) 0:02:03.45', SnmpValue(ValueType.TIMETICKS, 12345)),
        ('Gauge32: 42 octets', SnmpValue(ValueType.GAUGE32, 42)),
        ('Counter32: 7', SnmpValue(ValueType.COUNTER32, 7)),
    ])
    def test_numeric_forms(self, value, expected):
        data = MockAgentData.from_snmpwalk([f'.1.3.6.1.2.1.2.2.1.99.1 = {value}'])
        assert data.find_value('.1.3.6.1.2.1.2.2.1.99.1') == expected

    def test_find_next_oid(self, if_table_data):
        assert if_table_data.find_next_oid('.1.3.6.1.2.1.2.2.1.2') == SnmpObjId.get(f"{IF_DESCR}.1")
        assert if_table_data.find_next_oid(f"{IF_DESCR}.3") == SnmpObjId.get(f"{IF_TYPE}.1")
        assert if_table_data.find_next_oid('.1') == SnmpObjId.get(f"{IF_DESCR}.1")
        assert if_table_data.find_next_oid(f"{IF_OPER_STATUS}.3") is None

    def test_add_replaces_existing_value(self):
        data = MockAgentData({'.1.3.6.1.2.1.1.5.0': SnmpValue.octets('old')})
        data.add('.1.3.6.1.2.1.1.5.0', SnmpValue.octets('new'))
        assert len(data) == 1
        assert data.find_value('.1.3.6.1.2.1.1.5.0') == SnmpValue.octets('new')

    def test_load_from_file(self, tmp_path):
        dump = tmp_path / 'agent.snmpwalk'
        dump.write_text('.1.3.6.1.2.1.1.5.0 = STRING: "router1"\n', encoding='utf-8')
        data = MockAgentData.load(dump)
        assert data.find_value('.1.3.6.1.2.1.1.5.0').to_display_string() == 'router1'


class TestMockTransportWalks:

    @pytest.mark.asyncio
    async def test_v2_walk(self, if_table_data):
        agent = AgentConfig('192.0.2.20', version=VERSION2C, timeout=1000)
        tracker = TableTracker([IF_DESCR, IF_TYPE, IF_OPER_STATUS])
        transport = MockTransport(agent, if_table_data)

        async with TableWalker(agent, tracker, transport, name='ifTable') as walker:
            result = await walker.walk()

        assert result.succeeded
        rows = tracker.rows()
        assert [row[SnmpObjId.get(IF_DESCR)].to_display_string() for row in rows.values()] == ['lo', 'eth0', 'eth1']
        assert [row[SnmpObjId.get(IF_TYPE)].to_int() for row in rows.values()] == [24, 6, 6]
        assert len(transport.batches) == 4

    @pytest.mark.asyncio
    async def test_v1_walk(self, if_table_data):
        agent = AgentConfig('192.0.2.20', version=VERSION1, timeout=500)
        tracker = TableTracker([IF_TYPE, IF_OPER_STATUS])

        result = await TableWalker(agent, tracker, MockTransport(agent, if_table_data)).walk()

        assert result.succeeded
        assert [row[SnmpObjId.get(IF_OPER_STATUS)].to_int() for row in tracker.rows().values()] == [1, 1, 2]

    @pytest.mark.asyncio
    async def test_missing_data_times_out(self):
        agent = AgentConfig('192.0.2.30', version=VERSION2C, timeout=1000, retries=1)
        transport = MockTransport(agent, None)

        result = await TableWalker(agent, TableTracker([IF_DESCR]), transport).walk()

        assert result.state is WalkState.ERROR_TIMEOUT
        assert result.dispatch_count == 2

    @pytest.mark.asyncio
    async def test_too_big_above_limit(self, if_table_data):
        agent = AgentConfig('192.0.2.20', version=VERSION2C, timeout=500, retries=1, max_vars_per_pdu=4)
        columns = [IF_DESCR, IF_TYPE, '.1.3.6.1.2.1.2.2.1.4', IF_OPER_STATUS]
        transport = MockTransport(agent, if_table_data, too_big_above=2)
        walker = TableWalker(agent, TableTracker(columns), transport)

        result = await walker.walk()

        assert result.succeeded
        assert walker.limit == 2
        assert [len(batch) for batch in transport.batches][:2] == [4, 2]
        assert len(walker.tracker.rows()) == 3

    @pytest.mark.asyncio
    async def test_walk_columns(self, if_table_data):
        agent = AgentConfig('192.0.2.20', version=VERSION2C, timeout=1000)
        tracker = await walk_columns(agent, [IF_DESCR, IF_OPER_STATUS],
                                     transport=MockTransport(agent, if_table_data), max_rows=2)
        assert list(tracker.rows()) == [SnmpObjId.get('.1'), SnmpObjId.get('.2')]

    @pytest.mark.asyncio
    async def test_walk_columns_raises_terminal_error(self):
        agent = AgentConfig('192.0.2.30', version=VERSION2C, timeout=50, retries=0)
        with pytest.raises(WalkTimeoutError):
            await walk_columns(agent, [IF_DESCR], transport=MockTransport(agent, None))
