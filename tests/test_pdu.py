"""Tests for OIDs, values, the batch builder and response classification."""

from __future__ import annotations

import pytest

from snmpwalk_config import VERSION1, VERSION2C, VERSION3
from snmpwalk_pdu import Batch, BatchBuilder, ResultKind, Verdict, classify_response
from snmpwalk_types import ErrorStatus, SnmpObjId, SnmpValue, ValueType


A = SnmpObjId.get('.1.3.6.1.2.1.2.2.1.2')
B = SnmpObjId.get('.1.3.6.1.2.1.2.2.1.3')
C = SnmpObjId.get('.1.3.6.1.2.1.2.2.1.8')


class TestSnmpObjId:

    def test_parse_with_and_without_leading_dot(self):
        assert SnmpObjId.get('.1.3.6.1') == SnmpObjId.get('1.3.6.1') == SnmpObjId((1, 3, 6, 1))
        assert str(SnmpObjId.get('1.3.6.1')) == '.1.3.6.1'

    def test_lexicographic_order(self):
        oids = [SnmpObjId.get(s) for s in ('.1.3.6.1.10', '.1.3.6.1.2.1', '.1.3.6.1.2', '.1.3.6.1.9')]
        assert [str(o) for o in sorted(oids)] == ['.1.3.6.1.2', '.1.3.6.1.2.1', '.1.3.6.1.9', '.1.3.6.1.10']

    def test_prefix_and_instance(self):
        row = A.append(7)
        assert A.is_prefix_of(row)
        assert not A.is_prefix_of(A)
        assert not A.is_prefix_of(B.append(7))
        assert row.instance_of(A) == SnmpObjId((7,))
        with pytest.raises(ValueError):
            B.append(7).instance_of(A)

    def test_append_oid_suffix(self):
        assert A.append('.10.1.1.1') == SnmpObjId.get('.1.3.6.1.2.1.2.2.1.2.10.1.1.1')

    def test_rejects_garbage(self):
        with pytest.raises(ValueError):
            SnmpObjId.get('.1.3.six')
        with pytest.raises(ValueError):
            SnmpObjId((1, -3))


class TestSnmpValue:

    def test_end_of_mib_sentinel(self):
        assert SnmpValue.END_OF_MIB.is_end_of_mib()
        assert SnmpValue.END_OF_MIB.is_error()
        assert not SnmpValue.NULL.is_end_of_mib()

    def test_display_strings(self):
        assert SnmpValue.octets('eth0').to_display_string() == 'eth0'
        assert SnmpValue.octets(b'\x00\x1b\xff').to_display_string() == '00:1b:ff'
        assert SnmpValue.counter32(42).to_int() == 42
        assert SnmpValue(ValueType.GAUGE32, 7).is_numeric()

    def test_to_int_rejects_strings(self):
        with pytest.raises(TypeError):
            SnmpValue.octets('x').to_int()


class TestErrorStatus:

    def test_unknown_codes_are_gen_err(self):
        assert ErrorStatus.from_code(99) is ErrorStatus.GEN_ERR
        assert ErrorStatus.from_code(1) is ErrorStatus.TOO_BIG

    @pytest.mark.parametrize('status, v1', [
        (ErrorStatus.NO_ACCESS, ErrorStatus.NO_SUCH_NAME),
        (ErrorStatus.WRONG_TYPE, ErrorStatus.BAD_VALUE),
        (ErrorStatus.COMMIT_FAILED, ErrorStatus.GEN_ERR),
        (ErrorStatus.TOO_BIG, ErrorStatus.TOO_BIG),
    ])
    def test_v1_mapping(self, status, v1):
        assert status.to_v1() is v1

    def test_every_status_has_a_v1_mapping(self):
        for status in ErrorStatus:
            assert status.to_v1().value <= ErrorStatus.GEN_ERR.value


class TestBatchBuilder:

    def test_builds_in_insertion_order(self):
        builder = BatchBuilder(3)
        builder.reset()
        builder.add_oid(C)
        builder.add_oid('.1.3.6.1.2.1.2.2.1.2')
        assert builder.build().oids == (C, A)

    def test_exceeding_limit_is_rejected(self):
        builder = BatchBuilder(1)
        builder.add_oid(A)
        with pytest.raises(ValueError):
            builder.add_oid(B)

    def test_reset_clears_oids_and_bulk_parameters(self):
        builder = BatchBuilder(2)
        builder.add_oid(A)
        builder.set_non_repeaters(1)
        builder.set_max_repetitions(10)
        first = builder.build()
        builder.reset()
        builder.add_oid(B)
        second = builder.build()
        assert first == Batch((A,), 1, 10)
        assert second == Batch((B,), 0, 0)

    def test_limit_must_be_positive(self):
        with pytest.raises(ValueError):
            BatchBuilder(0)


def _batch(*oids):
    return Batch(tuple(oids))


class TestClassifyResponse:

    def test_plain_values_are_progress(self):
        varbinds = [(A.append(1), SnmpValue.octets('lo')), (B.append(1), SnmpValue.integer(24))]
        result = classify_response(VERSION2C, ErrorStatus.NO_ERROR, 0, _batch(A, B), varbinds)
        assert result.verdict is Verdict.OK
        assert [r.kind for r in result.results] == [ResultKind.PROGRESS, ResultKind.PROGRESS]
        assert result.results[0].oid == A.append(1)

    @pytest.mark.parametrize('version', [VERSION2C, VERSION3])
    def test_null_echo_without_error_exhausts_that_column(self, version, caplog):
        varbinds = [(A.append(1), SnmpValue.octets('lo')), (B, SnmpValue.NULL)]
        with caplog.at_level('WARNING', logger='snmpwalk.pdu'):
            result = classify_response(version, ErrorStatus.NO_ERROR, 0, _batch(A, B), varbinds)
        assert result.verdict is Verdict.OK
        assert [r.kind for r in result.results] == [ResultKind.PROGRESS, ResultKind.COLUMN_EXHAUSTED]
        assert 'echoed' in caplog.text

    def test_null_echo_in_bulk_repetition(self):
        varbinds = [(A.append(1), SnmpValue.octets('lo')), (B.append(1), SnmpValue.integer(6)),
                    (A.append(2), SnmpValue.octets('eth0')), (B, SnmpValue.NULL)]
        result = classify_response(VERSION2C, ErrorStatus.NO_ERROR, 0, _batch(A, B), varbinds)
        assert [r.exhausted for r in result.results] == [False, False, False, True]

    def test_null_at_a_new_oid_is_progress(self):
        result = classify_response(VERSION2C, ErrorStatus.NO_ERROR, 0, _batch(A), [(A.append(1), SnmpValue.NULL)])
        assert result.results[0].kind is ResultKind.PROGRESS

    def test_end_of_mib_exhausts_only_that_column(self):
        varbinds = [(A.append(1), SnmpValue.octets('lo')), (B, SnmpValue.END_OF_MIB)]
        result = classify_response(VERSION2C, 0, 0, _batch(A, B), varbinds)
        assert result.verdict is Verdict.OK
        assert [r.exhausted for r in result.results] == [False, True]

    def test_v1_no_such_name_marks_only_indexed_element(self):
        varbinds = [
            (A.append(1), SnmpValue.octets('lo')),
            (B, SnmpValue.NULL),
            (C.append(1), SnmpValue.integer(1)),
        ]
        result = classify_response(VERSION1, ErrorStatus.NO_SUCH_NAME, 2, _batch(A, B, C), varbinds)
        assert result.verdict is Verdict.OK
        assert [r.kind for r in result.results] == [
            ResultKind.PROGRESS, ResultKind.COLUMN_EXHAUSTED, ResultKind.PROGRESS,
        ]
        assert result.results[1].oid == B

    def test_v1_no_such_name_with_short_response(self):
        result = classify_response(VERSION1, ErrorStatus.NO_SUCH_NAME, 2, _batch(A, B, C), [])
        assert [(r.oid, r.kind) for r in result.results] == [
            (A, ResultKind.PROGRESS), (B, ResultKind.COLUMN_EXHAUSTED),
        ]
        assert result.results[0].value.is_null()

    def test_v1_normalizes_v2_status_codes(self):
        varbinds = [(A, SnmpValue.NULL)]
        result = classify_response(VERSION1, ErrorStatus.NO_ACCESS, 1, _batch(A), varbinds)
        assert result.verdict is Verdict.OK
        assert result.results[0].exhausted

    @pytest.mark.parametrize('version', [VERSION1, VERSION2C, VERSION3])
    def test_too_big_shrinks_and_retries(self, version):
        result = classify_response(version, ErrorStatus.TOO_BIG, 0, _batch(A, B), [])
        assert result.verdict is Verdict.SHRINK_AND_RETRY
        assert result.results == []

    @pytest.mark.parametrize('version, status, index', [
        (VERSION2C, ErrorStatus.GEN_ERR, 1),
        (VERSION1, ErrorStatus.BAD_VALUE, 1),
        (VERSION2C, ErrorStatus.NO_SUCH_NAME, 1),
        (VERSION1, ErrorStatus.NO_SUCH_NAME, 0),
        (VERSION1, ErrorStatus.NO_SUCH_NAME, 4),
        (VERSION3, ErrorStatus.AUTHORIZATION_ERROR, 0),
    ])
    def test_other_errors_are_protocol_errors(self, version, status, index):
        result = classify_response(version, status, index, _batch(A, B, C), [])
        assert result.verdict is Verdict.PROTOCOL_ERROR
        assert result.error_index == index

    def test_raw_integer_status_is_accepted(self):
        result = classify_response(VERSION2C, 5, 1, _batch(A), [])
        assert result.verdict is Verdict.PROTOCOL_ERROR
        assert result.error_status is ErrorStatus.GEN_ERR

    def test_empty_response_is_a_protocol_error(self):
        result = classify_response(VERSION2C, ErrorStatus.NO_ERROR, 0, _batch(A), [])
        assert result.verdict is Verdict.PROTOCOL_ERROR
