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
Request batches and response classification.

BatchBuilder assembles the bounded list of OIDs for one outgoing
GETNEXT/GETBULK request. classify_response() turns what came back into
per-varbind verdicts the walk engine can act on.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from snmpwalk_config import VERSION1
from snmpwalk_types import ErrorStatus, ResultPair, SnmpObjId, SnmpValue


logger = logging.getLogger('snmpwalk.pdu')


@dataclass(frozen=True)
class Batch:
    """One outgoing request: the OIDs plus GETBULK parameters."""
    oids: tuple
    non_repeaters: int = 0
    max_repetitions: int = 0

    def __len__(self):
        return len(self.oids)

    def __str__(self):
        return f"[{', '.join(str(oid) for oid in self.oids)}]"


class BatchBuilder:
    """
    Accumulates OIDs for the next request, up to a fixed limit.

    The same builder is reused for every batch of a walk: call reset()
    before each assembly cycle.

    Example:
        >>> builder = BatchBuilder(2)
        >>> builder.reset()
        >>> builder.add_oid('.1.3.6.1.2.1.2.2.1.2')
        >>> builder.build()
        Batch(oids=(SnmpObjId('.1.3.6.1.2.1.2.2.1.2'),), non_repeaters=0, max_repetitions=0)
    """

    def __init__(self, limit):
        if limit < 1:
            raise ValueError(f"Batch limit must be >= 1, got {limit}")
        self.limit = limit
        self._oids = []
        self._non_repeaters = 0
        self._max_repetitions = 0

    def reset(self):
        self._oids.clear()
        self._non_repeaters = 0
        self._max_repetitions = 0

    @property
    def oids(self):
        return list(self._oids)

    def add_oid(self, oid):
        if len(self._oids) >= self.limit:
            raise ValueError(
                f"Batch already holds {len(self._oids)} OIDs (limit {self.limit}); "
                f"cannot add {oid}"
            )
        self._oids.append(SnmpObjId.get(oid))

    def set_non_repeaters(self, n):
        self._non_repeaters = n

    def set_max_repetitions(self, n):
        self._max_repetitions = n

    def build(self):
        return Batch(tuple(self._oids), self._non_repeaters, self._max_repetitions)


class Verdict(Enum):
    OK = 'ok'
    SHRINK_AND_RETRY = 'shrink-and-retry'
    PROTOCOL_ERROR = 'protocol-error'


class ResultKind(Enum):
    PROGRESS = 'progress'
    COLUMN_EXHAUSTED = 'column-exhausted'


@dataclass(frozen=True)
class ClassifiedResult:
    oid: SnmpObjId
    value: SnmpValue
    kind: ResultKind

    @property
    def exhausted(self):
        return self.kind is ResultKind.COLUMN_EXHAUSTED


@dataclass
class Classification:
    verdict: Verdict
    results: list = field(default_factory=list)
    message: str = None
    error_status: ErrorStatus = ErrorStatus.NO_ERROR
    error_index: int = 0


def _as_pair(varbind):
    oid, value = varbind
    return ResultPair(SnmpObjId.get(oid), value)


def classify_response(version, error_status, error_index, batch, varbinds):
    """
    Classify one response against the batch that was sent.

    Args:
        version (int): agent SNMP version (1, 2 or 3)
        error_status (ErrorStatus|int): PDU error-status
        error_index (int): 1-based index of the offending varbind, 0 if none
        batch (Batch): the request this response answers
        varbinds (list): returned (oid, SnmpValue) pairs, in response order

    Returns:
        Classification: batch verdict and, for OK, one ClassifiedResult
            per returned varbind in response order
    """
    status = error_status if isinstance(error_status, ErrorStatus) else ErrorStatus.from_code(error_status)
    if version == VERSION1:
        status = status.to_v1()
    index = int(error_index or 0)
    pairs = [_as_pair(vb) for vb in varbinds]

    if status is ErrorStatus.TOO_BIG:
        return Classification(
            Verdict.SHRINK_AND_RETRY,
            message=f"tooBig response for batch of {len(batch)}",
            error_status=status, error_index=index,
        )

    if status is ErrorStatus.NO_SUCH_NAME and version == VERSION1 and 1 <= index <= len(batch):
        # v1 GETNEXT stops at the first varbind past the end of the view;
        # only that column is finished.
        results = []
        for position, pair in enumerate(pairs, start=1):
            if position == index:
                results.append(ClassifiedResult(pair.oid, pair.value, ResultKind.COLUMN_EXHAUSTED))
            else:
                results.append(ClassifiedResult(pair.oid, pair.value, ResultKind.PROGRESS))
        if len(pairs) < index:
            # Agent returned a truncated varbind list: mark the requested OID itself
            while len(results) < index - 1:
                results.append(ClassifiedResult(
                    batch.oids[len(results)], SnmpValue.NULL, ResultKind.PROGRESS))
            results.append(ClassifiedResult(
                batch.oids[index - 1], SnmpValue.END_OF_MIB, ResultKind.COLUMN_EXHAUSTED))
        return Classification(
            Verdict.OK, results,
            message=f"noSuchName at index {index}",
            error_status=status, error_index=index,
        )

    if status.is_error:
        return Classification(
            Verdict.PROTOCOL_ERROR,
            message=f"Agent returned error status {status.name} (index {index})",
            error_status=status, error_index=index,
        )

    if not pairs and len(batch):
        return Classification(
            Verdict.PROTOCOL_ERROR,
            message=f"Empty response for batch of {len(batch)}",
        )

    results = []
    for position, pair in enumerate(pairs):
        if pair.value.is_end_of_mib():
            kind = ResultKind.COLUMN_EXHAUSTED
        elif pair.value.is_null() and len(batch) and pair.oid == batch.oids[position % len(batch)]:
            # Only v1 error responses echo the request; here the agent is stuck
            logger.warning(f"Agent echoed {pair.oid} with no value; ending that column")
            kind = ResultKind.COLUMN_EXHAUSTED
        else:
            kind = ResultKind.PROGRESS
        results.append(ClassifiedResult(pair.oid, pair.value, kind))
    return Classification(Verdict.OK, results)
