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
Column progress trackers.

A tracker owns the per-column walk state: it says which OIDs to request
next, absorbs the results, and decides when the walk is complete. The
walk engine only talks to the three methods of CollectionTracker.

Example:
    >>> from snmpwalk_tracker import TableTracker
    >>>
    >>> tracker = TableTracker(['.1.3.6.1.2.1.2.2.1.2', '.1.3.6.1.2.1.2.2.1.8'])
    >>> tracker.next_batch(10)
    [SnmpObjId('.1.3.6.1.2.1.2.2.1.2'), SnmpObjId('.1.3.6.1.2.1.2.2.1.8')]
"""

import logging

from snmpwalk_types import ResultPair, SnmpObjId


logger = logging.getLogger('snmpwalk.tracker')


class CollectionTracker:
    """
    Contract between a tracker and the walk engine.

    The engine calls record_result() once per returned varbind, in
    response order. Element k of a response belongs to element
    k % len(batch) of the batch from the preceding next_batch(), which
    also holds for GETBULK responses that repeat the columns.
    """

    def next_batch(self, limit):
        """
        Return up to `limit` OIDs to request next, in request order.

        Calling it again before any result is recorded returns the same
        OIDs (or a prefix of them for a smaller limit).
        """
        raise NotImplementedError

    def record_result(self, oid, value, exhausted):
        """Absorb one returned varbind. `exhausted` marks its column as finished."""
        raise NotImplementedError

    def is_finished(self):
        raise NotImplementedError


class ColumnTracker(CollectionTracker):
    """
    Walks a single table column with GETNEXT semantics.

    The cursor starts at the column base and follows each returned OID.
    The column is finished when the agent reports it exhausted, returns an
    exception value, leaves the base subtree, stops advancing, or when
    `max_results` values have been collected.
    """

    def __init__(self, base, max_results=None):
        self.base = SnmpObjId.get(base)
        self.max_results = max_results
        self.results = []
        self._last = self.base
        self._finished = False

    @property
    def last_oid(self):
        return self._last

    def next_batch(self, limit):
        if self._finished or limit < 1:
            return []
        return [self._last]

    def record_result(self, oid, value, exhausted):
        if self._finished:
            return
        oid = SnmpObjId.get(oid)

        if exhausted or value.is_error():
            self._finish(f"end of column {self.base}")
            return

        if value.is_null() and oid == self._last:
            # v1 error responses echo the request; ask for it again next cycle
            return

        if not self.base.is_prefix_of(oid):
            self._finish(f"{oid} is past column {self.base}")
            return

        if not oid.is_successor_of(self._last):
            logger.warning(f"Agent returned {oid} after {self._last}; ending column {self.base}")
            self._finish('non-increasing OID')
            return

        self._last = oid
        self.results.append(ResultPair(oid, value))
        self.store_result(oid, value)

        if self.max_results is not None and len(self.results) >= self.max_results:
            self._finish(f"collected {self.max_results} results")

    def store_result(self, oid, value):
        """Hook for subclasses that want each new column value as it arrives."""

    def _finish(self, reason):
        logger.debug(f"Column {self.base} finished: {reason}")
        self._finished = True

    def is_finished(self):
        return self._finished


class AggregateTracker(CollectionTracker):
    """
    Combines child trackers into one walk.

    Batches are filled round-robin from the unfinished children, starting
    after the child that last received a result, so every column gets a
    turn before any column is requested twice.
    """

    def __init__(self, children):
        self.children = list(children)
        self._next_child = 0
        self._in_flight = []
        self._after_batch = 0
        self._recorded = 0

    def next_batch(self, limit):
        self._in_flight = []
        self._recorded = 0
        count = len(self.children)
        oids = []
        last_position = None
        for step in range(count):
            if len(oids) >= limit:
                break
            position = (self._next_child + step) % count
            child = self.children[position]
            if child.is_finished():
                continue
            child_oids = child.next_batch(limit - len(oids))
            for oid in child_oids:
                oids.append(oid)
                self._in_flight.append(child)
            if child_oids:
                last_position = position
        if last_position is not None:
            self._after_batch = (last_position + 1) % count
        return oids

    def record_result(self, oid, value, exhausted):
        if not self._in_flight:
            raise RuntimeError(f"Result {oid} recorded with no batch in flight")
        if self._recorded == 0:
            self._next_child = self._after_batch
        child = self._in_flight[self._recorded % len(self._in_flight)]
        self._recorded += 1
        child.record_result(oid, value, exhausted)

    def is_finished(self):
        return all(child.is_finished() for child in self.children)


class TableTracker(AggregateTracker):
    """
    Walks a set of table columns and assembles the rows.

    Args:
        columns (list): column base OIDs (strings or SnmpObjId)
        max_rows (int): optional cap on values collected per column
    """

    def __init__(self, columns, max_rows=None):
        self.columns = [SnmpObjId.get(column) for column in columns]
        super().__init__(ColumnTracker(column, max_results=max_rows) for column in self.columns)

    def column_results(self, column):
        """Return the (oid, value) pairs collected for one column."""
        column = SnmpObjId.get(column)
        for child in self.children:
            if child.base == column:
                return list(child.results)
        raise KeyError(str(column))

    def rows(self):
        """
        Return the walked table keyed by row instance.

        Returns:
            dict: {instance SnmpObjId: {column SnmpObjId: SnmpValue}},
                rows in instance order
        """
        rows = {}
        for child in self.children:
            for oid, value in child.results:
                rows.setdefault(oid.instance_of(child.base), {})[child.base] = value
        return dict(sorted(rows.items()))
