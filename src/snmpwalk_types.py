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
SNMP walk value types.

Object identifiers, typed values and error-status codes shared by the
walk engine, the trackers and the transports.

Example:
    >>> from snmpwalk_types import SnmpObjId, SnmpValue
    >>>
    >>> oid = SnmpObjId.get('.1.3.6.1.2.1.2.2.1.2')
    >>> oid.append(3)
    SnmpObjId('.1.3.6.1.2.1.2.2.1.2.3')
    >>> SnmpValue.END_OF_MIB.is_end_of_mib()
    True
"""

from collections import namedtuple
from dataclasses import dataclass
from enum import Enum
from functools import total_ordering


@total_ordering
class SnmpObjId:
    """
    Dotted-integer object identifier.

    Ordering is lexicographic on the integer sequence, which is the order
    an agent walks its MIB view in.
    """

    __slots__ = ('_ids',)

    def __init__(self, ids):
        ids = tuple(int(i) for i in ids)
        if any(i < 0 for i in ids):
            raise ValueError(f"OID sub-identifiers must be non-negative: {ids}")
        self._ids = ids

    @classmethod
    def get(cls, oid):
        """
        Coerce a string, tuple or SnmpObjId into an SnmpObjId.

        Args:
            oid: '.1.3.6.1', '1.3.6.1', (1, 3, 6, 1) or an SnmpObjId

        Returns:
            SnmpObjId
        """
        if isinstance(oid, SnmpObjId):
            return oid
        if isinstance(oid, str):
            text = oid.strip().strip('.')
            if not text:
                return cls(())
            try:
                return cls(int(part) for part in text.split('.'))
            except ValueError as e:
                raise ValueError(f"Invalid OID string {oid!r}") from e
        return cls(oid)

    @property
    def ids(self):
        return self._ids

    def append(self, *suffix):
        """Return a new OID with the given sub-identifiers (or OID) appended."""
        if len(suffix) == 1 and not isinstance(suffix[0], int):
            suffix = SnmpObjId.get(suffix[0]).ids
        return SnmpObjId(self._ids + tuple(suffix))

    def is_prefix_of(self, other):
        """True if `other` lies strictly below this OID in the tree."""
        other = SnmpObjId.get(other)
        return len(other) > len(self) and other.ids[:len(self)] == self._ids

    def is_successor_of(self, other):
        return self > SnmpObjId.get(other)

    def instance_of(self, base):
        """
        Return the instance suffix of this OID relative to a column base.

        Raises:
            ValueError: if this OID is not below `base`
        """
        base = SnmpObjId.get(base)
        if not base.is_prefix_of(self):
            raise ValueError(f"{self} is not an instance of {base}")
        return SnmpObjId(self._ids[len(base):])

    def __len__(self):
        return len(self._ids)

    def __iter__(self):
        return iter(self._ids)

    def __getitem__(self, item):
        return self._ids[item]

    def __eq__(self, other):
        if isinstance(other, SnmpObjId):
            return self._ids == other._ids
        return NotImplemented

    def __lt__(self, other):
        if isinstance(other, SnmpObjId):
            return self._ids < other._ids
        return NotImplemented

    def __hash__(self):
        return hash(self._ids)

    def __str__(self):
        return '.' + '.'.join(map(str, self._ids)) if self._ids else '.'

    def __repr__(self):
        return f"SnmpObjId('{self}')"


class ValueType(Enum):
    """ASN.1/SMI tags for the value kinds an agent can return."""
    INTEGER           = 0x02
    OCTET_STRING      = 0x04
    NULL              = 0x05
    OBJECT_IDENTIFIER = 0x06
    IP_ADDRESS        = 0x40
    COUNTER32         = 0x41
    GAUGE32           = 0x42
    TIMETICKS         = 0x43
    OPAQUE            = 0x44
    COUNTER64         = 0x46

    # SNMPv2 exception values
    NO_SUCH_OBJECT    = 0x80
    NO_SUCH_INSTANCE  = 0x81
    END_OF_MIB        = 0x82


_NUMERIC_TYPES = {
    ValueType.INTEGER, ValueType.COUNTER32, ValueType.GAUGE32,
    ValueType.TIMETICKS, ValueType.COUNTER64,
}

_EXCEPTION_TYPES = {
    ValueType.NO_SUCH_OBJECT, ValueType.NO_SUCH_INSTANCE, ValueType.END_OF_MIB,
}


@dataclass(frozen=True)
class SnmpValue:
    """
    Typed value returned for one variable binding.

    `value` is an int for numeric types, bytes for OCTET_STRING/OPAQUE,
    a dotted string for IP_ADDRESS, an SnmpObjId for OBJECT_IDENTIFIER,
    and None for NULL and the exception values.
    """
    type: ValueType
    value: object = None

    @classmethod
    def integer(cls, n):
        return cls(ValueType.INTEGER, int(n))

    @classmethod
    def counter32(cls, n):
        return cls(ValueType.COUNTER32, int(n))

    @classmethod
    def gauge32(cls, n):
        return cls(ValueType.GAUGE32, int(n))

    @classmethod
    def timeticks(cls, n):
        return cls(ValueType.TIMETICKS, int(n))

    @classmethod
    def counter64(cls, n):
        return cls(ValueType.COUNTER64, int(n))

    @classmethod
    def octets(cls, data):
        if isinstance(data, str):
            data = data.encode('utf-8')
        return cls(ValueType.OCTET_STRING, bytes(data))

    @classmethod
    def oid(cls, oid):
        return cls(ValueType.OBJECT_IDENTIFIER, SnmpObjId.get(oid))

    @classmethod
    def ip_address(cls, address):
        return cls(ValueType.IP_ADDRESS, str(address))

    def is_end_of_mib(self):
        return self.type is ValueType.END_OF_MIB

    def is_null(self):
        return self.type is ValueType.NULL

    def is_error(self):
        """True for the SNMPv2 exception values (noSuchObject, noSuchInstance, endOfMibView)."""
        return self.type in _EXCEPTION_TYPES

    def is_numeric(self):
        return self.type in _NUMERIC_TYPES

    def to_int(self):
        if not self.is_numeric():
            raise TypeError(f"{self.type.name} value is not numeric")
        return self.value

    def to_display_string(self):
        if self.type in (ValueType.OCTET_STRING, ValueType.OPAQUE):
            try:
                return self.value.decode('utf-8')
            except UnicodeDecodeError:
                return ':'.join(f"{b:02x}" for b in self.value)
        if self.value is None:
            return self.type.name
        return str(self.value)

    def __str__(self):
        return self.to_display_string()


SnmpValue.NULL = SnmpValue(ValueType.NULL)
SnmpValue.END_OF_MIB = SnmpValue(ValueType.END_OF_MIB)
SnmpValue.NO_SUCH_OBJECT = SnmpValue(ValueType.NO_SUCH_OBJECT)
SnmpValue.NO_SUCH_INSTANCE = SnmpValue(ValueType.NO_SUCH_INSTANCE)


ResultPair = namedtuple('ResultPair', ['oid', 'value'])


class ErrorStatus(Enum):
    """SNMP PDU error-status codes (RFC 1157 / RFC 3416)."""
    NO_ERROR             = 0
    TOO_BIG              = 1
    NO_SUCH_NAME         = 2
    BAD_VALUE            = 3
    READ_ONLY            = 4
    GEN_ERR              = 5
    NO_ACCESS            = 6
    WRONG_TYPE           = 7
    WRONG_LENGTH         = 8
    WRONG_ENCODING       = 9
    WRONG_VALUE          = 10
    NO_CREATION          = 11
    INCONSISTENT_VALUE   = 12
    RESOURCE_UNAVAILABLE = 13
    COMMIT_FAILED        = 14
    UNDO_FAILED          = 15
    AUTHORIZATION_ERROR  = 16
    NOT_WRITABLE         = 17
    INCONSISTENT_NAME    = 18

    @classmethod
    def from_code(cls, code):
        """Map a raw error-status integer to a member; unknown codes become GEN_ERR."""
        try:
            return cls(int(code))
        except ValueError:
            return cls.GEN_ERR

    def to_v1(self):
        """Return the SNMPv1 status an SNMPv2 status is reported as."""
        return V1_STATUS_MAPPING[self]

    @property
    def is_error(self):
        return self is not ErrorStatus.NO_ERROR


# RFC 2576 section 4.3: SNMPv2 error-status to SNMPv1 error-status
V1_STATUS_MAPPING = {
    ErrorStatus.NO_ERROR:             ErrorStatus.NO_ERROR,
    ErrorStatus.TOO_BIG:              ErrorStatus.TOO_BIG,
    ErrorStatus.NO_SUCH_NAME:         ErrorStatus.NO_SUCH_NAME,
    ErrorStatus.BAD_VALUE:            ErrorStatus.BAD_VALUE,
    ErrorStatus.READ_ONLY:            ErrorStatus.READ_ONLY,
    ErrorStatus.GEN_ERR:              ErrorStatus.GEN_ERR,
    ErrorStatus.NO_ACCESS:            ErrorStatus.NO_SUCH_NAME,
    ErrorStatus.WRONG_TYPE:           ErrorStatus.BAD_VALUE,
    ErrorStatus.WRONG_LENGTH:         ErrorStatus.BAD_VALUE,
    ErrorStatus.WRONG_ENCODING:       ErrorStatus.BAD_VALUE,
    ErrorStatus.WRONG_VALUE:          ErrorStatus.BAD_VALUE,
    ErrorStatus.NO_CREATION:          ErrorStatus.NO_SUCH_NAME,
    ErrorStatus.INCONSISTENT_VALUE:   ErrorStatus.BAD_VALUE,
    ErrorStatus.RESOURCE_UNAVAILABLE: ErrorStatus.GEN_ERR,
    ErrorStatus.COMMIT_FAILED:        ErrorStatus.GEN_ERR,
    ErrorStatus.UNDO_FAILED:          ErrorStatus.GEN_ERR,
    ErrorStatus.AUTHORIZATION_ERROR:  ErrorStatus.NO_SUCH_NAME,
    ErrorStatus.NOT_WRITABLE:         ErrorStatus.NO_SUCH_NAME,
    ErrorStatus.INCONSISTENT_NAME:    ErrorStatus.NO_SUCH_NAME,
}
