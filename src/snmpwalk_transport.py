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
PySNMP transport for the walk engine.

Sends each batch as one GETNEXT (SNMPv1) or GETBULK (SNMPv2c/v3) request
through the PySNMP 7.1 asyncio API and reports the outcome on the batch's
response channel.
"""

import asyncio
import logging

from pysnmp.hlapi.v3arch.asyncio import (
    CommunityData,
    ContextData,
    ObjectIdentity,
    ObjectType,
    SnmpEngine,
    UdpTransportTarget,
    Udp6TransportTarget,
    UsmUserData,
    bulk_cmd,
    next_cmd,
    usm3DESEDEPrivProtocol,
    usmAesCfb128Protocol,
    usmAesCfb192Protocol,
    usmAesCfb256Protocol,
    usmDESPrivProtocol,
    usmHMAC128SHA224AuthProtocol,
    usmHMAC192SHA256AuthProtocol,
    usmHMAC256SHA384AuthProtocol,
    usmHMAC384SHA512AuthProtocol,
    usmHMACMD5AuthProtocol,
    usmHMACSHAAuthProtocol,
    usmNoAuthProtocol,
    usmNoPrivProtocol,
)
from pysnmp.proto.rfc1902 import OctetString

from snmpwalk_config import AUTH_NOPRIV, AUTH_PRIV, VERSION1
from snmpwalk_pdu import BatchBuilder
from snmpwalk_types import ErrorStatus, SnmpObjId, SnmpValue, ValueType


AUTH_PROTOCOLS = {
    'MD5': usmHMACMD5AuthProtocol,
    'SHA': usmHMACSHAAuthProtocol,
    'SHA-224': usmHMAC128SHA224AuthProtocol,
    'SHA-256': usmHMAC192SHA256AuthProtocol,
    'SHA-384': usmHMAC256SHA384AuthProtocol,
    'SHA-512': usmHMAC384SHA512AuthProtocol,
}

PRIV_PROTOCOLS = {
    'DES': usmDESPrivProtocol,
    '3DES': usm3DESEDEPrivProtocol,
    'DES3': usm3DESEDEPrivProtocol,
    'AES': usmAesCfb128Protocol,
    'AES128': usmAesCfb128Protocol,
    'AES192': usmAesCfb192Protocol,
    'AES256': usmAesCfb256Protocol,
}

# pysnmp error indications that mean the agent rejected our credentials
AUTH_ERROR_INDICATIONS = {
    'UnknownUserName',
    'UnknownSecurityName',
    'UnsupportedSecurityLevel',
    'WrongDigest',
    'DecryptionError',
    'UnknownEngineID',
    'NotInTimeWindow',
    'AuthenticationError',
    'AuthenticationFailure',
}

TIMEOUT_ERROR_INDICATIONS = {'RequestTimedOut'}

# pysnmp value class name -> ValueType
_VALUE_TYPES = {
    'Integer': ValueType.INTEGER,
    'Integer32': ValueType.INTEGER,
    'Unsigned32': ValueType.GAUGE32,
    'Gauge32': ValueType.GAUGE32,
    'Counter32': ValueType.COUNTER32,
    'Counter64': ValueType.COUNTER64,
    'TimeTicks': ValueType.TIMETICKS,
    'OctetString': ValueType.OCTET_STRING,
    'Bits': ValueType.OCTET_STRING,
    'Opaque': ValueType.OPAQUE,
    'IpAddress': ValueType.IP_ADDRESS,
    'ObjectIdentifier': ValueType.OBJECT_IDENTIFIER,
    'ObjectName': ValueType.OBJECT_IDENTIFIER,
    'Null': ValueType.NULL,
    'NoSuchObject': ValueType.NO_SUCH_OBJECT,
    'NoSuchInstance': ValueType.NO_SUCH_INSTANCE,
    'EndOfMibView': ValueType.END_OF_MIB,
}


def to_snmp_value(value):
    """
    Convert a pysnmp value object to an SnmpValue.

    Walks the class hierarchy so MIB-derived subclasses (DisplayString,
    InterfaceIndex, ...) map to their base SMI type.
    """
    for klass in type(value).__mro__:
        value_type = _VALUE_TYPES.get(klass.__name__)
        if value_type is not None:
            break
    else:
        raise TypeError(f"Unsupported SNMP value type: {type(value).__name__}")

    if value_type in (ValueType.NULL, ValueType.NO_SUCH_OBJECT,
                      ValueType.NO_SUCH_INSTANCE, ValueType.END_OF_MIB):
        return SnmpValue(value_type)
    if value_type in (ValueType.OCTET_STRING, ValueType.OPAQUE):
        return SnmpValue(value_type, bytes(value.asOctets()))
    if value_type is ValueType.IP_ADDRESS:
        return SnmpValue.ip_address('.'.join(str(b) for b in value.asNumbers()))
    if value_type is ValueType.OBJECT_IDENTIFIER:
        return SnmpValue(value_type, to_obj_id(value))
    return SnmpValue(value_type, int(value))


def to_obj_id(name):
    """Convert a pysnmp ObjectIdentity/ObjectName to an SnmpObjId."""
    if hasattr(name, 'getOid'):
        name = name.getOid()
    if hasattr(name, 'asTuple'):
        return SnmpObjId(name.asTuple())
    return SnmpObjId.get(str(name))


def error_indication_kind(error_indication):
    """Classify a pysnmp errorIndication as 'timeout', 'auth' or 'error'."""
    name = type(error_indication).__name__
    if name in TIMEOUT_ERROR_INDICATIONS:
        return 'timeout'
    if name in AUTH_ERROR_INDICATIONS:
        return 'auth'
    text = str(error_indication).lower()
    if 'timed out' in text or 'timeout' in text:
        return 'timeout'
    if 'auth' in text or 'unknown user' in text or 'digest' in text:
        return 'auth'
    return 'error'


class WalkTransport:
    """
    What the walk engine needs from a transport.

    dispatch() must not block: it hands the batch to the SNMP stack and
    returns. The outcome is reported later, from any thread, through
    exactly one call on the batch's ResponseChannel.
    """

    def create_batch_builder(self, limit):
        """Return a BatchBuilder (or subclass) holding at most `limit` OIDs."""
        raise NotImplementedError

    def dispatch(self, batch, channel):
        raise NotImplementedError

    def close(self):
        """Release sockets and threads. Called once when the walk ends."""
        raise NotImplementedError


class PySnmpTransport(WalkTransport):
    """
    Real SNMP transport backed by one PySNMP engine.

    Retries are left to the walk engine, so the UDP target is created
    with retries=0.

    Example:
        >>> transport = PySnmpTransport(AgentConfig('192.168.1.100', version=2))
        >>> walker = TableWalker(agent, tracker, transport)
    """

    def __init__(self, agent, logger=None):
        self.agent = agent
        self.logger = logger or logging.getLogger('snmpwalk.transport')

        # Create single engine (important for avoiding socket leaks!)
        self.engine = SnmpEngine()
        self.auth = self._build_auth_data(agent)
        self.context = self._build_context(agent)

        # Transport will be created async
        self.target = None
        self._tasks = set()
        self._closed = False

    @staticmethod
    def _build_auth_data(agent):
        if not agent.is_version3:
            mp_model = 0 if agent.version == VERSION1 else 1
            return CommunityData(agent.read_community, mpModel=mp_model)

        auth_key = priv_key = None
        auth_protocol, priv_protocol = usmNoAuthProtocol, usmNoPrivProtocol
        if agent.security_level in (AUTH_NOPRIV, AUTH_PRIV):
            auth_key = agent.auth_passphrase
            auth_protocol = AUTH_PROTOCOLS[(agent.auth_protocol or 'MD5').upper()]
        if agent.security_level == AUTH_PRIV:
            priv_key = agent.priv_passphrase
            priv_protocol = PRIV_PROTOCOLS[(agent.priv_protocol or 'DES').upper()]
        return UsmUserData(
            agent.security_name,
            authKey=auth_key,
            privKey=priv_key,
            authProtocol=auth_protocol,
            privProtocol=priv_protocol,
        )

    @staticmethod
    def _build_context(agent):
        kwargs = {}
        if agent.context_name:
            kwargs['contextName'] = agent.context_name
        if agent.context_engine_id:
            kwargs['contextEngineId'] = OctetString(hexValue=agent.context_engine_id)
        return ContextData(**kwargs)

    async def _ensure_target(self):
        """Create transport target if not already created."""
        if self.target is None:
            address = self.agent.effective_address
            target_class = Udp6TransportTarget if address.version == 6 else UdpTransportTarget
            self.target = await target_class.create(
                (str(address), self.agent.port),
                timeout=self.agent.timeout / 1000.0,
                retries=0,
            )
        return self.target

    def create_batch_builder(self, limit):
        return BatchBuilder(limit)

    def dispatch(self, batch, channel):
        """Send the batch in the background; the outcome goes to `channel`."""
        if self._closed:
            raise RuntimeError("Transport is closed")
        task = asyncio.get_running_loop().create_task(self._send(batch, channel))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _send(self, batch, channel):
        try:
            await self._ensure_target()
            var_binds = [ObjectType(ObjectIdentity(str(oid).lstrip('.'))) for oid in batch.oids]

            if self.agent.supports_bulk:
                errorIndication, errorStatus, errorIndex, varBinds = await bulk_cmd(
                    self.engine,
                    self.auth,
                    self.target,
                    self.context,
                    batch.non_repeaters,
                    batch.max_repetitions,
                    *var_binds
                )
            else:
                errorIndication, errorStatus, errorIndex, varBinds = await next_cmd(
                    self.engine,
                    self.auth,
                    self.target,
                    self.context,
                    *var_binds
                )

            if errorIndication:
                kind = error_indication_kind(errorIndication)
                self.logger.debug(f"Error indication from {self.agent.address}: {errorIndication} ({kind})")
                if kind == 'timeout':
                    channel.timeout(f"Request to {self.agent.address} timed out: {errorIndication}")
                elif kind == 'auth':
                    channel.auth_error(f"Authentication failure for {self.agent.address}: {errorIndication}")
                else:
                    channel.error(f"SNMP error for {self.agent.address}: {errorIndication}")
                return

            results = [
                (to_obj_id(oid), to_snmp_value(value))
                for oid, value in varBinds
            ]
            channel.response(results, ErrorStatus.from_code(int(errorStatus)), int(errorIndex or 0))

        except asyncio.CancelledError:
            raise
        except Exception as e:
            channel.fatal(e)

    def close(self):
        """Cancel outstanding requests and release the engine's sockets."""
        if self._closed:
            return
        self._closed = True
        for task in list(self._tasks):
            task.cancel()
        if self.engine:
            self.engine.close_dispatcher()
