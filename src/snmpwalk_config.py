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
SNMP agent configuration.

AgentConfig holds everything needed to reach one agent: address, limits,
protocol version and credentials. It serializes to a flat JSON protocol
string and never renders its credentials.

Example:
    >>> from snmpwalk_config import AgentConfig
    >>>
    >>> agent = AgentConfig('192.168.1.100', version=2, read_community='public')
    >>> text = agent.to_protocol_config_string()
    >>> AgentConfig.parse_protocol_config_string(text) == agent
    True
"""

import ipaddress
import json
from dataclasses import dataclass, field, fields

from snmpwalk_errors import ConfigError


VERSION1 = 1
VERSION2C = 2
VERSION3 = 3

NOAUTH_NOPRIV = 1
AUTH_NOPRIV = 2
AUTH_PRIV = 3

REDACTED = 'XXXXXXXX'

_VERSION_NAMES = {VERSION1: 'v1', VERSION2C: 'v2c', VERSION3: 'v3'}

# (serialized key, attribute, kind) in serialization order
_SERIALIZED_FIELDS = (
    ('address', 'address', 'addr'),
    ('proxyFor', 'proxy_for', 'addr'),
    ('port', 'port', 'int'),
    ('timeout', 'timeout', 'int'),
    ('retries', 'retries', 'int'),
    ('max-vars-per-pdu', 'max_vars_per_pdu', 'int'),
    ('max-repetitions', 'max_repetitions', 'int'),
    ('max-request-size', 'max_request_size', 'int'),
    ('version', 'version', 'int'),
    ('security-level', 'security_level', 'int'),
    ('security-name', 'security_name', 'str'),
    ('auth-passphrase', 'auth_passphrase', 'str'),
    ('auth-protocol', 'auth_protocol', 'str'),
    ('priv-passphrase', 'priv_passphrase', 'str'),
    ('priv-protocol', 'priv_protocol', 'str'),
    ('context-name', 'context_name', 'str'),
    ('engine-id', 'engine_id', 'str'),
    ('context-engine-id', 'context_engine_id', 'str'),
    ('enterprise-id', 'enterprise_id', 'str'),
    ('read-community', 'read_community', 'str'),
    ('write-community', 'write_community', 'str'),
    ('ttl', 'ttl', 'int'),
)


def _parse_address(value, key):
    if value is None:
        return None
    if isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return value
    try:
        return ipaddress.ip_address(str(value).strip())
    except ValueError as e:
        raise ConfigError(f"Invalid IP address for '{key}': {value!r}") from e


@dataclass(repr=False)
class AgentConfig:
    """
    Connection and protocol settings for one SNMP agent.

    `timeout` is in milliseconds. `proxy_for`, when set, is where traffic
    is actually sent; `address` stays the agent's logical identity.
    `profile_label` and `is_default` are bookkeeping only: they are not
    serialized and take no part in equality or hashing.
    """
    address: object = None
    proxy_for: object = None
    port: int = 161
    timeout: int = 1800
    retries: int = 1
    max_vars_per_pdu: int = 10
    max_repetitions: int = 2
    max_request_size: int = 65535
    version: int = VERSION1
    security_level: int = NOAUTH_NOPRIV
    security_name: str = 'snmpwalkUser'
    auth_passphrase: str = None
    auth_protocol: str = 'MD5'
    priv_passphrase: str = None
    priv_protocol: str = 'DES'
    context_name: str = None
    engine_id: str = None
    context_engine_id: str = None
    enterprise_id: str = None
    read_community: str = 'public'
    write_community: str = 'private'
    ttl: int = None
    profile_label: str = field(default=None, compare=False)
    is_default: bool = field(default=True, compare=False)

    def __post_init__(self):
        self.address = _parse_address(self.address, 'address')
        self.proxy_for = _parse_address(self.proxy_for, 'proxyFor')
        if self.version not in _VERSION_NAMES:
            raise ConfigError(f"Unsupported SNMP version: {self.version!r}")

    def __hash__(self):
        return hash(tuple(getattr(self, f.name) for f in fields(self) if f.compare))

    @property
    def effective_address(self):
        """Address requests are sent to: the proxy when set, else the agent."""
        return self.proxy_for if self.proxy_for is not None else self.address

    @property
    def version_as_string(self):
        return _VERSION_NAMES[self.version]

    @property
    def is_version1(self):
        return self.version == VERSION1

    @property
    def is_version3(self):
        return self.version == VERSION3

    @property
    def supports_bulk(self):
        """GETBULK is available from SNMPv2c on."""
        return self.version >= VERSION2C

    def to_map(self):
        """
        Flatten to the serialized key/value form.

        Returns:
            dict: ordered {key: str}; unset fields (including ttl) are omitted
        """
        result = {}
        for key, attr, _kind in _SERIALIZED_FIELDS:
            value = getattr(self, attr)
            if value is None:
                continue
            result[key] = str(value)
        return result

    @classmethod
    def from_map(cls, attributes):
        """
        Build a config from the serialized key/value form.

        Unknown keys and None values are ignored; missing keys keep their
        defaults.

        Raises:
            ConfigError: if a numeric field is not an integer or an
                address is not a valid IP address
        """
        kwargs = {}
        for key, attr, kind in _SERIALIZED_FIELDS:
            raw = attributes.get(key)
            if raw is None:
                continue
            if kind == 'int':
                try:
                    kwargs[attr] = int(raw)
                except (TypeError, ValueError) as e:
                    raise ConfigError(f"Invalid integer for '{key}': {raw!r}") from e
            elif kind == 'addr':
                kwargs[attr] = _parse_address(raw, key)
            else:
                kwargs[attr] = str(raw)
        return cls(**kwargs)

    def to_protocol_config_string(self):
        """Serialize as a JSON object with a single top-level "snmp" key."""
        return json.dumps({'snmp': self.to_map()})

    @classmethod
    def parse_protocol_config_string(cls, text):
        """
        Parse the output of to_protocol_config_string().

        Raises:
            ConfigError: on None input, malformed JSON, or a missing or
                non-object "snmp" key
        """
        if text is None:
            raise ConfigError("Protocol configuration string must not be None")
        try:
            document = json.loads(text)
        except ValueError as e:
            raise ConfigError(f"Malformed protocol configuration string: {e}") from e

        protocol_config = document.get('snmp') if isinstance(document, dict) else None
        if not isinstance(protocol_config, dict):
            raise ConfigError(
                f"Invalid protocol configuration string: expected an 'snmp' object in {text!r}"
            )
        return cls.from_map(protocol_config)

    def __str__(self):
        # Credentials are always redacted: this object ends up in log messages.
        parts = [
            f"Address: {self.address}",
            f"ProxyForAddress: {self.proxy_for}",
            f"Port: {self.port}",
            f"Timeout: {self.timeout}",
            f"Retries: {self.retries}",
            f"MaxVarsPerPdu: {self.max_vars_per_pdu}",
            f"MaxRepetitions: {self.max_repetitions}",
            f"MaxRequestSize: {self.max_request_size}",
            f"Version: {self.version_as_string}",
            f"TTL: {self.ttl}",
        ]
        if self.is_version3:
            parts += [
                f"SecurityLevel: {self.security_level}",
                f"SecurityName: {self.security_name}",
                f"AuthPassPhrase: {REDACTED}",
                f"AuthProtocol: {self.auth_protocol}",
                f"PrivPassphrase: {REDACTED}",
                f"PrivProtocol: {self.priv_protocol}",
                f"ContextName: {self.context_name}",
                f"EngineId: {self.engine_id}",
                f"ContextEngineId: {self.context_engine_id}",
                f"EnterpriseId: {self.enterprise_id}",
            ]
        else:
            parts += [
                f"ReadCommunity: {REDACTED}",
                f"WriteCommunity: {REDACTED}",
            ]
        return f"AgentConfig[{', '.join(parts)}]"

    __repr__ = __str__


@dataclass
class WalkPolicy:
    """
    Engine tunables.

    Attributes:
        retry_delay (float): seconds to wait before re-dispatching after a
            timeout; 0 re-dispatches immediately
        shrink_divisor (int): divisor applied to the batch limit on tooBig
        shrink_floor (int): smallest batch limit shrinking can reach
    """
    retry_delay: float = 0.0
    shrink_divisor: int = 2
    shrink_floor: int = 1

    def __post_init__(self):
        if self.retry_delay < 0:
            raise ConfigError(f"retry_delay must be >= 0, got {self.retry_delay}")
        if self.shrink_divisor < 2:
            raise ConfigError(f"shrink_divisor must be >= 2, got {self.shrink_divisor}")
        if self.shrink_floor < 1:
            raise ConfigError(f"shrink_floor must be >= 1, got {self.shrink_floor}")

    def shrink(self, limit):
        """Return the reduced batch limit after a tooBig response."""
        return max(self.shrink_floor, limit // self.shrink_divisor)
