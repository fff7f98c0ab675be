#!/usr/bin/env python3
"""
Example 03: Agent Configuration
===============================
Demonstrates AgentConfig serialization and redaction.

An AgentConfig is stored as a single JSON object {"snmp": {...}} whose
values are all strings. Parsing the stored form gives back an equal
config. The profile label and the default flag are not stored and do not
take part in equality.

Printing a config never shows passphrases or communities:
  - SNMPv3 configs show the security fields, secrets as XXXXXXXX
  - SNMPv1/v2c configs show the communities as XXXXXXXX

Usage:
    python ex03_agent_config.py
"""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))
from snmpwalk_config import AUTH_PRIV, AgentConfig, VERSION2C, VERSION3
from snmpwalk_errors import ConfigError


def main():
    v2_agent = AgentConfig('192.168.1.100', version=VERSION2C, read_community='n0c-ro',
                           timeout=2000, retries=2, profile_label='core-switches')
    v3_agent = AgentConfig('192.168.1.101', version=VERSION3, security_level=AUTH_PRIV,
                           security_name='monitor', auth_protocol='SHA', auth_passphrase='auth-pass-123',
                           priv_protocol='AES', priv_passphrase='priv-pass-456', context_name='vrf-blue')

    # ------------------------------------------------------------------
    # Redacted rendering
    # ------------------------------------------------------------------
    print("=== Rendering ===")
    print(f"  {v2_agent}")
    print(f"  {v3_agent}")
    print()

    # ------------------------------------------------------------------
    # Stored form and round trip
    # ------------------------------------------------------------------
    print("=== Stored form ===")
    stored = v3_agent.to_protocol_config_string()
    print(json.dumps(json.loads(stored), indent=2))
    parsed = AgentConfig.parse_protocol_config_string(stored)
    print(f"  Round trip equal: {parsed == v3_agent}")

    relabelled = AgentConfig.parse_protocol_config_string(v2_agent.to_protocol_config_string())
    print(f"  Label dropped: {relabelled.profile_label!r}, still equal: {relabelled == v2_agent}")
    print()

    # ------------------------------------------------------------------
    # Malformed input
    # ------------------------------------------------------------------
    print("=== Malformed input ===")
    for text in ('{"snmp": {"port": "one-six-one"}}', '{"agent": {}}', 'not json'):
        try:
            AgentConfig.parse_protocol_config_string(text)
        except ConfigError as e:
            print(f"  {text!r}: {e}")


if __name__ == '__main__':
    main()
