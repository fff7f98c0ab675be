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
#!/usr/bin/env python3

"""
MIB Resolver

Resolves symbolic MIB names to the column OIDs a table walk needs, and
compiles vendor MIB text files with pysmi when they are not yet available
as PySNMP modules.

Example:
    >>> from snmpwalk_mib_core import MibResolver
    >>>
    >>> resolver = MibResolver()
    >>> resolver.name_to_oid('SNMPv2-MIB::sysDescr.0')
    SnmpObjId('.1.3.6.1.2.1.1.1.0')
    >>> resolver.table_columns('SNMPv2-MIB', 'sysORTable')
    [SnmpObjId('.1.3.6.1.2.1.1.9.1.2'), SnmpObjId('.1.3.6.1.2.1.1.9.1.3'), SnmpObjId('.1.3.6.1.2.1.1.9.1.4')]
"""

import logging
import os
from pathlib import Path

from pysnmp.smi import builder, view

from snmpwalk_errors import ConfigError
from snmpwalk_types import SnmpObjId


READABLE_ACCESS = {'readonly', 'readwrite', 'readcreate'}


class MibResolver:
    """
    Name/OID translation backed by a PySNMP MibBuilder.

    PySNMP's bundled MIBs (SNMPv2-MIB, SNMP-FRAMEWORK-MIB, ...) are always
    available; compiled vendor MIBs are searched in `mib_compiled_dir`.
    """

    def __init__(self, mib_text_dir=None, mib_compiled_dir=None, logger=None):
        """
        Args:
            mib_text_dir (str): directory containing ASN.1 MIB text files
            mib_compiled_dir (str): directory of compiled .py MIB modules
            logger (logging.Logger): logger to use; defaults to 'snmpwalk.mib'
        """
        self.mib_text_dir = Path(mib_text_dir) if mib_text_dir else None
        self.mib_compiled_dir = Path(mib_compiled_dir) if mib_compiled_dir else None
        self.logger = logger or logging.getLogger('snmpwalk.mib')

        self.mib_builder = builder.MibBuilder()
        if self.mib_compiled_dir is not None:
            # Register even when empty so modules compiled later are found
            self.mib_compiled_dir.mkdir(parents=True, exist_ok=True)
            self.mib_builder.add_mib_sources(builder.DirMibSource(str(self.mib_compiled_dir)))

        self.mib_view_controller = view.MibViewController(self.mib_builder)

    def compile_mib(self, mib_name, force=False):
        """
        Compile one MIB text file into a PySNMP module.

        Args:
            mib_name (str): MIB module name (e.g. 'IF-MIB')
            force (bool): recompile even if already compiled

        Returns:
            bool: True if the module is available after compilation
        """
        if self.mib_text_dir is None or self.mib_compiled_dir is None:
            raise ConfigError("compile_mib() needs both mib_text_dir and mib_compiled_dir")

        output_file = self.mib_compiled_dir / f"{mib_name}.py"
        if output_file.exists() and not force:
            self.logger.info(f"{mib_name} (already compiled)")
            return True

        from pysmi.codegen.pysnmp import PySnmpCodeGen
        from pysmi.compiler import MibCompiler
        from pysmi.parser.dialect import smi_v1_relaxed
        from pysmi.parser.smi import parserFactory
        from pysmi.reader.localfile import FileReader
        from pysmi.searcher.pyfile import PyFileSearcher
        from pysmi.searcher.stub import StubSearcher
        from pysmi.writer.pyfile import PyFileWriter

        mib_compiler = MibCompiler(
            parserFactory(**smi_v1_relaxed)(),
            PySnmpCodeGen(),
            PyFileWriter(str(self.mib_compiled_dir))
        )
        mib_compiler.add_sources(FileReader(str(self.mib_text_dir)))
        for common_path in ['/usr/share/snmp/mibs', os.path.expanduser('~/.snmp/mibs')]:
            if os.path.exists(common_path):
                mib_compiler.add_sources(FileReader(common_path))
        mib_compiler.add_searchers(PyFileSearcher(str(self.mib_compiled_dir)))
        # Base modules ship with PySNMP; a compiled copy would shadow them
        mib_compiler.add_searchers(StubSearcher(*PySnmpCodeGen.baseMibs))

        results = mib_compiler.compile(mib_name, noDeps=False, rebuild=force)
        status = results.get(mib_name)
        if status is None:
            for module_name, result in results.items():
                if module_name.lower() == mib_name.lower():
                    status = result
                    break

        if status is not None and str(status) in {'compiled', 'untouched', 'borrowed'}:
            self.logger.info(f"Compiled {mib_name}")
            return True
        self.logger.error(f"Failed to compile {mib_name}: {status}")
        return False

    def load_mib(self, mib_name):
        """
        Load a MIB module into the builder.

        Raises:
            ConfigError: if the module cannot be found or imported
        """
        if mib_name in self.mib_builder.mibSymbols:
            return
        try:
            self.mib_builder.load_modules(mib_name)
        except Exception as e:
            raise ConfigError(f"Could not load MIB module '{mib_name}': {e}") from e
        if mib_name not in self.mib_builder.mibSymbols:
            raise ConfigError(
                f"MIB module '{mib_name}' loaded but defines no symbols "
                f"(compiled dir: {self.mib_compiled_dir})"
            )
        self.logger.debug(f"Loaded MIB: {mib_name}")

    def _symbol(self, module_name, object_name):
        self.load_mib(module_name)
        symbol_obj = self.mib_builder.mibSymbols[module_name].get(object_name)
        if symbol_obj is None:
            raise ConfigError(f"Symbol '{object_name}' not found in MIB '{module_name}'")
        if not hasattr(symbol_obj, 'getName'):
            raise ConfigError(
                f"Symbol '{object_name}' in '{module_name}' has no OID "
                f"(type: {type(symbol_obj).__name__})"
            )
        return symbol_obj

    def name_to_oid(self, name):
        """
        Convert a symbolic name to an OID.

        Args:
            name (str): 'MODULE::symbol[.index...]' or a numeric OID string

        Returns:
            SnmpObjId
        """
        if '::' not in name:
            return SnmpObjId.get(name)

        module_name, object_parts = name.split('::', 1)
        parts = object_parts.split('.')
        symbol_obj = self._symbol(module_name, parts[0])
        oid = SnmpObjId(symbol_obj.getName())
        if len(parts) > 1:
            oid = oid.append(*(int(i) for i in parts[1:]))
        return oid

    def oid_to_name(self, oid):
        """
        Convert an OID to 'MODULE::symbol[.suffix]', or its dotted form if
        no loaded MIB covers it.
        """
        oid = SnmpObjId.get(oid)
        try:
            mib_name, symbol_name, suffix = self.mib_view_controller.getNodeLocation(oid.ids)
        except Exception as e:
            self.logger.debug(f"Could not resolve OID {oid}: {e}")
            return str(oid)
        if suffix:
            return f"{mib_name}::{symbol_name}.{'.'.join(map(str, suffix))}"
        return f"{mib_name}::{symbol_name}"

    def table_columns(self, mib_name, table_name):
        """
        List the readable columns of a table, in column order.

        Args:
            mib_name (str): MIB module name (e.g. 'IF-MIB')
            table_name (str): table symbol (e.g. 'ifTable')

        Returns:
            list: column base SnmpObjIds
        """
        table = SnmpObjId(self._symbol(mib_name, table_name).getName())
        entry = table.append(1)
        columns = []
        for symbol_obj in self.mib_builder.mibSymbols[mib_name].values():
            if type(symbol_obj).__name__ != 'MibTableColumn':
                continue
            oid = SnmpObjId(symbol_obj.getName())
            if len(oid) != len(entry) + 1 or not entry.is_prefix_of(oid):
                continue
            access = getattr(symbol_obj, 'maxAccess', 'readonly')
            if str(access).replace('-', '').lower() not in READABLE_ACCESS:
                continue
            columns.append(oid)
        if not columns:
            raise ConfigError(f"'{mib_name}::{table_name}' has no readable columns")
        return sorted(columns)


if __name__ == "__main__":
    """Compile the MIBs in a directory when executed directly."""
    import sys

    if len(sys.argv) < 3:
        print("Usage: python snmpwalk_mib_core.py <mib_text_dir> <mib_compiled_dir> [--force]")
        sys.exit(1)

    logging.basicConfig(level=logging.INFO, format='%(levelname)s - %(message)s')
    resolver = MibResolver(sys.argv[1], sys.argv[2])
    force = '--force' in sys.argv

    failed = []
    for mib_file in sorted(Path(sys.argv[1]).iterdir()):
        if mib_file.suffix in ('.txt', '.mib', '.my') or mib_file.name.endswith('-MIB'):
            if not resolver.compile_mib(mib_file.stem, force=force):
                failed.append(mib_file.stem)

    if failed:
        print("\nFailed MIBs:")
        for mib in failed:
            print(f"  - {mib}")
        sys.exit(1)
    print("\nAll MIBs compiled successfully!")
