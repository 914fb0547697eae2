"""Convert scanned binding declarations into a bridge.

Most of the work happens in the individual stages; this module only runs
them in order::

    find_items_in_root -> identify_byvalue_safe_types -> ParseBindgen
        -> filter_apis_by_following_edges_from_allowlist -> CodeGenerator

Each stage hands a new collection to the next, and the first error ends
the conversion.

Example
-------
::

    from bridgekit import BridgeConverter, TypeDatabase

    db = TypeDatabase(allowlist=["Foo"], pod_requests=["Point"])
    converter = BridgeConverter(["foo.h"], db)
    results = converter.convert(module)
    print(results.output)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from bridgekit.api import UnsafePolicy
from bridgekit.byvalue import identify_byvalue_safe_types
from bridgekit.codegen import CodeGenerator, CodegenResults
from bridgekit.extract import find_items_in_root
from bridgekit.gc import filter_apis_by_following_edges_from_allowlist, unmatched_allowlist_names
from bridgekit.ir import BindingModule
from bridgekit.parse import ParseBindgen
from bridgekit.type_database import TypeDatabase

logger = logging.getLogger(__name__)


class BridgeConverter:
    """Runs the whole conversion for one include list and type database.

    :param include_list: Header paths threaded through to the output.
    :param type_database: Allowlist, by-value requests and known types.
    """

    def __init__(self, include_list: Sequence[str], type_database: TypeDatabase) -> None:
        self.include_list = list(include_list)
        self.type_database = type_database

    def convert(
        self,
        bindgen_mod: BindingModule,
        exclude_utilities: bool = False,
        unsafe_policy: UnsafePolicy = UnsafePolicy.ALL_FUNCTIONS_SAFE,
        writer: str | None = None,
        **writer_options: object,
    ) -> CodegenResults:
        """Convert the scanner's module into generated bindings.

        :param bindgen_mod: Outer module from the scanner.
        :param exclude_utilities: Leave out the synthesised helper APIs.
        :param unsafe_policy: Which wrappers get an unsafe annotation.
        :param writer: Output writer name, or None for the default.
        :param writer_options: Forwarded to the writer constructor.
        :raises ConvertError: On the first failure of any stage.
        """
        # Step into the root namespace, checking the module's shape.
        items = find_items_in_root(bindgen_mod)
        # Confirm the by-value requests really are safe and classify
        # everything else.
        byvalue_checker = identify_byvalue_safe_types(items, self.type_database)
        parser = ParseBindgen(byvalue_checker, self.type_database, unsafe_policy)
        parse_results = parser.convert_items(items, exclude_utilities)

        diagnostics = [
            f"allowlisted name {name} matches no API record"
            for name in unmatched_allowlist_names(parse_results.apis, self.type_database.allowlist)
        ]
        # Garbage collect the records nothing asked for.
        apis = filter_apis_by_following_edges_from_allowlist(parse_results.apis, self.type_database)
        logger.info(
            "Converted %r: %d of %d API records kept",
            bindgen_mod.name,
            len(apis),
            len(parse_results.apis),
        )
        return CodeGenerator.generate_code(
            apis,
            self.include_list,
            parse_results.use_stmts_by_mod,
            bindgen_mod,
            writer=writer,
            diagnostics=diagnostics,
            **writer_options,
        )
