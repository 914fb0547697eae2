"""Final stage: render surviving API records with a registered writer."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from bridgekit.api import Api, Bridge
from bridgekit.ir import BindingModule, UseStatement
from bridgekit.writers import get_writer

logger = logging.getLogger(__name__)


@dataclass
class CodegenResults:
    """Output bundle of a conversion.

    :param output: Text produced by the writer.
    :param bridge: The bridge that was written.
    :param writer: Name of the writer used.
    :param diagnostics: Non-fatal notes collected during conversion.
    """

    output: str
    bridge: Bridge
    writer: str
    diagnostics: list[str] = field(default_factory=list)


class CodeGenerator:
    """Builds the :class:`~bridgekit.api.Bridge` and renders it."""

    @staticmethod
    def generate_code(
        apis: Sequence[Api],
        include_list: Sequence[str],
        use_stmts_by_mod: Mapping[tuple[str, ...], Sequence[UseStatement]],
        bindgen_mod: BindingModule,
        writer: str | None = None,
        diagnostics: Sequence[str] = (),
        **writer_options: object,
    ) -> CodegenResults:
        """Render the pruned records.

        :param apis: Surviving records.
        :param include_list: Header paths for include directives.
        :param use_stmts_by_mod: Use statements by namespace path.
        :param bindgen_mod: The scanner's outer module (for its name).
        :param writer: Writer name, or None for the default.
        :param diagnostics: Notes to pass through to the results.
        :param writer_options: Forwarded to the writer constructor.
        :raises ValueError: If ``writer`` is not registered.
        """
        bridge = Bridge(
            module_name=bindgen_mod.name,
            include_list=list(include_list),
            apis=list(apis),
            use_stmts_by_mod={path: list(stmts) for path, stmts in use_stmts_by_mod.items()},
        )
        backend = get_writer(writer, **writer_options)
        output = backend.write(bridge)
        logger.debug("Wrote %d API records with the %s writer", len(bridge.apis), backend.name)
        return CodegenResults(output=output, bridge=bridge, writer=backend.name, diagnostics=list(diagnostics))
