"""bridgekit - prune and annotate scanned C++ bindings for a cxx bridge."""

from bridgekit.api import (
    Api,
    ApiKind,
    Bridge,
    ParseResults,
    Passing,
    QualifiedName,
    Safety,
    TypeRepresentation,
    UnsafePolicy,
)
from bridgekit.byvalue import ByValueChecker, identify_byvalue_safe_types
from bridgekit.codegen import CodeGenerator, CodegenResults
from bridgekit.convert import BridgeConverter
from bridgekit.errors import (
    ConvertError,
    GraphInconsistency,
    MalformedInput,
    NoContent,
    SafetyViolation,
    UnexpectedOuterItem,
    UnrecognizedDeclaration,
)
from bridgekit.extract import find_items_in_root
from bridgekit.gc import filter_apis_by_following_edges_from_allowlist
from bridgekit.ir import (
    Array,
    BindingModule,
    Constant,
    # Type expressions
    CType,
    Enum,
    EnumValue,
    # Declarations
    Field,
    Function,
    FunctionPointer,
    Namespace,
    Parameter,
    Pointer,
    Reference,
    Struct,
    Typedef,
    TypeExpr,
    UseStatement,
    Variable,
)
from bridgekit.parse import ParseBindgen
from bridgekit.type_database import KnownType, TypeDatabase
from bridgekit.writers import (
    WriterBackend,
    get_writer,
    list_writers,
    register_writer,
)

__all__ = [
    # Types
    "CType",
    "Pointer",
    "Reference",
    "Array",
    "Parameter",
    "FunctionPointer",
    "TypeExpr",
    # Declarations
    "Field",
    "EnumValue",
    "Enum",
    "Struct",
    "Function",
    "Typedef",
    "Constant",
    "Variable",
    "UseStatement",
    "Namespace",
    # Container
    "BindingModule",
    # Records
    "Api",
    "ApiKind",
    "Bridge",
    "ParseResults",
    "Passing",
    "QualifiedName",
    "Safety",
    "TypeRepresentation",
    "UnsafePolicy",
    # Pipeline
    "BridgeConverter",
    "ByValueChecker",
    "CodeGenerator",
    "CodegenResults",
    "ParseBindgen",
    "filter_apis_by_following_edges_from_allowlist",
    "find_items_in_root",
    "identify_byvalue_safe_types",
    # Type database
    "KnownType",
    "TypeDatabase",
    # Errors
    "ConvertError",
    "MalformedInput",
    "NoContent",
    "UnexpectedOuterItem",
    "SafetyViolation",
    "UnrecognizedDeclaration",
    "GraphInconsistency",
    # Writer Protocol
    "WriterBackend",
    # Writer API
    "get_writer",
    "list_writers",
    "register_writer",
]
