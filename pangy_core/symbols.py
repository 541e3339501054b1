"""
Symbol model for Pangy source units.

A SymbolTable is built per file by SymbolTableBuilder and is never patched:
any change to the file's text produces a new table.

  • ClassSymbol     — class with nested members (classes, functions, variables, macros)
  • FunctionSymbol  — typed parameters + return type, owning scope
  • MacroSymbol     — untyped textual template
  • VariableSymbol  — name + declared type, "global" or class scope
  • ImportedClass   — confirmed class pulled in from a resolved include

Lines are 1-indexed.  ``*_offset`` fields are offsets into the
comment-stripped line; the Position Mapper turns them into columns.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, Iterator, List, Optional, Union

GLOBAL_SCOPE = "global"


# ═══════════════════════════════════════════════════════════════════════
#  Declarations
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class Parameter:
    name: str
    type: str
    offset: int = -1      # offset of the type in the cleaned line


@dataclass
class FunctionSymbol:
    name: str
    params: List[Parameter]
    return_type: str
    line: int
    scope: Optional[str] = None        # None = global, else enclosing class name
    source_file: Optional[str] = None
    class_name: Optional[str] = None   # set on imported methods
    return_type_offset: int = -1
    access_modifier: Optional[str] = None

    @property
    def signature(self) -> str:
        params = ", ".join(f"{p.name}: {p.type}" for p in self.params)
        return f"{self.name}({params}) -> {self.return_type}"


@dataclass
class MacroSymbol:
    name: str
    params: List[str]
    line: int
    source_file: Optional[str] = None


@dataclass
class VariableSymbol:
    name: str
    type: str
    line: int
    scope: str = GLOBAL_SCOPE
    type_offset: int = -1


@dataclass
class ClassMembers:
    classes: List["ClassSymbol"] = field(default_factory=list)
    functions: List[FunctionSymbol] = field(default_factory=list)
    variables: List[VariableSymbol] = field(default_factory=list)
    macros: List[MacroSymbol] = field(default_factory=list)


@dataclass
class ClassSymbol:
    name: str
    line: int
    source_file: Optional[str] = None
    members: ClassMembers = field(default_factory=ClassMembers)

    def find_inner(self, name: str) -> Optional["ClassSymbol"]:
        return next((c for c in self.members.classes if c.name == name), None)


@dataclass
class ImportedClass:
    name: str
    source_file: str
    is_inner: bool = False
    parent_class: Optional[str] = None


@dataclass
class ImportedSymbols:
    classes: List[ImportedClass] = field(default_factory=list)
    functions: List[FunctionSymbol] = field(default_factory=list)
    macros: List[MacroSymbol] = field(default_factory=list)

    def add_class(self, imported: ImportedClass) -> bool:
        """Append unless (name, source_file) is already present."""
        if any(c.name == imported.name and c.source_file == imported.source_file
               for c in self.classes):
            return False
        self.classes.append(imported)
        return True

    def add_function(self, func: FunctionSymbol) -> bool:
        if any(f.name == func.name and f.class_name == func.class_name
               and f.source_file == func.source_file for f in self.functions):
            return False
        self.functions.append(func)
        return True

    def add_macro(self, macro: MacroSymbol) -> bool:
        if any(m.name == macro.name and m.source_file == macro.source_file
               for m in self.macros):
            return False
        self.macros.append(macro)
        return True


# ═══════════════════════════════════════════════════════════════════════
#  Symbol Table
# ═══════════════════════════════════════════════════════════════════════

class SymbolTable:
    """Declarations of one source unit plus what its includes brought in."""

    def __init__(self, file_path: Optional[str] = None):
        self.file_path = file_path
        # top-level declarations only; class members live on ClassSymbol
        self.classes: List[ClassSymbol] = []
        self.functions: List[FunctionSymbol] = []
        self.macros: List[MacroSymbol] = []
        self.variables: List[VariableSymbol] = []
        self.includes: list = []   # IncludeDirective
        self.imported = ImportedSymbols()

    # ────────────────────────────────────────────────────────────────
    #  Walks over nested scopes
    # ────────────────────────────────────────────────────────────────

    def iter_classes(self) -> Iterator[ClassSymbol]:
        """Every local class, nested ones included (depth-first)."""
        stack = list(reversed(self.classes))
        while stack:
            cls = stack.pop()
            yield cls
            stack.extend(reversed(cls.members.classes))

    def all_functions(self) -> List[FunctionSymbol]:
        result = list(self.functions)
        for cls in self.iter_classes():
            result.extend(cls.members.functions)
        return sorted(result, key=lambda f: f.line)

    def all_variables(self) -> List[VariableSymbol]:
        result = list(self.variables)
        for cls in self.iter_classes():
            result.extend(cls.members.variables)
        return sorted(result, key=lambda v: v.line)

    def all_macros(self) -> List[MacroSymbol]:
        result = list(self.macros)
        for cls in self.iter_classes():
            result.extend(cls.members.macros)
        return sorted(result, key=lambda m: m.line)

    # ────────────────────────────────────────────────────────────────
    #  Lookups (local first, then imports; first match wins)
    # ────────────────────────────────────────────────────────────────

    def find_class(self, name: str) -> Optional[Union[ClassSymbol, ImportedClass]]:
        for cls in self.iter_classes():
            if cls.name == name:
                return cls
        for cls in self.imported.classes:
            if cls.name == name:
                return cls
        return None

    def has_class(self, name: str) -> bool:
        return self.find_class(name) is not None

    def find_function(self, name: str) -> Optional[FunctionSymbol]:
        """Callable by bare name: any local function or a non-method import."""
        for func in self.all_functions():
            if func.name == name:
                return func
        for func in self.imported.functions:
            if func.name == name and not func.class_name:
                return func
        return None

    def find_macro(self, name: str) -> Optional[MacroSymbol]:
        for macro in self.all_macros():
            if macro.name == name:
                return macro
        for macro in self.imported.macros:
            if macro.name == name:
                return macro
        return None

    def class_names(self) -> List[str]:
        names = [c.name for c in self.iter_classes()]
        names.extend(c.name for c in self.imported.classes if c.name not in names)
        return names

    # ────────────────────────────────────────────────────────────────
    #  Export
    # ────────────────────────────────────────────────────────────────

    def to_dict(self) -> Dict:
        return {
            "file": self.file_path,
            "classes": [asdict(c) for c in self.classes],
            "functions": [asdict(f) for f in self.functions],
            "macros": [asdict(m) for m in self.macros],
            "variables": [asdict(v) for v in self.variables],
            "includes": [inc.to_dict() for inc in self.includes],
            "imported_symbols": asdict(self.imported),
        }

    @property
    def total_symbols(self) -> int:
        return (sum(1 for _ in self.iter_classes()) + len(self.all_functions())
                + len(self.all_macros()) + len(self.all_variables()))
