"""Data models for the class index document."""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ParameterEntry:
    """A single method parameter."""

    name: str
    type: str  # as written in source, not resolved


@dataclass
class FieldEntry:
    """A single declared field (one per variable in a multi-variable declaration)."""

    name: str
    type: str
    modifiers: List[str] = field(default_factory=list)
    annotations: List[str] = field(default_factory=list)


@dataclass
class MethodEntry:
    """A declared method (constructors are not included)."""

    name: str
    return_type: str
    parameters: List[ParameterEntry] = field(default_factory=list)
    modifiers: List[str] = field(default_factory=list)
    annotations: List[str] = field(default_factory=list)
    throws: List[str] = field(default_factory=list)


@dataclass
class ClassEntry:
    """A type declaration flattened into the index.

    Field order here is the key order of the serialized document.
    """

    fqcn: str
    package: str  # empty for the unnamed package
    name: str
    kind: str  # class, interface, enum, record, annotation
    modifiers: List[str] = field(default_factory=list)
    superclass: Optional[str] = None  # None for interfaces
    interfaces: List[str] = field(default_factory=list)
    type_parameters: List[str] = field(default_factory=list)
    annotations: List[str] = field(default_factory=list)
    fields: List[FieldEntry] = field(default_factory=list)
    methods: List[MethodEntry] = field(default_factory=list)
    inner_classes: List[str] = field(default_factory=list)
    source_file: str = ""


@dataclass
class ClassIndex:
    """Root document persisted as class-index.json."""

    version: str
    jar_hash: str  # "sha256:<hex>"
    generated_at: str  # ISO-8601 UTC
    classes: List[ClassEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-ready dict with stable key order."""
        return asdict(self)
