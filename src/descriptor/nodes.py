# src/descriptor/nodes.py — v1
"""Query descriptor AST: node kinds, node variants and member bindings.

A descriptor is an immutable tree describing a deferred query. Nodes are
frozen dataclasses compared by identity; structural comparison lives in
``querycache.cache.fingerprint``.

The set of variants is closed. ``Extension`` exists so that providers can
carry nodes the fingerprinter does not understand; fingerprinting one of
them fails loudly instead of guessing.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from querycache.core.errors import InvalidArgumentError


class NodeKind(str, Enum):
    """Kind tag carried by every descriptor node."""

    # Unary
    ARRAY_LENGTH = "array_length"
    CONVERT = "convert"
    CONVERT_CHECKED = "convert_checked"
    NEGATE = "negate"
    NEGATE_CHECKED = "negate_checked"
    UNARY_PLUS = "unary_plus"
    NOT = "not"
    QUOTE = "quote"
    TYPE_AS = "type_as"

    # Binary
    ADD = "add"
    ADD_CHECKED = "add_checked"
    AND = "and"
    AND_ALSO = "and_also"
    ARRAY_INDEX = "array_index"
    COALESCE = "coalesce"
    DIVIDE = "divide"
    EQUAL = "equal"
    EXCLUSIVE_OR = "exclusive_or"
    GREATER_THAN = "greater_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LEFT_SHIFT = "left_shift"
    LESS_THAN = "less_than"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"
    MODULO = "modulo"
    MULTIPLY = "multiply"
    MULTIPLY_CHECKED = "multiply_checked"
    NOT_EQUAL = "not_equal"
    OR = "or"
    OR_ELSE = "or_else"
    POWER = "power"
    RIGHT_SHIFT = "right_shift"
    SUBTRACT = "subtract"
    SUBTRACT_CHECKED = "subtract_checked"

    # Everything else the fingerprinter understands
    CALL = "call"
    CONDITIONAL = "conditional"
    CONSTANT = "constant"
    INVOKE = "invoke"
    LAMBDA = "lambda"
    LIST_INIT = "list_init"
    MEMBER_ACCESS = "member_access"
    MEMBER_INIT = "member_init"
    NEW = "new"
    NEW_ARRAY_INIT = "new_array_init"
    NEW_ARRAY_BOUNDS = "new_array_bounds"
    PARAMETER = "parameter"
    TYPE_IS = "type_is"

    # Statement-like kinds providers may emit; not fingerprintable
    ASSIGN = "assign"
    BLOCK = "block"
    DEFAULT = "default"
    EXTENSION = "extension"
    INDEX = "index"
    LOOP = "loop"
    TRY = "try"


class BindingKind(str, Enum):
    """Kind tag carried by member bindings inside a ``MemberInit``."""

    ASSIGNMENT = "assignment"
    MEMBER_BINDING = "member_binding"
    LIST_BINDING = "list_binding"


UNARY_KINDS = frozenset({
    NodeKind.ARRAY_LENGTH,
    NodeKind.CONVERT,
    NodeKind.CONVERT_CHECKED,
    NodeKind.NEGATE,
    NodeKind.NEGATE_CHECKED,
    NodeKind.UNARY_PLUS,
    NodeKind.NOT,
    NodeKind.QUOTE,
    NodeKind.TYPE_AS,
})

BINARY_KINDS = frozenset({
    NodeKind.ADD,
    NodeKind.ADD_CHECKED,
    NodeKind.AND,
    NodeKind.AND_ALSO,
    NodeKind.ARRAY_INDEX,
    NodeKind.COALESCE,
    NodeKind.DIVIDE,
    NodeKind.EQUAL,
    NodeKind.EXCLUSIVE_OR,
    NodeKind.GREATER_THAN,
    NodeKind.GREATER_THAN_OR_EQUAL,
    NodeKind.LEFT_SHIFT,
    NodeKind.LESS_THAN,
    NodeKind.LESS_THAN_OR_EQUAL,
    NodeKind.MODULO,
    NodeKind.MULTIPLY,
    NodeKind.MULTIPLY_CHECKED,
    NodeKind.NOT_EQUAL,
    NodeKind.OR,
    NodeKind.OR_ELSE,
    NodeKind.POWER,
    NodeKind.RIGHT_SHIFT,
    NodeKind.SUBTRACT,
    NodeKind.SUBTRACT_CHECKED,
})

NEW_ARRAY_KINDS = frozenset({NodeKind.NEW_ARRAY_INIT, NodeKind.NEW_ARRAY_BOUNDS})

EXTENSION_KINDS = frozenset({
    NodeKind.ASSIGN,
    NodeKind.BLOCK,
    NodeKind.DEFAULT,
    NodeKind.EXTENSION,
    NodeKind.INDEX,
    NodeKind.LOOP,
    NodeKind.TRY,
})


# === Identity references ===


@dataclass(frozen=True)
class MemberRef:
    """Identity of a field or property on a declaring type."""

    declaring_type: type
    name: str

    def __str__(self) -> str:
        return f"{self.declaring_type.__qualname__}.{self.name}"


@dataclass(frozen=True)
class MethodRef:
    """Identity of a method, overload-qualified by its parameter types."""

    declaring_type: type
    name: str
    parameter_types: tuple[type, ...] = ()

    def __str__(self) -> str:
        params = ", ".join(t.__qualname__ for t in self.parameter_types)
        return f"{self.declaring_type.__qualname__}.{self.name}({params})"


Method = Union[MethodRef, Callable[..., Any]]


# === Nodes ===


class Node:
    """Base of every descriptor node.

    Every variant exposes ``kind`` (a ``NodeKind``) and ``type`` (the
    node's result type).
    """

    kind: NodeKind
    type: Any


@dataclass(frozen=True, eq=False)
class Unary(Node):
    kind: NodeKind
    operand: Node
    type: Any
    method: Method | None = None

    def __post_init__(self) -> None:
        _require_kind(self, UNARY_KINDS)
        _require_node(self.operand, "operand")


@dataclass(frozen=True, eq=False)
class Binary(Node):
    kind: NodeKind
    left: Node
    right: Node
    type: Any
    method: Method | None = None
    conversion: Lambda | None = None

    def __post_init__(self) -> None:
        _require_kind(self, BINARY_KINDS)
        _require_node(self.left, "left")
        _require_node(self.right, "right")
        if self.conversion is not None and not isinstance(self.conversion, Lambda):
            raise InvalidArgumentError("conversion must be a Lambda node")


@dataclass(frozen=True, eq=False)
class MethodCall(Node):
    method: Method
    arguments: tuple[Node, ...]
    type: Any
    instance: Node | None = None
    kind: NodeKind = field(default=NodeKind.CALL, init=False)

    def __post_init__(self) -> None:
        if self.method is None:
            raise InvalidArgumentError("method is required")
        _freeze_nodes(self, "arguments")
        if self.instance is not None:
            _require_node(self.instance, "instance")


@dataclass(frozen=True, eq=False)
class Conditional(Node):
    test: Node
    if_true: Node
    if_false: Node
    type: Any
    kind: NodeKind = field(default=NodeKind.CONDITIONAL, init=False)

    def __post_init__(self) -> None:
        _require_node(self.test, "test")
        _require_node(self.if_true, "if_true")
        _require_node(self.if_false, "if_false")


@dataclass(frozen=True, eq=False)
class Constant(Node):
    value: Any
    type: Any
    kind: NodeKind = field(default=NodeKind.CONSTANT, init=False)


@dataclass(frozen=True, eq=False)
class Invocation(Node):
    target: Node
    arguments: tuple[Node, ...]
    type: Any
    kind: NodeKind = field(default=NodeKind.INVOKE, init=False)

    def __post_init__(self) -> None:
        _require_node(self.target, "target")
        _freeze_nodes(self, "arguments")


@dataclass(frozen=True, eq=False)
class Lambda(Node):
    body: Node
    parameters: tuple[Parameter, ...]
    type: Any
    name: str | None = None
    kind: NodeKind = field(default=NodeKind.LAMBDA, init=False)

    def __post_init__(self) -> None:
        _require_node(self.body, "body")
        _freeze_nodes(self, "parameters")
        for param in self.parameters:
            if not isinstance(param, Parameter):
                raise InvalidArgumentError("lambda parameters must be Parameter nodes")


@dataclass(frozen=True, eq=False)
class New(Node):
    constructor: Method
    arguments: tuple[Node, ...]
    type: Any
    members: tuple[MemberRef, ...] = ()
    kind: NodeKind = field(default=NodeKind.NEW, init=False)

    def __post_init__(self) -> None:
        if self.constructor is None:
            raise InvalidArgumentError("constructor is required")
        _freeze_nodes(self, "arguments")
        object.__setattr__(self, "members", tuple(self.members))


@dataclass(frozen=True, eq=False)
class ListInit(Node):
    new_expression: New
    initializers: tuple[ElementInit, ...]
    type: Any
    kind: NodeKind = field(default=NodeKind.LIST_INIT, init=False)

    def __post_init__(self) -> None:
        if not isinstance(self.new_expression, New):
            raise InvalidArgumentError("new_expression must be a New node")
        object.__setattr__(self, "initializers", tuple(self.initializers))


@dataclass(frozen=True, eq=False)
class MemberAccess(Node):
    member: MemberRef
    type: Any
    instance: Node | None = None
    kind: NodeKind = field(default=NodeKind.MEMBER_ACCESS, init=False)

    def __post_init__(self) -> None:
        if not isinstance(self.member, MemberRef):
            raise InvalidArgumentError("member must be a MemberRef")
        if self.instance is not None:
            _require_node(self.instance, "instance")


@dataclass(frozen=True, eq=False)
class MemberInit(Node):
    new_expression: New
    bindings: tuple[Binding, ...]
    type: Any
    kind: NodeKind = field(default=NodeKind.MEMBER_INIT, init=False)

    def __post_init__(self) -> None:
        if not isinstance(self.new_expression, New):
            raise InvalidArgumentError("new_expression must be a New node")
        object.__setattr__(self, "bindings", tuple(self.bindings))


@dataclass(frozen=True, eq=False)
class NewArray(Node):
    kind: NodeKind
    expressions: tuple[Node, ...]
    type: Any

    def __post_init__(self) -> None:
        _require_kind(self, NEW_ARRAY_KINDS)
        _freeze_nodes(self, "expressions")


@dataclass(frozen=True, eq=False)
class Parameter(Node):
    type: Any
    name: str | None = None
    by_ref: bool = False
    kind: NodeKind = field(default=NodeKind.PARAMETER, init=False)


@dataclass(frozen=True, eq=False)
class TypeIs(Node):
    operand: Node
    type_operand: Any
    type: Any = bool
    kind: NodeKind = field(default=NodeKind.TYPE_IS, init=False)

    def __post_init__(self) -> None:
        _require_node(self.operand, "operand")


@dataclass(frozen=True, eq=False)
class Extension(Node):
    """Provider-specific node outside the fingerprintable set."""

    kind: NodeKind
    type: Any
    payload: Any = None

    def __post_init__(self) -> None:
        _require_kind(self, EXTENSION_KINDS)


# === Bindings ===


@dataclass(frozen=True, eq=False)
class ElementInit:
    """One ``add_method(*arguments)`` call inside a list initializer."""

    add_method: Method
    arguments: tuple[Node, ...]

    def __post_init__(self) -> None:
        _freeze_nodes(self, "arguments")


class Binding:
    """Base of member bindings used by ``MemberInit``."""

    binding_kind: BindingKind
    member: MemberRef


@dataclass(frozen=True, eq=False)
class MemberAssignment(Binding):
    member: MemberRef
    expression: Node
    binding_kind: BindingKind = field(default=BindingKind.ASSIGNMENT, init=False)

    def __post_init__(self) -> None:
        _require_node(self.expression, "expression")


@dataclass(frozen=True, eq=False)
class MemberMemberBinding(Binding):
    member: MemberRef
    bindings: tuple[Binding, ...]
    binding_kind: BindingKind = field(default=BindingKind.MEMBER_BINDING, init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "bindings", tuple(self.bindings))


@dataclass(frozen=True, eq=False)
class MemberListBinding(Binding):
    member: MemberRef
    initializers: tuple[ElementInit, ...]
    binding_kind: BindingKind = field(default=BindingKind.LIST_BINDING, init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "initializers", tuple(self.initializers))


# --- Validation helpers ---


def _require_kind(node: Node, allowed: frozenset[NodeKind]) -> None:
    if node.kind not in allowed:
        raise InvalidArgumentError(
            f"{type(node).__name__} does not accept kind {node.kind!r}"
        )


def _require_node(value: object, name: str) -> None:
    if not isinstance(value, Node):
        raise InvalidArgumentError(f"{name} must be a descriptor node, got {value!r}")


def _freeze_nodes(owner: object, attr: str) -> None:
    values: Iterable[object] = getattr(owner, attr) or ()
    frozen = tuple(values)
    for value in frozen:
        _require_node(value, attr)
    object.__setattr__(owner, attr, frozen)
