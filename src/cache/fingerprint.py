# src/cache/fingerprint.py — v3
"""Structural fingerprinting of query descriptors.

Two operations, consistent with each other:

- ``fingerprint_hash`` folds a descriptor into a 64-bit value by XOR-ing,
  at every node, a token for ``(kind, result type)`` plus kind-specific
  identity tokens (method, member, constant value, names). Child tokens
  are rotated by their position under the parent before mixing.
- ``structurally_equal`` compares two descriptors node by node in the same
  order.

``compute_fingerprint`` wraps both into a ``QueryFingerprint`` key: hashing
uses the structural hash, equality falls back to full structural
comparison, so dict-backed stores never serve a colliding descriptor.

Tokens come from BLAKE2b digests of qualified names and string/bytes
literals, so keys do not depend on ``PYTHONHASHSEED``.
"""

from __future__ import annotations

import hashlib
from collections.abc import Sequence
from enum import Enum
from functools import lru_cache
from typing import Any

from querycache.core.errors import InvalidArgumentError, UnsupportedDescriptorShapeError
from querycache.descriptor.nodes import (
    Binary,
    Binding,
    Conditional,
    Constant,
    ElementInit,
    Invocation,
    Lambda,
    ListInit,
    MemberAccess,
    MemberAssignment,
    MemberInit,
    MemberListBinding,
    MemberMemberBinding,
    MemberRef,
    MethodCall,
    MethodRef,
    New,
    NewArray,
    Node,
    Parameter,
    TypeIs,
    Unary,
)

_MASK = (1 << 64) - 1


class QueryFingerprint:
    """Cache key derived from a descriptor's structure.

    Equal fingerprints mean structurally equal descriptors, not merely
    equal hashes.
    """

    __slots__ = ("_descriptor", "_digest")

    def __init__(self, descriptor: Node, digest: int) -> None:
        self._descriptor = descriptor
        self._digest = digest

    @property
    def descriptor(self) -> Node:
        return self._descriptor

    @property
    def digest(self) -> int:
        return self._digest

    @property
    def hex(self) -> str:
        return f"{self._digest:016x}"

    def __hash__(self) -> int:
        return self._digest

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QueryFingerprint):
            return NotImplemented
        if self._digest != other._digest:
            return False
        return structurally_equal(self._descriptor, other._descriptor)

    def __repr__(self) -> str:
        return f"QueryFingerprint({self.hex}, kind={self._descriptor.kind.value})"


def compute_fingerprint(descriptor: Node) -> QueryFingerprint:
    """Build the cache key for a descriptor.

    Raises:
        InvalidArgumentError: If ``descriptor`` is None.
        UnsupportedDescriptorShapeError: If the tree holds a node or
            binding outside the supported set.
    """
    return QueryFingerprint(descriptor, fingerprint_hash(descriptor))


def fingerprint_hash(descriptor: Node) -> int:
    """Structural 64-bit hash of a descriptor."""
    if descriptor is None:
        raise InvalidArgumentError("descriptor is required")
    return _StructuralHasher().visit(descriptor)


def structurally_equal(left: Node, right: Node) -> bool:
    """Whether two descriptors describe the same query."""
    if left is None or right is None:
        raise InvalidArgumentError("descriptor is required")
    return _StructuralComparer().visit(left, right)


# --- Tokens ---


def _digest(text: str) -> int:
    return _digest_bytes(text.encode("utf-8"))


def _digest_bytes(data: bytes) -> int:
    return int.from_bytes(hashlib.blake2b(data, digest_size=8).digest(), "big")


def _rotate(value: int, shift: int) -> int:
    shift %= 64
    return ((value << shift) | (value >> (64 - shift))) & _MASK


def _qualified_name(obj: Any) -> str:
    module = getattr(obj, "__module__", None)
    qualname = getattr(obj, "__qualname__", None)
    if module and qualname:
        return f"{module}.{qualname}"
    return repr(obj)


@lru_cache(maxsize=4096)
def _type_token(type_: Any) -> int:
    return _digest(f"type:{_qualified_name(type_)}")


def _safe_type_token(type_: Any) -> int:
    try:
        return _type_token(type_)
    except TypeError:
        # unhashable type objects (rare generic aliases) skip the cache
        return _digest(f"type:{_qualified_name(type_)}")


def _member_token(member: MemberRef) -> int:
    return _digest(f"member:{_qualified_name(member.declaring_type)}.{member.name}")


def _method_token(method: Any) -> int:
    if isinstance(method, MethodRef):
        params = ",".join(_qualified_name(t) for t in method.parameter_types)
        return _digest(
            f"method:{_qualified_name(method.declaring_type)}.{method.name}({params})"
        )
    owner = getattr(method, "__self__", None)
    token = _digest(f"method:{_qualified_name(method)}")
    if owner is not None and not isinstance(owner, type):
        # bound methods compare by receiver identity
        token ^= _rotate(id(owner) & _MASK, 7)
    return token


def _value_token(value: Any) -> int:
    """Token for a literal; equal values always yield equal tokens."""
    if value is None:
        return _digest("none")
    if isinstance(value, str):
        return _digest(f"str:{value}")
    if isinstance(value, (bytes, bytearray)):
        return _digest_bytes(b"bytes:" + bytes(value))
    if isinstance(value, Enum):
        return _digest(f"enum:{_qualified_name(type(value))}.{value.name}")
    if isinstance(value, type):
        return _safe_type_token(value)
    if isinstance(value, (tuple, list)):
        token = _digest("tuple" if isinstance(value, tuple) else "list")
        for position, item in enumerate(value):
            token ^= _rotate(_value_token(item), position + 1)
        return token
    if isinstance(value, (set, frozenset)):
        token = _digest("set")
        for item in value:
            token ^= _value_token(item)
        return token
    if isinstance(value, dict):
        token = _digest("dict")
        for key, item in value.items():
            token ^= _value_token(key) ^ _rotate(_value_token(item), 1)
        return token
    try:
        return hash(value) & _MASK
    except TypeError:
        # mutable value objects; equality is settled by _same_value
        return _digest(f"obj:{_qualified_name(type(value))}")


# --- Hashing visitor ---


class _StructuralHasher:
    """Folds one descriptor tree into a 64-bit token.

    Each node's own token (kind, type and identities) is XOR-ed with its
    children's tokens, each rotated by the child's position, so that equal
    subtrees in different places do not cancel out.
    """

    def visit(self, node: Node | None) -> int:
        if node is None:
            return 0
        if not isinstance(node, Node):
            raise UnsupportedDescriptorShapeError(node)

        token = _digest(f"node:{node.kind.value}") ^ _safe_type_token(node.type)
        children: list[int] = []

        match node:
            case Unary():
                if node.method is not None:
                    token ^= _method_token(node.method)
                children.append(self.visit(node.operand))
            case Binary():
                if node.method is not None:
                    token ^= _method_token(node.method)
                children.append(self.visit(node.left))
                children.append(self.visit(node.right))
                children.append(self.visit(node.conversion))
            case MethodCall():
                token ^= _method_token(node.method)
                children.append(self.visit(node.instance))
                children.extend(self.visit(arg) for arg in node.arguments)
            case Conditional():
                children.append(self.visit(node.test))
                children.append(self.visit(node.if_true))
                children.append(self.visit(node.if_false))
            case Constant():
                if node.value is not None:
                    token ^= _value_token(node.value)
            case Invocation():
                children.append(self.visit(node.target))
                children.extend(self.visit(arg) for arg in node.arguments)
            case Lambda():
                if node.name is not None:
                    token ^= _digest(f"name:{node.name}")
                children.append(self.visit(node.body))
                children.extend(self.visit(param) for param in node.parameters)
            case ListInit():
                children.append(self.visit(node.new_expression))
                children.extend(self._initializer(init) for init in node.initializers)
            case MemberAccess():
                token ^= _member_token(node.member)
                children.append(self.visit(node.instance))
            case MemberInit():
                children.append(self.visit(node.new_expression))
                children.extend(self.visit_binding(b) for b in node.bindings)
            case New():
                token ^= _method_token(node.constructor)
                children.extend(_member_token(member) for member in node.members)
                children.extend(self.visit(arg) for arg in node.arguments)
            case NewArray():
                children.extend(self.visit(expr) for expr in node.expressions)
            case Parameter():
                if node.name is not None:
                    token ^= _digest(f"name:{node.name}")
            case TypeIs():
                token ^= _safe_type_token(node.type_operand)
                children.append(self.visit(node.operand))
            case _:
                raise UnsupportedDescriptorShapeError(node.kind)

        return _fold(token, children)

    def visit_binding(self, binding: Binding) -> int:
        if not isinstance(binding, Binding):
            raise UnsupportedDescriptorShapeError(binding)

        token = _digest(f"binding:{binding.binding_kind.value}") ^ _member_token(binding.member)
        children: list[int] = []

        match binding:
            case MemberAssignment():
                children.append(self.visit(binding.expression))
            case MemberMemberBinding():
                children.extend(self.visit_binding(b) for b in binding.bindings)
            case MemberListBinding():
                children.extend(self._initializer(init) for init in binding.initializers)
            case _:
                raise UnsupportedDescriptorShapeError(binding.binding_kind)

        return _fold(token, children)

    def _initializer(self, initializer: ElementInit) -> int:
        return _fold(
            _method_token(initializer.add_method),
            [self.visit(arg) for arg in initializer.arguments],
        )


def _fold(token: int, children: list[int]) -> int:
    for position, child in enumerate(children):
        token ^= _rotate(child, position + 1)
    return token & _MASK


# --- Equality visitor ---


class _StructuralComparer:
    """Pairwise structural comparison of two descriptor trees."""

    def visit(self, x: Node | None, y: Node | None) -> bool:
        if x is y:
            return True
        if x is None or y is None:
            return False
        if not isinstance(x, Node):
            raise UnsupportedDescriptorShapeError(x)
        if not isinstance(y, Node):
            raise UnsupportedDescriptorShapeError(y)
        if x.kind != y.kind or x.type != y.type:
            return False

        match x:
            case Unary():
                return (
                    isinstance(y, Unary)
                    and _same_method(x.method, y.method)
                    and self.visit(x.operand, y.operand)
                )
            case Binary():
                return (
                    isinstance(y, Binary)
                    and _same_method(x.method, y.method)
                    and self.visit(x.left, y.left)
                    and self.visit(x.right, y.right)
                    and self.visit(x.conversion, y.conversion)
                )
            case MethodCall():
                return (
                    isinstance(y, MethodCall)
                    and _same_method(x.method, y.method)
                    and self.visit(x.instance, y.instance)
                    and self._visit_nodes(x.arguments, y.arguments)
                )
            case Conditional():
                return (
                    isinstance(y, Conditional)
                    and self.visit(x.test, y.test)
                    and self.visit(x.if_true, y.if_true)
                    and self.visit(x.if_false, y.if_false)
                )
            case Constant():
                return isinstance(y, Constant) and _same_value(x.value, y.value)
            case Invocation():
                return (
                    isinstance(y, Invocation)
                    and self.visit(x.target, y.target)
                    and self._visit_nodes(x.arguments, y.arguments)
                )
            case Lambda():
                return (
                    isinstance(y, Lambda)
                    and x.name == y.name
                    and self.visit(x.body, y.body)
                    and self._visit_nodes(x.parameters, y.parameters)
                )
            case ListInit():
                return (
                    isinstance(y, ListInit)
                    and self.visit(x.new_expression, y.new_expression)
                    and self._visit_initializers(x.initializers, y.initializers)
                )
            case MemberAccess():
                return (
                    isinstance(y, MemberAccess)
                    and x.member == y.member
                    and self.visit(x.instance, y.instance)
                )
            case MemberInit():
                return (
                    isinstance(y, MemberInit)
                    and self.visit(x.new_expression, y.new_expression)
                    and self._visit_bindings(x.bindings, y.bindings)
                )
            case New():
                return (
                    isinstance(y, New)
                    and _same_method(x.constructor, y.constructor)
                    and x.members == y.members
                    and self._visit_nodes(x.arguments, y.arguments)
                )
            case NewArray():
                return isinstance(y, NewArray) and self._visit_nodes(
                    x.expressions, y.expressions
                )
            case Parameter():
                return (
                    isinstance(y, Parameter)
                    and x.by_ref == y.by_ref
                    and x.name == y.name
                )
            case TypeIs():
                return (
                    isinstance(y, TypeIs)
                    and x.type_operand == y.type_operand
                    and self.visit(x.operand, y.operand)
                )
            case _:
                raise UnsupportedDescriptorShapeError(x.kind)

    def visit_binding(self, x: Binding, y: Binding) -> bool:
        if not isinstance(x, Binding):
            raise UnsupportedDescriptorShapeError(x)
        if not isinstance(y, Binding):
            raise UnsupportedDescriptorShapeError(y)
        if x.binding_kind != y.binding_kind or x.member != y.member:
            return False

        match x:
            case MemberAssignment():
                return isinstance(y, MemberAssignment) and self.visit(
                    x.expression, y.expression
                )
            case MemberMemberBinding():
                return isinstance(y, MemberMemberBinding) and self._visit_bindings(
                    x.bindings, y.bindings
                )
            case MemberListBinding():
                return isinstance(y, MemberListBinding) and self._visit_initializers(
                    x.initializers, y.initializers
                )
            case _:
                raise UnsupportedDescriptorShapeError(x.binding_kind)

    def _visit_nodes(self, xs: Sequence[Node], ys: Sequence[Node]) -> bool:
        if xs is ys:
            return True
        if len(xs) != len(ys):
            return False
        return all(self.visit(x, y) for x, y in zip(xs, ys))

    def _visit_bindings(self, xs: Sequence[Binding], ys: Sequence[Binding]) -> bool:
        if xs is ys:
            return True
        if len(xs) != len(ys):
            return False
        return all(self.visit_binding(x, y) for x, y in zip(xs, ys))

    def _visit_initializers(
        self, xs: Sequence[ElementInit], ys: Sequence[ElementInit]
    ) -> bool:
        if xs is ys:
            return True
        if len(xs) != len(ys):
            return False
        return all(
            _same_method(x.add_method, y.add_method)
            and self._visit_nodes(x.arguments, y.arguments)
            for x, y in zip(xs, ys)
        )


def _same_method(x: Any, y: Any) -> bool:
    if x is y:
        return True
    if x is None or y is None:
        return False
    return bool(x == y)


def _same_value(x: Any, y: Any) -> bool:
    if x is y:
        return True
    if x is None or y is None:
        return False
    # 1 == True in Python; literals of different types are different keys
    if type(x) is not type(y):
        return False
    return bool(x == y)
