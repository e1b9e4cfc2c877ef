# src/descriptor/builders.py — v1
"""Factory helpers that build descriptor nodes with inferred result types.

Usage:
    from querycache.descriptor import builders as q

    blog = q.parameter(Blog, "b")
    predicate = q.lambda_(q.not_equal(q.member(blog, "url", str), q.constant(None)), blog)
    descriptor = q.call(where, q.constant(source), q.quote(predicate), type_=Iterable)
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from querycache.core.errors import InvalidArgumentError
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
    Method,
    MethodCall,
    New,
    NewArray,
    Node,
    NodeKind,
    Parameter,
    TypeIs,
    Unary,
)

_PREDICATE_KINDS = frozenset({
    NodeKind.AND_ALSO,
    NodeKind.EQUAL,
    NodeKind.GREATER_THAN,
    NodeKind.GREATER_THAN_OR_EQUAL,
    NodeKind.LESS_THAN,
    NodeKind.LESS_THAN_OR_EQUAL,
    NodeKind.NOT_EQUAL,
    NodeKind.OR_ELSE,
})


def constant(value: Any, type_: Any = None) -> Constant:
    """Literal node; the result type defaults to ``type(value)``."""
    return Constant(value=value, type=type_ if type_ is not None else type(value))


def parameter(type_: Any, name: str | None = None, by_ref: bool = False) -> Parameter:
    return Parameter(type=type_, name=name, by_ref=by_ref)


def member(
    instance: Node | None,
    name: str,
    type_: Any,
    declaring_type: type | None = None,
) -> MemberAccess:
    """Field/property access. Static access passes ``instance=None``."""
    if declaring_type is None and instance is None:
        raise InvalidArgumentError("static member access needs a declaring_type")
    owner = declaring_type if declaring_type is not None else instance.type
    return MemberAccess(member=MemberRef(owner, name), type=type_, instance=instance)


def call(
    method: Method,
    *arguments: Node,
    type_: Any,
    instance: Node | None = None,
) -> MethodCall:
    return MethodCall(method=method, arguments=arguments, type=type_, instance=instance)


def lambda_(body: Node, *parameters: Parameter, name: str | None = None) -> Lambda:
    return Lambda(body=body, parameters=parameters, type=Callable, name=name)


def quote(expression: Lambda) -> Unary:
    return Unary(kind=NodeKind.QUOTE, operand=expression, type=expression.type)


def unary(kind: NodeKind, operand: Node, type_: Any = None, method: Method | None = None) -> Unary:
    if type_ is None:
        type_ = bool if kind is NodeKind.NOT else operand.type
    return Unary(kind=kind, operand=operand, type=type_, method=method)


def convert(operand: Node, type_: Any) -> Unary:
    return Unary(kind=NodeKind.CONVERT, operand=operand, type=type_)


def binary(
    kind: NodeKind,
    left: Node,
    right: Node,
    type_: Any = None,
    method: Method | None = None,
    conversion: Lambda | None = None,
) -> Binary:
    """Binary operator; comparisons and short-circuit logic yield ``bool``."""
    if type_ is None:
        type_ = bool if kind in _PREDICATE_KINDS else left.type
    return Binary(
        kind=kind,
        left=left,
        right=right,
        type=type_,
        method=method,
        conversion=conversion,
    )


def equal(left: Node, right: Node) -> Binary:
    return binary(NodeKind.EQUAL, left, right)


def not_equal(left: Node, right: Node) -> Binary:
    return binary(NodeKind.NOT_EQUAL, left, right)


def greater_than(left: Node, right: Node) -> Binary:
    return binary(NodeKind.GREATER_THAN, left, right)


def less_than(left: Node, right: Node) -> Binary:
    return binary(NodeKind.LESS_THAN, left, right)


def and_also(left: Node, right: Node) -> Binary:
    return binary(NodeKind.AND_ALSO, left, right)


def or_else(left: Node, right: Node) -> Binary:
    return binary(NodeKind.OR_ELSE, left, right)


def conditional(test: Node, if_true: Node, if_false: Node, type_: Any = None) -> Conditional:
    return Conditional(
        test=test,
        if_true=if_true,
        if_false=if_false,
        type=type_ if type_ is not None else if_true.type,
    )


def invoke(target: Node, *arguments: Node, type_: Any) -> Invocation:
    return Invocation(target=target, arguments=arguments, type=type_)


def new(
    constructor: Method,
    *arguments: Node,
    type_: Any = None,
    members: tuple[MemberRef, ...] = (),
) -> New:
    """Constructor call; a class passed as ``constructor`` is its own result type."""
    if type_ is None:
        type_ = constructor if isinstance(constructor, type) else object
    return New(constructor=constructor, arguments=arguments, type=type_, members=members)


def new_array(*expressions: Node, type_: Any = tuple) -> NewArray:
    return NewArray(kind=NodeKind.NEW_ARRAY_INIT, expressions=expressions, type=type_)


def new_array_bounds(*bounds: Node, type_: Any = tuple) -> NewArray:
    return NewArray(kind=NodeKind.NEW_ARRAY_BOUNDS, expressions=bounds, type=type_)


def type_is(operand: Node, type_operand: Any) -> TypeIs:
    return TypeIs(operand=operand, type_operand=type_operand)


def element_init(add_method: Method, *arguments: Node) -> ElementInit:
    return ElementInit(add_method=add_method, arguments=arguments)


def list_init(new_expression: New, *initializers: ElementInit) -> ListInit:
    return ListInit(
        new_expression=new_expression,
        initializers=initializers,
        type=new_expression.type,
    )


def member_init(new_expression: New, *bindings: Binding) -> MemberInit:
    return MemberInit(
        new_expression=new_expression,
        bindings=bindings,
        type=new_expression.type,
    )


def assign(declaring_type: type, name: str, expression: Node) -> MemberAssignment:
    return MemberAssignment(member=MemberRef(declaring_type, name), expression=expression)


def bind_members(declaring_type: type, name: str, *bindings: Binding) -> MemberMemberBinding:
    return MemberMemberBinding(member=MemberRef(declaring_type, name), bindings=bindings)


def bind_list(declaring_type: type, name: str, *initializers: ElementInit) -> MemberListBinding:
    return MemberListBinding(member=MemberRef(declaring_type, name), initializers=initializers)
