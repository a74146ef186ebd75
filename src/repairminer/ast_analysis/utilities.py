"""
Helpers for naming and navigating AST nodes.
"""

from typing import List, Optional

from .models import Ast

SCRIPT_NAME = "~script~"
ANONYMOUS_NAME = "~anonymous~"

CONDITION_ROLES = {
    "if_statement": "condition",
    "while_statement": "condition",
    "do_statement": "condition",
    "for_statement": "condition",
    "ternary_expression": "condition",
    "switch_statement": "value",
}


def get_identifier(ast: Ast, node_id: Optional[int]) -> str:
    """
    Dotted identifier for a call target or dereference.

    ``foo`` gives ``"foo"``, ``a.b.c`` gives ``"a.b.c"``; anything without a
    stable name gives an empty string.
    """
    if node_id is None:
        return ""
    node = ast.node(node_id)
    if node.kind in ("identifier", "property_identifier", "this", "super",
                     "shorthand_property_identifier", "private_property_identifier"):
        return node.value
    if node.kind == "member_expression":
        base = get_identifier(ast, ast.field(node_id, "object"))
        prop = get_identifier(ast, ast.field(node_id, "property"))
        if not base or not prop:
            return ""
        return f"{base}.{prop}"
    if node.kind == "call_expression":
        return get_identifier(ast, ast.field(node_id, "function"))
    if node.kind == "parenthesized_expression" and node.children:
        return get_identifier(ast, node.children[0])
    return ""


def base_identifier(ast: Ast, node_id: Optional[int]) -> str:
    """Leftmost variable of a member chain: ``a`` for ``a.b[c].d``."""
    while node_id is not None:
        node = ast.node(node_id)
        if node.kind == "identifier":
            return node.value
        if node.kind in ("member_expression", "subscript_expression"):
            node_id = ast.field(node_id, "object")
        elif node.kind == "call_expression":
            node_id = ast.field(node_id, "function")
        else:
            return ""
    return ""


def string_value(ast: Ast, node_id: Optional[int]) -> Optional[str]:
    """Contents of a string literal without its quotes."""
    if node_id is None or ast.kind(node_id) != "string":
        return None
    text = ast.node(node_id).value
    if len(text) >= 2 and text[0] in "'\"" and text[-1] == text[0]:
        return text[1:-1]
    return text


def function_name(ast: Ast, function_id: int) -> str:
    """Best available name for a function node."""
    if function_id == ast.root:
        return SCRIPT_NAME
    name = ast.field(function_id, "name")
    if name is not None and ast.node(name).value:
        return ast.node(name).value

    node = ast.node(function_id)
    parent = node.parent
    if parent is None:
        return ANONYMOUS_NAME
    parent_kind = ast.kind(parent)
    if parent_kind == "variable_declarator" and node.role == "value":
        return get_identifier(ast, ast.field(parent, "name")) or ANONYMOUS_NAME
    if parent_kind in ("assignment_expression", "augmented_assignment_expression") and node.role == "right":
        return get_identifier(ast, ast.field(parent, "left")) or ANONYMOUS_NAME
    if parent_kind == "pair" and node.role == "value":
        key = ast.field(parent, "key")
        if key is not None:
            return string_value(ast, key) or ast.node(key).value or ANONYMOUS_NAME
    return ANONYMOUS_NAME


def parameter_names(ast: Ast, function_id: int) -> List[str]:
    """Names of the simple identifier parameters of a function, in order."""
    if function_id == ast.root:
        return []
    single = ast.field(function_id, "parameter")
    if single is not None:
        return [ast.node(single).value] if ast.kind(single) == "identifier" else [""]
    params = ast.field(function_id, "parameters")
    if params is None:
        return []
    names = []
    for child in ast.children(params):
        kind = ast.kind(child)
        if kind == "identifier":
            names.append(ast.node(child).value)
        elif kind == "assignment_pattern":
            names.append(get_identifier(ast, ast.field(child, "left")))
        else:
            names.append("")
    return names


def in_condition(ast: Ast, node_id: int, stop: Optional[int] = None) -> bool:
    """True if the node sits inside the test of a branch or loop."""
    current = node_id
    while True:
        if is_condition_slot(ast, current):
            return True
        parent = ast.parent(current)
        if parent is None or parent == stop:
            return False
        parent_node = ast.node(parent)
        if (parent_node.is_statement or parent_node.is_function) and not is_condition_slot(ast, parent):
            return False
        current = parent


def is_condition_slot(ast: Ast, node_id: int) -> bool:
    """True if the node is itself the test of its parent branch or loop."""
    node = ast.node(node_id)
    if node.parent is None:
        return False
    role = CONDITION_ROLES.get(ast.kind(node.parent))
    return role is not None and node.role == role


def is_callee(ast: Ast, node_id: int) -> bool:
    node = ast.node(node_id)
    return node.parent is not None and ast.kind(node.parent) == "call_expression" \
        and node.role == "function"


def call_arguments(ast: Ast, call_id: int) -> List[int]:
    arguments = ast.field(call_id, "arguments")
    return list(ast.children(arguments)) if arguments is not None else []
