"""Plain-English outline of a rule tree."""

from __future__ import annotations

from compspec._core import Specification, _And, _Not, _Or, _Xor
from compspec._operators import Operators, get_operators


def explain(specification: Specification, operators: Operators | None = None) -> str:
    """
    Generate a plain English outline of what a rule checks.

    Leaves are listed by their description; composites become headers.
    Nested NOTs collapse into a single line with the leaf.

    Args:
        specification: The rule to explain
        operators: Vocabulary for the NOT marker (defaults to the effective one)

    Returns:
        Human-readable explanation string

    Example:
        rule = is_recent & (title_first | ~is_archived)
        print(explain(rule))

        # Output:
        # Check passes if ALL of:
        #   • is recent
        #   • ANY of:
        #     • title_first
        #     • NOT: is archived
    """
    operators = operators or get_operators()

    # Stack of (node, depth); children pushed reversed so output keeps order
    lines: list[str] = []
    stack: list[tuple[Specification, int]] = [(specification, 0)]

    while stack:
        node, depth = stack.pop()
        indent = "  " * depth
        bullet = "• " if depth > 0 else ""

        if isinstance(node, (_And, _Or, _Xor)):
            if isinstance(node, _And):
                label, children = "ALL of:", list(node.children)
            elif isinstance(node, _Or):
                label, children = "ANY of:", list(node.children)
            else:
                label, children = "EXACTLY ONE of:", [node.left, node.right]

            header = f"Check passes if {label}" if depth == 0 else label
            lines.append(f"{indent}{bullet}{header}")
            for child in reversed(children):
                stack.append((child, depth + 1))

        elif isinstance(node, _Not):
            inner, count = node.inner, 1
            while isinstance(inner, _Not):
                inner, count = inner.inner, count + 1
            if count % 2 == 0:
                stack.append((inner, depth))
                continue
            if isinstance(inner, (_And, _Or, _Xor)):
                lines.append(f"{indent}{bullet}{operators.not_}:")
                stack.append((inner, depth + 1))
            else:
                lines.append(
                    f"{indent}{bullet}{operators.not_}: {inner._describe(operators)}"
                )

        else:
            text = node._describe(operators)
            if depth == 0:
                lines.append(f"Check: {text}")
            else:
                lines.append(f"{indent}{bullet}{text}")

    return "\n".join(lines)
