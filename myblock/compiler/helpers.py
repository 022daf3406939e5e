import ast

from myblock.errors import location_block


def _is_docstring_expr(node: ast.AST) -> bool:
    return isinstance(node, ast.Expr) and isinstance(node.value, ast.Constant) and isinstance(
        node.value.value, str
    )


def _format_syntax_error(exc: SyntaxError, source: str) -> str:
    line = exc.lineno or 0
    message = f"Invalid Python syntax: {exc.msg}"
    if line <= 0:
        return message
    snippet = (exc.text or "").strip()
    if not snippet:
        lines = source.splitlines()
        if line <= len(lines):
            snippet = lines[line - 1].strip()
    return f"{message}\n{location_block(line, exc.offset or 0, snippet)}"


def _parse_program_module(source: str) -> ast.Module:
    # Program text is the body of an async function, so top-level await is legal.
    flags = ast.PyCF_ONLY_AST | ast.PyCF_ALLOW_TOP_LEVEL_AWAIT
    return compile(source, "<program>", "exec", flags=flags, dont_inherit=True)
