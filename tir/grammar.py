"""
tir.grammar
===========

PEG grammar for the textual IR, a Jimple-like three-address language::

    method int abs(int x) {
        int r, c;
        c = x < 0;
        if (c == 0) goto pos;
        r = 0 - x;
        return r;
      pos:
        return x;
    }

Declarations precede the body.  A label names the statement that follows
it.  Both ``//`` and ``/* */`` comments count as whitespace.
"""

from __future__ import annotations

from parsimonious.grammar import Grammar

TIR_GRAMMAR = Grammar(r'''
    # ─────────────────────────────────────────────────────────────
    # Top level
    # ─────────────────────────────────────────────────────────────

    program         = _ method_decl*
    method_decl     = method_kw __ type_name __ identifier _ "(" _ param_list? ")" _
                      "{" _ var_decl* body_item* "}" _
    method_kw       = "method"
    param_list      = param (_ "," _ param)* _
    param           = type_name __ identifier
    var_decl        = type_name __ identifier_list _ ";" _
    identifier_list = identifier (_ "," _ identifier)*

    body_item       = label_def / stmt
    label_def       = identifier _ ":" _

    # ─────────────────────────────────────────────────────────────
    # Statements
    # ─────────────────────────────────────────────────────────────

    stmt            = (return_stmt / goto_stmt / if_stmt / switch_stmt
                       / nop_stmt / invoke_stmt / assign_stmt) _
    return_stmt     = "return" (__ atom)? _ ";"
    goto_stmt       = "goto" __ identifier _ ";"
    if_stmt         = "if" _ "(" _ condition _ ")" _ "goto" __ identifier _ ";"
    condition       = atom _ rel_op _ atom
    switch_stmt     = "switch" _ "(" _ identifier _ ")" _ "{" _
                      case_clause* default_clause "}"
    case_clause     = "case" __ int_literal _ ":" _ "goto" __ identifier _ ";" _
    default_clause  = "default" _ ":" _ "goto" __ identifier _ ";" _
    nop_stmt        = "nop" _ ";"
    invoke_stmt     = invoke_expr _ ";"
    assign_stmt     = lvalue _ "=" _ rvalue _ ";"
    lvalue          = array_access / field_access / identifier

    # ─────────────────────────────────────────────────────────────
    # Expressions
    # ─────────────────────────────────────────────────────────────

    rvalue          = new_array / new_instance / invoke_expr / cast_expr
                    / binary_expr / neg_expr / array_access / field_access / atom
    new_array       = "newarray" __ type_name _ "[" _ atom _ "]"
    new_instance    = "new" __ type_name
    invoke_expr     = "invoke" __ callee _ "(" _ arg_list? ")"
    callee          = qualified_name / identifier
    qualified_name  = identifier _ "." _ identifier
    arg_list        = atom (_ "," _ atom)* _
    cast_expr       = "(" _ type_name _ ")" _ atom
    binary_expr     = atom _ bin_op _ atom
    neg_expr        = "-" _ identifier
    array_access    = identifier _ "[" _ atom _ "]"
    field_access    = identifier _ "." _ identifier

    atom            = literal / identifier
    literal         = int_literal / string_literal / null_literal
    int_literal     = ~r"-?(?:0[xX][0-9a-fA-F]+|[0-9]+)"
    string_literal  = ~r'"(?:[^"\\]|\\.)*"'
    null_literal    = "null"

    rel_op          = ">=" / "<=" / "==" / "!=" / ">" / "<"
    bin_op          = ">>>" / ">>" / "<<" / ">=" / "<=" / "==" / "!=" / ">" / "<"
                    / "+" / "-" / "*" / "/" / "%" / "&" / "|" / "^" / cmp_op
    cmp_op          = ~r"cmp[lg]?\b"

    # ─────────────────────────────────────────────────────────────
    # Lexical
    # ─────────────────────────────────────────────────────────────

    type_name       = !keyword ~r"[A-Za-z_$][A-Za-z0-9_$.]*" (_ "[" _ "]")*
    identifier      = !keyword ~r"[A-Za-z_$][A-Za-z0-9_$]*"
    keyword         = ~r"(?:method|return|goto|if|switch|case|default|newarray|new|invoke|nop|null)\b"

    _               = (~r"\s+" / comment)*
    __              = (~r"\s+" / comment)+
    comment         = ~r"//[^\n]*" / ~r"/\*.*?\*/"s
''')
