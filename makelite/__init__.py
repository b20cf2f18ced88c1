"""
makelite: a small Make-compatible build tool.

makelite.lexer and makelite.parser read makefiles, makelite.expander expands
their macros and makelite.maker decides what to rebuild.
"""
