"""Lexer, parser and execution engine for the expression language."""
