"""
Go frontend: tree-sitter parsing and the CST -> IR transformation used by lockcheck.
"""
