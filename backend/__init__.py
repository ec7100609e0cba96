"""
HTTP backend for the polybox editor
"""
