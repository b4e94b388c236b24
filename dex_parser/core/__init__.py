"""
Core definitions: exceptions and constant tables shared across the parser.
"""
