"""
Parsing, manipulation and serialisation of PDF document structure.
"""
